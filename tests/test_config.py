"""
Tests for verifier configuration.
"""

import json
import logging

import pytest
import yaml
from pydantic import ValidationError

from axon_finality.config import VerifierConfig, configure_logging


class TestVerifierConfig:
    """Tests for VerifierConfig."""

    def test_defaults(self, monkeypatch):
        """Test default bounds."""
        monkeypatch.delenv("AXON_FINALITY_MAX_COMMITTEE_SIZE", raising=False)
        config = VerifierConfig()
        assert config.max_committee_size == 1024
        assert config.max_proof_nodes == 64
        assert config.max_node_size == 4096
        assert config.log_file is None

    def test_env_override(self, monkeypatch):
        """Test AXON_FINALITY_* variables win over defaults."""
        monkeypatch.setenv("AXON_FINALITY_MAX_PROOF_NODES", "8")
        monkeypatch.setenv("AXON_FINALITY_LOG_LEVEL", "DEBUG")
        config = VerifierConfig()
        assert config.max_proof_nodes == 8
        assert config.log_level == "DEBUG"

    def test_bounds_positive(self):
        """Test bounds must be positive."""
        with pytest.raises(ValidationError):
            VerifierConfig(parallel_workers=0)

    def test_save_and_load_json(self, tmp_path):
        """Test a JSON round trip."""
        path = tmp_path / "finality.json"
        VerifierConfig(max_committee_size=200, log_level="WARNING").save(path)

        loaded = VerifierConfig.load(path)
        assert loaded.max_committee_size == 200
        assert loaded.log_level == "WARNING"
        assert json.loads(path.read_text())["max_proof_nodes"] == 64

    def test_load_yaml_ignores_unknown_keys(self, tmp_path):
        """Test YAML config files."""
        path = tmp_path / "finality.yaml"
        path.write_text(yaml.safe_dump({"max_node_size": 1024, "unknown": True}))

        loaded = VerifierConfig.load(path)
        assert loaded.max_node_size == 1024

    def test_presets(self):
        """Test development and production presets."""
        assert VerifierConfig.development().log_level == "DEBUG"
        assert VerifierConfig.development().parallel_workers == 1
        assert VerifierConfig.production().log_level == "WARNING"

    def test_configure_logging(self, tmp_path):
        """Test logging setup writes to the configured file."""
        root = logging.getLogger()
        saved = root.handlers[:]
        saved_level = root.level
        root.handlers = []
        try:
            log_file = tmp_path / "finality.log"
            configure_logging(VerifierConfig(log_level="DEBUG", log_file=str(log_file)))
            logging.getLogger("axon_finality.test").debug("hello")
            for handler in root.handlers:
                handler.flush()
            assert "hello" in log_file.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved
            root.setLevel(saved_level)
