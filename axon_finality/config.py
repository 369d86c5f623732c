"""
Axon Finality Configuration.

Provides sensible defaults with override capability. Only resource bounds
and logging live here; protocol constants are fixed in core.constants.
"""

from pydantic import BaseModel, Field, ConfigDict
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os

import yaml


class VerifierConfig(BaseModel):
    """
    Configuration for the finality verifier.

    Environment variables override defaults (AXON_FINALITY_* prefix).
    """

    # Input bounds, checked before any cryptographic work
    max_committee_size: int = Field(default=1024, gt=0)
    max_proof_nodes: int = Field(default=64, gt=0)
    max_node_size: int = Field(default=4096, gt=0)

    # Batch verification
    parallel_workers: int = Field(default=4, gt=0)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def model_post_init(self, __context):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Override config from environment variables."""
        env_map = {
            "AXON_FINALITY_MAX_COMMITTEE_SIZE": ("max_committee_size", int),
            "AXON_FINALITY_MAX_PROOF_NODES": ("max_proof_nodes", int),
            "AXON_FINALITY_MAX_NODE_SIZE": ("max_node_size", int),
            "AXON_FINALITY_PARALLEL_WORKERS": ("parallel_workers", int),
            "AXON_FINALITY_LOG_LEVEL": ("log_level", str),
            "AXON_FINALITY_LOG_FILE": ("log_file", str),
        }

        for env_var, (attr, type_fn) in env_map.items():
            value = os.environ.get(env_var)
            if value is not None:
                setattr(self, attr, type_fn(value))

    def to_dict(self) -> dict[str, Any]:
        """Export config to dictionary."""
        return {
            "max_committee_size": self.max_committee_size,
            "max_proof_nodes": self.max_proof_nodes,
            "max_node_size": self.max_node_size,
            "parallel_workers": self.parallel_workers,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    def save(self, path: Path):
        """Save config to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "VerifierConfig":
        """Load config from a JSON or YAML file."""
        path = Path(path)
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        known = {key: data[key] for key in cls.model_fields if key in data}
        return cls(**known)

    @classmethod
    def development(cls) -> "VerifierConfig":
        """Create development config with verbose logging."""
        return cls(log_level="DEBUG", parallel_workers=1)

    @classmethod
    def production(cls) -> "VerifierConfig":
        """Create production config with quieter logging."""
        return cls(log_level="WARNING")


def configure_logging(config: Optional[VerifierConfig] = None) -> None:
    """Apply the configured log level and destination to the root logger."""
    config = config or VerifierConfig()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=config.log_file,
    )
