"""
Verification Report Generation.

Summarises a finality verdict with its block and committee context, for
logs, peer-scoring decisions and audits.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict

from ..committee import Committee
from ..quorum import participating_weight, quorum_threshold
from ..types import FinalityProof, Header
from .engine import Verdict

logger = logging.getLogger(__name__)


class VerificationReport(BaseModel):
    """
    Finality verification audit report.
    """

    # Identification
    report_id: str = ""
    generated_at: str = ""

    # Subject
    block_hash: str = ""
    block_number: int = 0
    block_timestamp: int = 0
    proof_round: int = 0

    # Result
    is_valid: bool = False
    reason: Optional[str] = None
    message: str = ""
    duration_ms: float = 0.0

    # Committee
    committee_size: int = 0
    signers: list[int] = Field(default_factory=list)
    participating_weight: Optional[int] = None
    total_weight: int = 0
    quorum_threshold: int = 0

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "report_id": self.report_id,
            "generated_at": self.generated_at,
            "subject": {
                "block_hash": self.block_hash,
                "block_number": self.block_number,
                "block_timestamp": self.block_timestamp,
                "proof_round": self.proof_round,
            },
            "result": {
                "is_valid": self.is_valid,
                "reason": self.reason,
                "message": self.message,
                "duration_ms": self.duration_ms,
            },
            "committee": {
                "size": self.committee_size,
                "signers": self.signers,
                "participating_weight": self.participating_weight,
                "total_weight": self.total_weight,
                "quorum_threshold": self.quorum_threshold,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_markdown(self) -> str:
        """Generate markdown-formatted report."""
        weight = "-" if self.participating_weight is None else str(self.participating_weight)
        lines = [
            "# Finality Verification Report",
            "",
            f"**Report ID**: `{self.report_id}`",
            f"**Generated**: {self.generated_at}",
            "",
            "## Block",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **Hash** | `{self.block_hash[:18]}...` |",
            f"| **Number** | {self.block_number} |",
            f"| **Round** | {self.proof_round} |",
            "",
            "## Result",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **Final** | {'Yes' if self.is_valid else 'No'} |",
            f"| **Reason** | {self.reason or '-'} |",
            f"| **Duration** | {self.duration_ms:.2f}ms |",
            "",
            "## Committee",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **Size** | {self.committee_size} |",
            f"| **Signers** | {len(self.signers)} |",
            f"| **Weight** | {weight} / {self.total_weight} (needs {self.quorum_threshold}) |",
            "",
        ]
        if self.message:
            lines.extend([f"> {self.message}", ""])
        return "\n".join(lines)


def generate_report(
    header: Header,
    committee: Committee,
    proof: FinalityProof,
    verdict: Verdict,
) -> VerificationReport:
    """
    Build a report for a verdict.

    Participation figures are only filled in when the bitmap fits the
    committee; a structurally mismatched proof has no meaningful weight.
    The block hash is the signed proposal hash when the verdict carries
    one, otherwise the header hash.
    """
    fits = len(proof.bitmap) == len(committee)
    block_hash = verdict.details.get("block_hash") or header.hash.hex()

    report = VerificationReport(
        report_id=str(uuid.uuid4()),
        generated_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        block_hash="0x" + block_hash,
        block_number=header.number,
        block_timestamp=header.timestamp,
        proof_round=proof.round,
        is_valid=verdict.is_valid,
        reason=verdict.reason.name if verdict.reason else None,
        message=verdict.message,
        duration_ms=verdict.duration_ms,
        committee_size=len(committee),
        signers=proof.bitmap.participants() if fits else [],
        participating_weight=participating_weight(committee, proof.bitmap) if fits else None,
        total_weight=committee.total_weight(),
        quorum_threshold=quorum_threshold(committee),
    )

    logger.debug(f"Generated report {report.report_id} for block {header.number}")
    return report
