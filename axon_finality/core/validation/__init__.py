"""
Block Finality Verification for Axon light clients.

This package composes the core checks into a single verdict:

- Structural validation (bitmap against committee)
- Cryptographic validation (proposal hash, aggregate BLS signature)
- Consensus validation (two-thirds vote weight)
- State validation (Merkle-Patricia inclusion proofs)

Usage:
    from axon_finality.core.validation import FinalityVerifier

    verifier = FinalityVerifier()
    verdict = verifier.verify(header, committee, proof)
    if verdict.is_valid:
        light_client.accept(header)
"""

from .engine import (
    FailureReason,
    FinalityVerifier,
    Verdict,
    signing_message,
    verify_block_finality,
)
from .report import VerificationReport, generate_report

__all__ = [
    # Engine
    "FinalityVerifier",
    "Verdict",
    "FailureReason",
    "signing_message",
    "verify_block_finality",
    # Reports
    "VerificationReport",
    "generate_report",
]
