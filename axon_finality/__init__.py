"""
Axon Finality - block finality proof verification for Axon light clients.

Checks that a block header was finalized by a two-thirds weighted majority
of its validator committee, using one aggregated BLS12-381 signature, and
optionally that a piece of state is committed to by the header.

Quick Start:
    from axon_finality import Committee, verify_block_finality

    committee = Committee.from_public_keys(validator_keys)
    verdict = verify_block_finality(header, committee, proof)

    if not verdict:
        print(f"Rejected: {verdict.reason.name}")

Features:
    - Canonical RLP proposal hashing with Keccak-256
    - Aggregate BLS signature checks with subgroup validation
    - Strict two-thirds weighted quorum
    - Merkle-Patricia state inclusion proofs
    - Header-only light client
"""

from .config import VerifierConfig, configure_logging
from .core import (
    Committee,
    CommitteeMember,
    CommitteeSchedule,
    MetadataVersion,
    FinalityProof,
    Header,
    Proposal,
    ParticipationBitmap,
    StateProof,
    FinalityVerifier,
    Verdict,
    FailureReason,
    LightClient,
    generate_report,
    verify_block_finality,
    verify_trie_proof,
)
from .exceptions import (
    FinalityError,
    EncodingError,
    DecodingError,
    CommitteeError,
    StructuralError,
    MalformedPointError,
    StateProofError,
    HeaderChainError,
)

__version__ = "1.0.0"

__all__ = [
    # Core
    "Committee",
    "CommitteeMember",
    "CommitteeSchedule",
    "MetadataVersion",
    "FinalityProof",
    "Header",
    "Proposal",
    "ParticipationBitmap",
    "StateProof",
    "FinalityVerifier",
    "Verdict",
    "FailureReason",
    "LightClient",
    "generate_report",
    "verify_block_finality",
    "verify_trie_proof",
    "VerifierConfig",
    "configure_logging",
    # Exceptions
    "FinalityError",
    "EncodingError",
    "DecodingError",
    "CommitteeError",
    "StructuralError",
    "MalformedPointError",
    "StateProofError",
    "HeaderChainError",
    # Version
    "__version__",
]
