"""
Core finality verification components.

This package provides:
- Canonical encoding (RLP) and Keccak-256 digests
- Block, vote and proof types
- Committee model and committee schedule
- BLS12-381 aggregate signature verification
- Quorum evaluation and Merkle-Patricia state proofs
- Light client header chain
"""

from .encoding import (
    Encoder,
    RLPEncoder,
    encode,
    decode,
)

from .hashing import (
    Digest,
    Keccak256Digest,
    keccak256,
    hash_encoded,
    EMPTY_TRIE_ROOT,
)

from .types import (
    Header,
    Proposal,
    Vote,
    FinalityProof,
    StateProof,
    ParticipationBitmap,
    hex_encode,
    hex_decode,
)

from .committee import (
    Committee,
    CommitteeMember,
    CommitteeSchedule,
    CommitteeEpoch,
    MetadataVersion,
)

from .crypto import (
    SignatureBackend,
    BLSBackend,
    AggregateSignatureVerifier,
)

from .quorum import (
    participating_weight,
    quorum_threshold,
    has_quorum,
)

from .trie import (
    StateProofChecker,
    verify_inclusion,
    verify_trie_proof,
)

from .validation import (
    FinalityVerifier,
    Verdict,
    FailureReason,
    VerificationReport,
    generate_report,
    signing_message,
    verify_block_finality,
)

from .light import LightClient

__all__ = [
    # Encoding
    "Encoder",
    "RLPEncoder",
    "encode",
    "decode",
    "Digest",
    "Keccak256Digest",
    "keccak256",
    "hash_encoded",
    "EMPTY_TRIE_ROOT",
    # Types
    "Header",
    "Proposal",
    "Vote",
    "FinalityProof",
    "StateProof",
    "ParticipationBitmap",
    "hex_encode",
    "hex_decode",
    # Committee
    "Committee",
    "CommitteeMember",
    "CommitteeSchedule",
    "CommitteeEpoch",
    "MetadataVersion",
    # Signatures
    "SignatureBackend",
    "BLSBackend",
    "AggregateSignatureVerifier",
    # Quorum
    "participating_weight",
    "quorum_threshold",
    "has_quorum",
    # State proofs
    "StateProofChecker",
    "verify_inclusion",
    "verify_trie_proof",
    # Verification
    "FinalityVerifier",
    "Verdict",
    "FailureReason",
    "VerificationReport",
    "generate_report",
    "signing_message",
    "verify_block_finality",
    # Light client
    "LightClient",
]
