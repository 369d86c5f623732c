"""
Finality Verification Engine - composes the checks into one verdict.

The FinalityVerifier runs a header, committee and finality proof through a
fixed pipeline and stops at the first failure:

1. Structural - bitmap length, committee bound
2. Message - proposal (block) hash and the signed vote digest
3. Signature - aggregate BLS signature of the participating members
4. Quorum - strict two-thirds of committee vote weight
5. State - optional state inclusion proof against header.state_root
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ConfigDict

from ...config import VerifierConfig
from ...exceptions import MalformedPointError, StructuralError
from ..committee import Committee
from ..constants import VOTE_TYPE_PRECOMMIT
from ..crypto import AggregateSignatureVerifier, SignatureBackend
from ..encoding import Encoder, RLPEncoder
from ..hashing import Digest, Keccak256Digest
from ..quorum import participating_weight, weight_has_quorum
from ..trie import StateProofChecker
from ..types import ZERO_HASH, FinalityProof, Header, Proposal, StateProof

logger = logging.getLogger(__name__)


class FailureReason(Enum):
    """Why a finality proof was rejected."""
    # Shape errors (1xx)
    STRUCTURAL_MISMATCH = 100

    # Signature errors (2xx)
    MALFORMED_POINT = 200
    BAD_SIGNATURE = 201

    # Consensus errors (3xx)
    INSUFFICIENT_QUORUM = 300

    # State errors (4xx)
    BAD_STATE_PROOF = 400


class Verdict(BaseModel):
    """Outcome of one verification: valid, or invalid with one reason."""
    is_valid: bool
    reason: Optional[FailureReason] = None
    message: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)
    duration_ms: float = 0.0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def valid(cls, **details) -> "Verdict":
        return cls(is_valid=True, details=details)

    @classmethod
    def invalid(cls, reason: FailureReason, message: str, **details) -> "Verdict":
        return cls(is_valid=False, reason=reason, message=message, details=details)

    def __bool__(self) -> bool:
        return self.is_valid

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with the reason as code and name."""
        data = self.model_dump(exclude={"reason"})
        data["reason"] = self.reason.value if self.reason else None
        data["reason_name"] = self.reason.name if self.reason else None
        return data


def signing_message(
    header: Header,
    proof: FinalityProof,
    encoder: Optional[Encoder] = None,
    digest: Optional[Digest] = None,
    prev_state_root: bytes = ZERO_HASH,
    tx_hashes: Sequence[bytes] = (),
) -> Tuple[bytes, bytes]:
    """
    Rebuild the bytes the committee signed.

    block_hash = digest(encode(Proposal.from_header(header, prev_state_root, tx_hashes)))
    message = digest(encode([proof.number, proof.round, PRECOMMIT, block_hash]))

    Args:
        header: Block header
        proof: Finality proof supplying height and round
        encoder: Canonical encoder (RLP by default)
        digest: Hash function (Keccak-256 by default)
        prev_state_root: State root of the parent block
        tx_hashes: Hashes of the block's transactions, in block order

    Returns:
        (block_hash, message)

    Raises:
        ValidationError: If the header cannot form a proposal (gas_limit
            above 64 bits, malformed tx hash)
    """
    encoder = encoder or RLPEncoder()
    digest = digest or Keccak256Digest()
    proposal = Proposal.from_header(header, prev_state_root, tx_hashes)
    block_hash = digest(encoder.encode(proposal.encode_fields()))
    vote = [proof.number, proof.round, VOTE_TYPE_PRECOMMIT, block_hash]
    return block_hash, digest(encoder.encode(vote))


class FinalityVerifier:
    """
    Block finality proof verifier.

    Stateless with respect to verdicts: the same inputs always produce the
    same Verdict, and instances can be shared between threads. Counters are
    kept for monitoring only.

    Usage:
        verifier = FinalityVerifier()
        verdict = verifier.verify(header, committee, proof)

        if not verdict.is_valid:
            print(f"{verdict.reason.name}: {verdict.message}")
    """

    def __init__(
        self,
        config: Optional[VerifierConfig] = None,
        encoder: Optional[Encoder] = None,
        digest: Optional[Digest] = None,
        backend: Optional[SignatureBackend] = None,
    ) -> None:
        """
        Initialize the verifier.

        Args:
            config: Resource bounds and worker count
            encoder: Canonical encoder (RLP by default)
            digest: Hash function (Keccak-256 by default)
            backend: Curve backend (py_ecc BLS12-381 by default)
        """
        self.config = config or VerifierConfig()
        self.encoder = encoder or RLPEncoder()
        self.digest = digest or Keccak256Digest()
        self.signatures = AggregateSignatureVerifier(backend)
        self.state_checker = StateProofChecker(
            max_nodes=self.config.max_proof_nodes,
            max_node_size=self.config.max_node_size,
        )

        # Metrics
        self.proofs_verified = 0
        self.proofs_rejected = 0
        self.total_verification_ms = 0.0
        self._lock = threading.Lock()

    def verify(
        self,
        header: Header,
        committee: Committee,
        proof: FinalityProof,
        state_proof: Optional[StateProof] = None,
        prev_state_root: bytes = ZERO_HASH,
        tx_hashes: Sequence[bytes] = (),
    ) -> Verdict:
        """
        Decide whether proof finalizes header.

        Args:
            header: Block header the proof should commit to
            committee: Committee active at header.number
            proof: Aggregated precommit
            state_proof: Optional claim checked against header.state_root
            prev_state_root: State root of the parent block, part of the
                signed proposal
            tx_hashes: The block's transaction hashes, part of the signed
                proposal

        Returns:
            Verdict; never raises for malformed proof data
        """
        start_time = time.perf_counter()
        verdict = self._run(header, committee, proof, state_proof, prev_state_root, tx_hashes)
        return self._finish(verdict, header, start_time)

    def _run(
        self,
        header: Header,
        committee: Committee,
        proof: FinalityProof,
        state_proof: Optional[StateProof],
        prev_state_root: bytes,
        tx_hashes: Sequence[bytes],
    ) -> Verdict:
        # Step 1: Structural
        if len(proof.bitmap) != len(committee):
            return Verdict.invalid(
                FailureReason.STRUCTURAL_MISMATCH,
                f"Bitmap length {len(proof.bitmap)} does not match committee size {len(committee)}",
                expected=len(committee),
                actual=len(proof.bitmap),
            )
        if len(committee) > self.config.max_committee_size:
            return Verdict.invalid(
                FailureReason.STRUCTURAL_MISMATCH,
                f"Committee of {len(committee)} exceeds maximum {self.config.max_committee_size}",
            )

        # Step 2: Message
        try:
            block_hash, message = signing_message(
                header, proof, self.encoder, self.digest, prev_state_root, tx_hashes
            )
        except ValueError as e:
            return Verdict.invalid(
                FailureReason.STRUCTURAL_MISMATCH,
                f"Header does not form a proposal: {e}",
            )
        if proof.block_hash is not None and proof.block_hash != block_hash:
            return Verdict.invalid(
                FailureReason.BAD_SIGNATURE,
                "Proof block hash does not match proposal",
                expected=block_hash.hex(),
                actual=proof.block_hash.hex(),
            )

        # Step 3: Aggregate signature
        try:
            signature_ok = self.signatures.check(committee, proof.bitmap, message, proof.signature)
        except StructuralError as e:
            return Verdict.invalid(FailureReason.STRUCTURAL_MISMATCH, e.message)
        except MalformedPointError as e:
            return Verdict.invalid(FailureReason.MALFORMED_POINT, e.message, index=e.index)

        if not signature_ok:
            return Verdict.invalid(
                FailureReason.BAD_SIGNATURE,
                "Aggregate signature does not verify",
                signers=proof.bitmap.count(),
            )

        # Step 4: Quorum
        weight = participating_weight(committee, proof.bitmap)
        total = committee.total_weight()
        if not weight_has_quorum(weight, total):
            return Verdict.invalid(
                FailureReason.INSUFFICIENT_QUORUM,
                f"Participating weight {weight} of {total} is not above two thirds",
                participating_weight=weight,
                total_weight=total,
            )

        # Step 5: State inclusion
        if state_proof is not None:
            included = self.state_checker.verify_inclusion(
                header.state_root,
                state_proof.key,
                state_proof.value,
                state_proof.nodes,
            )
            if not included:
                return Verdict.invalid(
                    FailureReason.BAD_STATE_PROOF,
                    "State proof does not reconstruct header state root",
                    key=state_proof.key.hex(),
                )

        return Verdict.valid(
            block_hash=block_hash.hex(),
            participating_weight=weight,
            total_weight=total,
        )

    def _finish(self, verdict: Verdict, header: Header, start_time: float) -> Verdict:
        """Stamp duration and update metrics."""
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        with self._lock:
            self.proofs_verified += 1
            self.total_verification_ms += elapsed_ms
            if not verdict.is_valid:
                self.proofs_rejected += 1

        if not verdict.is_valid:
            logger.debug(
                f"Block {header.number} rejected: {verdict.reason.name} ({verdict.message})"
            )
        else:
            logger.debug(f"Block {header.number} final ({elapsed_ms:.1f} ms)")

        return verdict.model_copy(update={"duration_ms": elapsed_ms})

    def verify_many(
        self,
        items: Sequence[Tuple[Header, Committee, FinalityProof]],
        parallel: bool = True,
    ) -> List[Verdict]:
        """
        Verify several proofs, optionally in parallel.

        Args:
            items: (header, committee, proof) triples
            parallel: Use a thread pool

        Returns:
            Verdicts in the same order as items
        """
        if not items:
            return []

        if parallel and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.config.parallel_workers) as executor:
                futures = [
                    executor.submit(self.verify, header, committee, proof)
                    for header, committee, proof in items
                ]
                return [f.result() for f in futures]

        return [self.verify(header, committee, proof) for header, committee, proof in items]

    def get_stats(self) -> dict[str, Any]:
        """Verification statistics."""
        with self._lock:
            count = self.proofs_verified
            return {
                "proofs_verified": count,
                "proofs_rejected": self.proofs_rejected,
                "avg_verification_ms": self.total_verification_ms / count if count else 0.0,
            }

    def __repr__(self) -> str:
        return f"FinalityVerifier(verified={self.proofs_verified}, rejected={self.proofs_rejected})"


_default_verifier: Optional[FinalityVerifier] = None
_default_lock = threading.Lock()


def verify_block_finality(
    header: Header,
    committee: Committee,
    proof: FinalityProof,
    state_proof: Optional[StateProof] = None,
    prev_state_root: bytes = ZERO_HASH,
    tx_hashes: Sequence[bytes] = (),
) -> Verdict:
    """
    Verify that proof finalizes header, with the default verifier.

    Example:
        verdict = verify_block_finality(header, committee, proof)
        if verdict.is_valid:
            accept(header)
    """
    global _default_verifier
    with _default_lock:
        if _default_verifier is None:
            _default_verifier = FinalityVerifier()
    return _default_verifier.verify(
        header, committee, proof, state_proof,
        prev_state_root=prev_state_root,
        tx_hashes=tx_hashes,
    )
