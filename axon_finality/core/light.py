"""
Light Client Header Chain.

This module provides a header-only client that:
- Accepts a block header only together with a valid finality proof
- Picks the committee for each height from a CommitteeSchedule
- Checks height continuity and the prev_hash link between blocks
- Feeds each parent's state root into the next block's signed proposal
- Verifies state inclusion proofs against stored state roots

Usage:
    from axon_finality.core.light import LightClient

    light = LightClient(schedule)

    # Sync headers and proofs from a full node
    for header, proof in await node.get_finalized(start=light.height + 1):
        verdict = light.add_header(header, proof)
        if not verdict:
            break

    # Verify an account slot exists at a finalized height
    ok = light.verify_state(number, state_proof)
"""

import logging
from typing import Any, Iterable, Optional, Sequence, Tuple

from ..exceptions import HeaderChainError
from .committee import CommitteeSchedule
from .types import ZERO_HASH, FinalityProof, Header, StateProof, short_hex
from .validation.engine import FinalityVerifier, Verdict

logger = logging.getLogger(__name__)


class LightClient:
    """
    Light client that stores only finalized headers.

    The first header accepted becomes the trust anchor; every later header
    must extend it by exactly one height. Blocks are identified by their
    proposal hash, the hash the committee signs, and a child's prev_hash
    must equal its parent's. Nothing is persisted.

    Usage:
        light = LightClient(schedule)

        verdict = light.add_header(header, proof)
        if verdict.is_valid:
            print(f"Block {header.number} is final")
    """

    def __init__(
        self,
        schedule: CommitteeSchedule,
        verifier: Optional[FinalityVerifier] = None,
        anchor_prev_state_root: bytes = ZERO_HASH,
    ):
        """
        Initialize light client.

        Args:
            schedule: Committees by block range
            verifier: Finality verifier (default configuration if omitted)
            anchor_prev_state_root: State root of the block before the
                anchor, needed to rebuild the anchor's proposal
        """
        self.schedule = schedule
        self.verifier = verifier or FinalityVerifier()
        self.anchor_prev_state_root = anchor_prev_state_root

        # Header chain and the matching block hashes
        self.headers: list[Header] = []
        self.block_hashes: list[bytes] = []

        # Indexes for fast lookup
        self._hash_index: dict[bytes, int] = {}  # hash -> position

        # Stats
        self._headers_rejected = 0
        self._state_proofs_verified = 0
        self._state_proofs_failed = 0

    @property
    def height(self) -> int:
        """Number of the latest finalized header, -1 when empty."""
        return self.headers[-1].number if self.headers else -1

    @property
    def latest_hash(self) -> Optional[bytes]:
        """Block hash of the latest header."""
        return self.block_hashes[-1] if self.block_hashes else None

    @property
    def anchor_hash(self) -> Optional[bytes]:
        """Block hash of the first (trusted) header."""
        return self.block_hashes[0] if self.block_hashes else None

    def add_header(
        self,
        header: Header,
        proof: FinalityProof,
        state_proof: Optional[StateProof] = None,
        tx_hashes: Sequence[bytes] = (),
    ) -> Verdict:
        """
        Verify and append a header.

        Args:
            header: Next header
            proof: Finality proof for header
            state_proof: Optional state claim to check against header
            tx_hashes: The block's transaction hashes

        Returns:
            The finality Verdict; the header is appended only if it is valid

        Raises:
            HeaderChainError: If header does not extend the chain
            CommitteeError: If no committee is scheduled for header.number
        """
        self._check_link(header)

        committee = self.schedule.committee_for(header.number)
        prev_state_root = self.headers[-1].state_root if self.headers else self.anchor_prev_state_root
        verdict = self.verifier.verify(
            header, committee, proof, state_proof,
            prev_state_root=prev_state_root,
            tx_hashes=tx_hashes,
        )

        if not verdict.is_valid:
            self._headers_rejected += 1
            logger.warning(
                f"Rejected header {header.number} ({short_hex(header.hash)}): "
                f"{verdict.reason.name}"
            )
            return verdict

        block_hash = bytes.fromhex(verdict.details["block_hash"])
        self._hash_index[block_hash] = len(self.headers)
        self.headers.append(header)
        self.block_hashes.append(block_hash)

        logger.info(f"Finalized header {header.number}: {short_hex(block_hash)}")
        return verdict

    def add_headers(self, items: Iterable[Tuple[Header, FinalityProof]]) -> int:
        """
        Add multiple headers to the chain.

        Args:
            items: (header, proof) pairs in height order

        Returns:
            Number of headers successfully added
        """
        added = 0
        for header, proof in items:
            try:
                verdict = self.add_header(header, proof)
            except HeaderChainError as e:
                logger.warning(f"Stopped sync at header {header.number}: {e.message}")
                break
            if not verdict.is_valid:
                break  # Stop on first invalid header
            added += 1
        return added

    def _check_link(self, header: Header) -> None:
        """Check height continuity and the parent hash link."""
        if not self.headers:
            return

        expected = self.height + 1
        if header.number != expected:
            raise HeaderChainError(
                f"Expected header {expected}, got {header.number}",
                number=header.number,
            )

        if header.prev_hash != self.latest_hash:
            raise HeaderChainError(
                f"Header {header.number} does not link to {short_hex(self.latest_hash)}",
                number=header.number,
            )

    def get_header(self, number: int) -> Optional[Header]:
        """Get header by block number."""
        if not self.headers:
            return None
        position = number - self.headers[0].number
        if 0 <= position < len(self.headers):
            return self.headers[position]
        return None

    def get_header_by_hash(self, block_hash: bytes) -> Optional[Header]:
        """Get header by block (proposal) hash."""
        position = self._hash_index.get(bytes(block_hash))
        if position is not None:
            return self.headers[position]
        return None

    def verify_state(self, number: int, state_proof: StateProof) -> bool:
        """
        Verify a state proof against a finalized header.

        Raises:
            HeaderChainError: If no header with that number is stored
        """
        header = self.get_header(number)
        if header is None:
            raise HeaderChainError(f"No finalized header {number}", number=number)

        ok = self.verifier.state_checker.verify_inclusion(
            header.state_root,
            state_proof.key,
            state_proof.value,
            state_proof.nodes,
        )
        if ok:
            self._state_proofs_verified += 1
            logger.debug(f"State proof for {short_hex(state_proof.key)} verified at {number}")
        else:
            self._state_proofs_failed += 1
        return ok

    def get_stats(self) -> dict[str, Any]:
        """Get light client statistics."""
        return {
            "height": self.height,
            "headers_count": len(self.headers),
            "headers_rejected": self._headers_rejected,
            "state_proofs_verified": self._state_proofs_verified,
            "state_proofs_failed": self._state_proofs_failed,
            "epochs": self.schedule.epochs,
        }

    def __len__(self) -> int:
        return len(self.headers)

    def __repr__(self) -> str:
        return f"LightClient(height={self.height}, headers={len(self.headers)})"
