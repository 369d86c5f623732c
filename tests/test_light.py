"""
Tests for the light client header chain.

Tests cover:
- Syncing finalized headers
- Chain link and height checks
- Rejected proofs
- State proofs against stored headers
"""

import pytest

from axon_finality.core.committee import CommitteeSchedule, MetadataVersion
from axon_finality.core.light import LightClient
from axon_finality.core.types import Header, ParticipationBitmap, Proposal, StateProof
from axon_finality.core.validation import FailureReason
from axon_finality.exceptions import CommitteeError, HeaderChainError

from conftest import STATE


@pytest.fixture(scope="module")
def schedule(committee):
    schedule = CommitteeSchedule()
    schedule.add(MetadataVersion(start=0, end=999), epoch=0, committee=committee)
    return schedule


@pytest.fixture(scope="module")
def anchor_hash(header):
    """Block hash of header 100 with an all-zero parent state root."""
    return Proposal.from_header(header).hash


@pytest.fixture(scope="module")
def next_block(signer, header, signed_proof, anchor_hash):
    """Header 101 linked to header 100, signed by members 1, 2 and 3."""
    child = Header(
        prev_hash=anchor_hash,
        proposer=b"\x33" * 20,
        state_root=header.state_root,
        timestamp=header.timestamp + 3000,
        number=header.number + 1,
        proof=signed_proof,
        chain_id=header.chain_id,
    )
    return child, signer.proof_for(child, [1, 2, 3], prev_state_root=header.state_root)


@pytest.fixture(scope="module")
def synced(schedule, header, signed_proof, next_block):
    """Light client holding headers 100 and 101."""
    light = LightClient(schedule)
    assert light.add_header(header, signed_proof).is_valid
    assert light.add_header(*next_block).is_valid
    return light


def _seeded(schedule, header, block_hash):
    """Client that already holds header, without verifying it."""
    light = LightClient(schedule)
    light.headers.append(header)
    light.block_hashes.append(block_hash)
    return light


def _unsigned(proof):
    """Same proof with a bitmap too long for the committee."""
    return proof.model_copy(update={"bitmap": ParticipationBitmap.from_indices(5, [0])})


class TestLightClient:
    """Tests for LightClient."""

    def test_empty(self, schedule):
        """Test a fresh client."""
        light = LightClient(schedule)
        assert light.height == -1
        assert light.latest_hash is None
        assert len(light) == 0
        assert light.get_header(0) is None

    def test_sync(self, synced, header, next_block, anchor_hash):
        """Test headers are stored and indexed by block hash."""
        child, proof = next_block
        assert len(synced) == 2
        assert synced.height == 101
        assert synced.latest_hash == proof.block_hash
        assert synced.anchor_hash == anchor_hash
        assert synced.get_header(100) == header
        assert synced.get_header(101) == child
        assert synced.get_header(102) is None
        assert synced.get_header_by_hash(proof.block_hash) == child
        assert synced.get_header_by_hash(header.hash) is None

    def test_child_signed_over_parent_state_root(self, header, next_block):
        """Test the child's block hash depends on the parent's state root."""
        child, proof = next_block
        assert proof.block_hash == Proposal.from_header(child, header.state_root).hash
        assert proof.block_hash != Proposal.from_header(child).hash

    def test_anchor_prev_state_root(self, schedule, header, signed_proof):
        """Test the anchor is checked against the configured parent state root."""
        light = LightClient(schedule, anchor_prev_state_root=b"\x01" * 32)
        verdict = light.add_header(header, signed_proof)

        assert verdict.reason == FailureReason.BAD_SIGNATURE
        assert len(light) == 0

    def test_wrong_height(self, schedule, header, next_block, anchor_hash):
        """Test skipping a height."""
        light = _seeded(schedule, header, anchor_hash)
        child, proof = next_block
        skipped = child.model_copy(update={"number": 102})
        with pytest.raises(HeaderChainError) as exc:
            light.add_header(skipped, proof)
        assert exc.value.number == 102

    def test_broken_link(self, schedule, header, next_block, anchor_hash):
        """Test a header whose prev_hash is not the latest block hash."""
        light = _seeded(schedule, header, anchor_hash)
        child, proof = next_block
        orphan = child.model_copy(update={"prev_hash": b"\x99" * 32})
        with pytest.raises(HeaderChainError):
            light.add_header(orphan, proof)

    def test_rejected_header_not_stored(self, schedule, header, signed_proof):
        """Test an invalid proof leaves the chain unchanged."""
        light = LightClient(schedule)
        verdict = light.add_header(header, _unsigned(signed_proof))

        assert verdict.reason == FailureReason.STRUCTURAL_MISMATCH
        assert len(light) == 0
        assert light.get_stats()["headers_rejected"] == 1

    def test_unscheduled_height(self, schedule, signed_proof):
        """Test a header outside every committee range."""
        light = LightClient(schedule)
        far = Header(state_root=b"\x00" * 32, timestamp=0, number=5000)
        with pytest.raises(CommitteeError):
            light.add_header(far, signed_proof)

    def test_add_headers_stops_on_invalid(self, schedule, header, signed_proof, next_block):
        """Test batch sync stops at the first rejected header."""
        light = LightClient(schedule)
        added = light.add_headers([
            (header, _unsigned(signed_proof)),
            next_block,
        ])
        assert added == 0
        assert len(light) == 0

    def test_verify_state(self, synced, state_trie):
        """Test state proofs against a finalized header."""
        key = b"\xab\xcd\xef\x01"
        trie_nodes = state_trie.prove(key)

        assert synced.verify_state(101, StateProof(key=key, value=STATE[key], nodes=trie_nodes))
        assert not synced.verify_state(100, StateProof(key=key, value=b"eve", nodes=trie_nodes))

    def test_verify_state_unknown_height(self, synced, state_trie):
        """Test a state proof for a header the client does not have."""
        key = b"\xab\xcd\xef\x01"
        proof = StateProof(key=key, value=STATE[key], nodes=state_trie.prove(key))
        with pytest.raises(HeaderChainError):
            synced.verify_state(99, proof)

    def test_stats(self, synced):
        """Test light client statistics."""
        stats = synced.get_stats()
        assert stats["height"] == 101
        assert stats["headers_count"] == 2
        assert stats["epochs"] == [0]
        assert "LightClient(height=101" in repr(synced)
