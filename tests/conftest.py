"""
Shared fixtures: validator keys, signed headers and a small trie builder.

Signing and pairings are slow in pure Python, so keys and the canonical
signed block are session-scoped and reused across test modules.
"""

import pytest
from py_ecc.bls import G2Basic

from axon_finality.core.committee import Committee, CommitteeMember
from axon_finality.core.constants import BLS_DST
from axon_finality.core.encoding import decode, encode
from axon_finality.core.hashing import keccak256
from axon_finality.core.trie import bytes_to_nibbles, decode_hex_prefix, encode_hex_prefix
from axon_finality.core.types import ZERO_HASH, FinalityProof, Header, ParticipationBitmap
from axon_finality.core.validation.engine import signing_message


class AxonBLS(G2Basic):
    """py_ecc ciphersuite with the tag Axon validators sign under."""
    DST = BLS_DST


SECRET_KEYS = [0x1A2B3C, 0x2B3C4D, 0x3C4D5E, 0x4D5E6F]


class Signer:
    """Signs headers on behalf of a fixed validator set, caching partial signatures."""

    def __init__(self, secret_keys):
        self.secret_keys = list(secret_keys)
        self.public_keys = [AxonBLS.SkToPk(sk) for sk in self.secret_keys]
        self._signatures: dict[tuple[bytes, int], bytes] = {}

    def committee(self, weights=None) -> Committee:
        weights = weights or [1] * len(self.public_keys)
        return Committee([
            CommitteeMember(public_key=pk, vote_weight=w)
            for pk, w in zip(self.public_keys, weights)
        ])

    def sign_message(self, message: bytes, index: int) -> bytes:
        key = (message, index)
        if key not in self._signatures:
            self._signatures[key] = AxonBLS.Sign(self.secret_keys[index], message)
        return self._signatures[key]

    def proof_for(
        self,
        header: Header,
        indices,
        round: int = 0,
        number: int = None,
        prev_state_root: bytes = ZERO_HASH,
        tx_hashes=(),
    ) -> FinalityProof:
        """Aggregate precommit for header signed by the members at indices."""
        number = header.number if number is None else number
        draft = FinalityProof(
            number=number,
            round=round,
            bitmap=ParticipationBitmap.from_indices(len(self.secret_keys), indices),
            signature=b"",
        )
        block_hash, message = signing_message(
            header, draft, prev_state_root=prev_state_root, tx_hashes=tx_hashes
        )
        signature = AxonBLS.Aggregate([self.sign_message(message, i) for i in indices])
        return draft.model_copy(update={"signature": signature, "block_hash": block_hash})


class TrieBuilder:
    """
    Builds a hexary Merkle-Patricia trie in memory.

    Only for fixtures: keys must all have the same length.
    """

    def __init__(self, items: dict[bytes, bytes]):
        self.db: dict[bytes, bytes] = {}
        pairs = [(tuple(bytes_to_nibbles(k)), v) for k, v in sorted(items.items())]
        root_node = self._build(pairs)
        encoded = encode(root_node)
        self.root = keccak256(encoded)
        self.db[self.root] = encoded

    def _ref(self, node):
        encoded = encode(node)
        if len(encoded) < 32:
            return node
        digest = keccak256(encoded)
        self.db[digest] = encoded
        return digest

    def _build(self, pairs):
        if len(pairs) == 1:
            nibbles, value = pairs[0]
            return [encode_hex_prefix(list(nibbles), True), value]

        prefix = []
        for column in zip(*(nibbles for nibbles, _ in pairs)):
            if len(set(column)) != 1:
                break
            prefix.append(column[0])

        if prefix:
            child = self._build([(nibbles[len(prefix):], value) for nibbles, value in pairs])
            return [encode_hex_prefix(prefix, False), self._ref(child)]

        branch = [b""] * 17
        for nibble in range(16):
            group = [(n[1:], v) for n, v in pairs if n[0] == nibble]
            if group:
                branch[nibble] = self._ref(self._build(group))
        return branch

    def prove(self, key: bytes) -> list[bytes]:
        """Encoded nodes on the path to key."""
        nibbles = bytes_to_nibbles(key)
        ref = self.root
        proof = []
        while True:
            if isinstance(ref, bytes):
                encoded = self.db[ref]
                proof.append(encoded)
                node = decode(encoded)
            else:
                node = ref

            if len(node) == 17:
                if not nibbles:
                    return proof
                ref = node[nibbles[0]]
                nibbles = nibbles[1:]
                if ref == b"":
                    return proof
                continue

            path, is_leaf = decode_hex_prefix(node[0])
            if is_leaf or nibbles[:len(path)] != path:
                return proof
            nibbles = nibbles[len(path):]
            ref = node[1]


STATE = {
    b"\x01\x23\x45\x67": b"alice",
    b"\x01\x23\x99\x00": b"bob",
    b"\x01\xff\x00\x00": b"carol" * 12,
    b"\xab\xcd\xef\x01": b"dave",
}


@pytest.fixture(scope="session")
def signer():
    return Signer(SECRET_KEYS)


@pytest.fixture(scope="session")
def committee(signer):
    return signer.committee()


@pytest.fixture(scope="session")
def state_trie():
    return TrieBuilder(STATE)


@pytest.fixture(scope="session")
def header(state_trie):
    return Header(
        prev_hash=b"\x11" * 32,
        proposer=b"\x22" * 20,
        state_root=state_trie.root,
        timestamp=1_700_000_000_000,
        number=100,
        gas_limit=30_000_000,
        chain_id=2022,
    )


@pytest.fixture(scope="session")
def signed_proof(signer, header):
    """Header 100 finalized by members 0, 1 and 2 of four."""
    return signer.proof_for(header, [0, 1, 2])
