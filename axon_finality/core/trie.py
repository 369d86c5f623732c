"""
Merkle-Patricia trie proof verification.

Verifies that a key/value pair is committed to by a state root, using the
hexary Merkle-Patricia trie layout Axon shares with Ethereum:

- Nodes are RLP lists, addressed by keccak256 of their encoding
- Branch nodes have 17 items (16 children plus a value slot)
- Leaf and extension nodes have 2 items: a hex-prefix encoded nibble path
  and either the value (leaf) or the child reference (extension)
- A child whose encoding is shorter than 32 bytes is embedded inline

A proof is the set of encoded nodes on the path from the root to the key.
Node order in the proof does not matter; nodes are looked up by hash.
"""

import logging
from typing import Iterable, Optional, Union

from ..exceptions import DecodingError, StateProofError
from .constants import HASH_LENGTH
from .encoding import decode
from .hashing import EMPTY_TRIE_ROOT, keccak256
from .types import short_hex

logger = logging.getLogger(__name__)

BRANCH_WIDTH = 17
PAIR_WIDTH = 2

DEFAULT_MAX_PROOF_NODES = 64
DEFAULT_MAX_NODE_SIZE = 4096

NodeRef = Union[bytes, list]


def bytes_to_nibbles(data: bytes) -> list[int]:
    """Split bytes into 4-bit nibbles, high nibble first."""
    nibbles = []
    for byte in data:
        nibbles.append(byte >> 4)
        nibbles.append(byte & 0x0F)
    return nibbles


def decode_hex_prefix(encoded: bytes) -> tuple[list[int], bool]:
    """
    Decode a hex-prefix encoded path.

    Returns:
        (nibbles, is_leaf)

    Raises:
        StateProofError: On an empty path or invalid flag nibble
    """
    if not isinstance(encoded, bytes) or not encoded:
        raise StateProofError("Node path must be a non-empty byte string")

    nibbles = bytes_to_nibbles(encoded)
    flag = nibbles[0]
    if flag > 3:
        raise StateProofError(f"Invalid hex-prefix flag {flag}")

    is_leaf = flag >= 2
    if flag % 2 == 1:
        return nibbles[1:], is_leaf

    if nibbles[1] != 0:
        raise StateProofError("Even-length path has non-zero padding nibble")
    return nibbles[2:], is_leaf


def encode_hex_prefix(nibbles: list[int], is_leaf: bool) -> bytes:
    """Hex-prefix encode a nibble path."""
    flag = 2 if is_leaf else 0
    if len(nibbles) % 2 == 1:
        padded = [flag + 1] + list(nibbles)
    else:
        padded = [flag, 0] + list(nibbles)
    return bytes(padded[i] << 4 | padded[i + 1] for i in range(0, len(padded), 2))


class StateProofChecker:
    """
    Checks state inclusion proofs against a root.

    Usage:
        checker = StateProofChecker()
        if checker.verify_inclusion(header.state_root, key, value, nodes):
            ...
    """

    def __init__(
        self,
        max_nodes: int = DEFAULT_MAX_PROOF_NODES,
        max_node_size: int = DEFAULT_MAX_NODE_SIZE,
    ):
        self.max_nodes = max_nodes
        self.max_node_size = max_node_size

    def _index_nodes(self, nodes: Iterable[bytes]) -> dict[bytes, bytes]:
        nodes = list(nodes)
        if len(nodes) > self.max_nodes:
            raise StateProofError(f"Proof has {len(nodes)} nodes, maximum is {self.max_nodes}")

        db: dict[bytes, bytes] = {}
        for node in nodes:
            if len(node) > self.max_node_size:
                raise StateProofError(
                    f"Proof node of {len(node)} bytes exceeds maximum {self.max_node_size}"
                )
            db[keccak256(node)] = bytes(node)
        return db

    def _resolve(self, ref: NodeRef, db: dict[bytes, bytes]) -> list:
        """Turn a child reference into a decoded node."""
        if isinstance(ref, list):
            return ref

        if len(ref) != HASH_LENGTH:
            raise StateProofError(f"Invalid node reference of {len(ref)} bytes")

        encoded = db.get(ref)
        if encoded is None:
            raise StateProofError(f"Proof is missing node {short_hex(ref)}")

        try:
            node = decode(encoded)
        except DecodingError as e:
            raise StateProofError(f"Undecodable node {short_hex(ref)}: {e.message}") from e

        if not isinstance(node, list):
            raise StateProofError(f"Node {short_hex(ref)} is not a list")
        return node

    def lookup(self, root: bytes, key: bytes, nodes: Iterable[bytes]) -> Optional[bytes]:
        """
        Walk the proof from root along key.

        Args:
            root: 32-byte trie root
            key: Trie key (raw bytes; callers of a secure trie pass the hashed key)
            nodes: Encoded proof nodes

        Returns:
            The proven value, or None if the proof shows key is absent

        Raises:
            StateProofError: If the proof is malformed, incomplete, or does
                not connect to root
        """
        db = self._index_nodes(nodes)
        if bytes(root) == EMPTY_TRIE_ROOT and EMPTY_TRIE_ROOT not in db:
            return None

        remaining = bytes_to_nibbles(key)
        ref: NodeRef = bytes(root)

        # Every step consumes at least one nibble or returns.
        for _ in range(len(remaining) + 2):
            node = self._resolve(ref, db)

            if len(node) == BRANCH_WIDTH:
                if not remaining:
                    value = node[16]
                    if isinstance(value, list):
                        raise StateProofError("Branch value slot holds a list")
                    return value or None
                child = node[remaining[0]]
                remaining = remaining[1:]
                if child == b"":
                    return None
                ref = child
                continue

            if len(node) == PAIR_WIDTH:
                path, is_leaf = decode_hex_prefix(node[0])

                if is_leaf:
                    value = node[1]
                    if isinstance(value, list):
                        raise StateProofError("Leaf value is a list")
                    return value if path == remaining else None

                if not path:
                    raise StateProofError("Extension node with empty path")
                if remaining[:len(path)] != path:
                    return None
                remaining = remaining[len(path):]
                if node[1] == b"":
                    raise StateProofError("Extension node without child")
                ref = node[1]
                continue

            raise StateProofError(f"Node has {len(node)} items; expected 2 or 17")

        raise StateProofError("Proof path longer than key")

    def verify_inclusion(
        self,
        root: bytes,
        key: bytes,
        value: bytes,
        nodes: Iterable[bytes],
    ) -> bool:
        """
        Check that key maps to value under root.

        Malformed proofs give False rather than raising.
        """
        try:
            found = self.lookup(root, key, nodes)
        except StateProofError as e:
            logger.debug(f"State proof rejected: {e.message}")
            return False

        if found is None:
            logger.debug(f"State proof shows key {short_hex(key)} absent")
            return False
        return found == bytes(value)


_default_checker = StateProofChecker()


def verify_inclusion(root: bytes, key: bytes, value: bytes, nodes: Iterable[bytes]) -> bool:
    """Module-level form of StateProofChecker.verify_inclusion with default bounds."""
    return _default_checker.verify_inclusion(root, key, value, nodes)


def verify_trie_proof(root: bytes, key: bytes, nodes: Iterable[bytes]) -> Optional[bytes]:
    """
    Proven value for key under root, or None for a proven absence.

    Raises:
        StateProofError: If the proof does not connect to root
    """
    return _default_checker.lookup(root, key, nodes)
