"""
Keccak-256 digest utilities.

Axon (like Ethereum) uses the original Keccak padding, not NIST SHA3-256,
so hashlib.sha3_256 would produce different digests.
"""

from typing import Any, Protocol

from Crypto.Hash import keccak

from .encoding import encode


class Digest(Protocol):
    """Fixed-output hash capability."""

    def __call__(self, data: bytes) -> bytes:
        ...


def keccak256(data: bytes) -> bytes:
    """
    Hash data with Keccak-256.

    Args:
        data: Bytes to hash

    Returns:
        32-byte digest
    """
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def hash_encoded(value: Any) -> bytes:
    """Keccak-256 of the RLP encoding of value."""
    return keccak256(encode(value))


class Keccak256Digest:
    """Default Digest implementation."""

    digest_size = 32

    def __call__(self, data: bytes) -> bytes:
        return keccak256(data)

    def __repr__(self) -> str:
        return "Keccak256Digest()"


# Root of a trie with no entries
EMPTY_TRIE_ROOT = keccak256(encode(b""))
