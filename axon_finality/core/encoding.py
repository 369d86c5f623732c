"""
Canonical RLP encoding.

This module provides:
- encode(): deterministic Recursive Length Prefix encoding of unsigned
  integers, byte strings and (nested) lists
- decode(): strict decoder that only accepts canonical encodings
- Encoder: capability protocol so callers can plug in another encoder
"""

import logging
from typing import Any, Protocol, Union

from ..exceptions import DecodingError, EncodingError

logger = logging.getLogger(__name__)

RLPItem = Union[bytes, list]

SHORT_STRING_OFFSET = 0x80
LONG_STRING_OFFSET = 0xB7
SHORT_LIST_OFFSET = 0xC0
LONG_LIST_OFFSET = 0xF7
SHORT_PAYLOAD_MAX = 55


class Encoder(Protocol):
    """Anything that turns a structure into canonical bytes."""

    def encode(self, value: Any) -> bytes:
        ...


def int_to_big_endian(value: int) -> bytes:
    """Minimal big-endian representation; zero is the empty string."""
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def big_endian_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")


def _length_prefix(length: int, short_offset: int, long_offset: int) -> bytes:
    if length <= SHORT_PAYLOAD_MAX:
        return bytes([short_offset + length])
    length_bytes = int_to_big_endian(length)
    return bytes([long_offset + len(length_bytes)]) + length_bytes


def encode(value: Any) -> bytes:
    """
    Encode a value as RLP.

    Args:
        value: Non-negative int, bytes-like, or list/tuple of encodable values

    Returns:
        Canonical encoding

    Raises:
        EncodingError: For negative integers, booleans or unsupported types
    """
    if isinstance(value, bool):
        raise EncodingError("Booleans have no canonical RLP form; use 0 or 1")

    if isinstance(value, int):
        if value < 0:
            raise EncodingError(f"Cannot encode negative integer {value}")
        value = int_to_big_endian(value)

    if isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        if len(data) == 1 and data[0] < SHORT_STRING_OFFSET:
            return data
        return _length_prefix(len(data), SHORT_STRING_OFFSET, LONG_STRING_OFFSET) + data

    if isinstance(value, (list, tuple)):
        payload = b"".join(encode(item) for item in value)
        return _length_prefix(len(payload), SHORT_LIST_OFFSET, LONG_LIST_OFFSET) + payload

    raise EncodingError(f"Cannot RLP-encode value of type {type(value).__name__}")


def _decode_length(data: bytes, offset: int, length_of_length: int) -> int:
    start = offset + 1
    end = start + length_of_length
    if end > len(data):
        raise DecodingError("Length prefix runs past end of input", offset)
    length_bytes = data[start:end]
    if length_bytes[0] == 0:
        raise DecodingError("Length prefix has leading zero", offset)
    length = big_endian_to_int(length_bytes)
    if length <= SHORT_PAYLOAD_MAX:
        raise DecodingError("Long form used for short payload", offset)
    return length


def _decode_item(data: bytes, offset: int) -> tuple[RLPItem, int]:
    """Decode the item starting at offset; return (item, next_offset)."""
    if offset >= len(data):
        raise DecodingError("Unexpected end of input", offset)

    prefix = data[offset]

    if prefix < SHORT_STRING_OFFSET:
        return data[offset:offset + 1], offset + 1

    if prefix <= LONG_STRING_OFFSET:
        length = prefix - SHORT_STRING_OFFSET
        start = offset + 1
        end = start + length
        if end > len(data):
            raise DecodingError("String runs past end of input", offset)
        if length == 1 and data[start] < SHORT_STRING_OFFSET:
            raise DecodingError("Single byte should be encoded as itself", offset)
        return data[start:end], end

    if prefix < SHORT_LIST_OFFSET:
        length_of_length = prefix - LONG_STRING_OFFSET
        length = _decode_length(data, offset, length_of_length)
        start = offset + 1 + length_of_length
        end = start + length
        if end > len(data):
            raise DecodingError("String runs past end of input", offset)
        return data[start:end], end

    if prefix <= LONG_LIST_OFFSET:
        start = offset + 1
        end = start + prefix - SHORT_LIST_OFFSET
    else:
        length_of_length = prefix - LONG_LIST_OFFSET
        length = _decode_length(data, offset, length_of_length)
        start = offset + 1 + length_of_length
        end = start + length

    if end > len(data):
        raise DecodingError("List runs past end of input", offset)

    items: list[RLPItem] = []
    cursor = start
    while cursor < end:
        item, cursor = _decode_item(data, cursor)
        items.append(item)
    if cursor != end:
        raise DecodingError("List payload length mismatch", offset)
    return items, end


def decode(data: bytes) -> RLPItem:
    """
    Decode a single RLP item.

    Args:
        data: Encoded bytes

    Returns:
        bytes for a string item, list for a list item

    Raises:
        DecodingError: If the input is not exactly one canonical item
    """
    data = bytes(data)
    item, end = _decode_item(data, 0)
    if end != len(data):
        raise DecodingError(f"Trailing bytes after RLP item ({len(data) - end})", end)
    return item


class RLPEncoder:
    """Default Encoder implementation."""

    def encode(self, value: Any) -> bytes:
        return encode(value)

    def __repr__(self) -> str:
        return "RLPEncoder()"
