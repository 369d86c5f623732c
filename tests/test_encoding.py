"""
Tests for canonical RLP encoding.

Tests cover:
- Known encodings for strings, integers and lists
- Rejection of values without a canonical form
- Strict decoding of non-canonical input
"""

import pytest

from axon_finality.core.encoding import RLPEncoder, decode, encode
from axon_finality.exceptions import DecodingError, EncodingError


class TestEncode:
    """Tests for encode()."""

    @pytest.mark.parametrize("value,expected", [
        (b"", b"\x80"),
        (b"\x00", b"\x00"),
        (b"\x7f", b"\x7f"),
        (b"\x80", b"\x81\x80"),
        (b"dog", b"\x83dog"),
        (0, b"\x80"),
        (15, b"\x0f"),
        (127, b"\x7f"),
        (128, b"\x81\x80"),
        (1024, b"\x82\x04\x00"),
        ([], b"\xc0"),
        ([b"cat", b"dog"], b"\xc8\x83cat\x83dog"),
    ])
    def test_known_encodings(self, value, expected):
        """Test values with well-known encodings."""
        assert encode(value) == expected

    def test_nested_lists(self):
        """Test the set-theoretic representation of three."""
        value = [[], [[]], [[], [[]]]]
        assert encode(value) == bytes.fromhex("c7c0c1c0c3c0c1c0")

    def test_long_string(self):
        """Test a string over 55 bytes uses the long form."""
        data = b"a" * 56
        assert encode(data) == b"\xb8\x38" + data

    def test_long_list(self):
        """Test a list payload over 55 bytes uses the long form."""
        value = [b"x" * 30, b"y" * 30]
        encoded = encode(value)
        assert encoded[:2] == b"\xf8\x3e"
        assert len(encoded) == 2 + 62

    def test_tuple_and_bytearray(self):
        """Test tuples and bytearrays encode like lists and bytes."""
        assert encode((b"cat", bytearray(b"dog"))) == encode([b"cat", b"dog"])

    def test_deterministic(self):
        """Test equal values always give identical bytes."""
        value = [1, b"\x00" * 32, [2, 3]]
        assert encode(value) == encode(list(value))

    def test_negative_integer_rejected(self):
        """Test negative integers cannot be encoded."""
        with pytest.raises(EncodingError):
            encode(-1)

    def test_bool_rejected(self):
        """Test booleans are not silently treated as integers."""
        with pytest.raises(EncodingError):
            encode(True)

    def test_unsupported_type_rejected(self):
        """Test strings and None are rejected."""
        with pytest.raises(EncodingError):
            encode("dog")
        with pytest.raises(EncodingError):
            encode(None)

    def test_encoder_object(self):
        """Test RLPEncoder delegates to encode()."""
        assert RLPEncoder().encode([1, 2]) == encode([1, 2])


class TestDecode:
    """Tests for decode()."""

    def test_decode_nested(self):
        """Test decoding returns bytes and lists."""
        value = [b"cat", [b"dog", b""], b"\x05"]
        assert decode(encode(value)) == value

    def test_single_byte_with_prefix_rejected(self):
        """Test a byte below 0x80 must be encoded as itself."""
        with pytest.raises(DecodingError):
            decode(b"\x81\x05")

    def test_long_form_for_short_payload_rejected(self):
        """Test the long form cannot carry 55 bytes or fewer."""
        with pytest.raises(DecodingError):
            decode(b"\xb8\x03abc")

    def test_leading_zero_length_rejected(self):
        """Test length-of-length with a leading zero byte."""
        with pytest.raises(DecodingError):
            decode(b"\xb9\x00\x38" + b"a" * 56)

    def test_truncated_rejected(self):
        """Test input that ends inside an item."""
        with pytest.raises(DecodingError):
            decode(b"\x83do")

    def test_trailing_bytes_rejected(self):
        """Test bytes after the first item."""
        with pytest.raises(DecodingError) as exc:
            decode(b"\x83dog\x00")
        assert exc.value.offset == 4

    def test_list_length_mismatch_rejected(self):
        """Test a list whose items overrun the declared payload."""
        with pytest.raises(DecodingError):
            decode(b"\xc2\x83dog")

    def test_empty_input_rejected(self):
        """Test empty input."""
        with pytest.raises(DecodingError):
            decode(b"")
