"""
Block, proposal, proof and vote types.

All types are frozen pydantic models. Fixed-size fields (hashes, addresses,
bloom) and integer widths are checked at construction, so encoding a
constructed value never fails. Proof material that originates from peers
(signatures, claimed block hashes) is kept as raw bytes and judged during
verification instead.

Byte fields accept raw bytes or 0x-prefixed hex strings; integer fields
accept ints or 0x-prefixed hex strings, matching Axon's JSON-RPC output.
"""

import logging
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..exceptions import StructuralError
from .constants import (
    ADDRESS_LENGTH,
    BLOOM_LENGTH,
    HASH_LENGTH,
    U8_MAX,
    U32_MAX,
    U64_MAX,
    U256_MAX,
    VOTE_TYPE_PRECOMMIT,
)
from .encoding import encode
from .hashing import keccak256

logger = logging.getLogger(__name__)

ZERO_HASH = b"\x00" * HASH_LENGTH


def hex_decode(value: str) -> bytes:
    """Decode hex with or without a 0x prefix."""
    text = value[2:] if value.startswith(("0x", "0X")) else value
    return bytes.fromhex(text)


def hex_encode(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def short_hex(data: Optional[bytes]) -> str:
    """Shortened hex for log lines."""
    if data is None:
        return "None"
    return f"0x{bytes(data).hex()[:8]}..."


def _coerce_bytes(value: Any) -> Any:
    if isinstance(value, str):
        return hex_decode(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def _coerce_int(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        return int(value, 16) if len(value) > 2 else 0
    return value


def _require_length(value: bytes, length: int, name: str) -> bytes:
    if len(value) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(value)}")
    return value


class ParticipationBitmap(BaseModel):
    """
    Which committee members signed, by committee position.

    The wire form packs bits MSB-first: member 0 is the high bit of the
    first byte. Unused low bits of the last byte must be zero.
    """

    bits: tuple[bool, ...]

    model_config = ConfigDict(frozen=True)

    def __len__(self) -> int:
        return len(self.bits)

    def __getitem__(self, index: int) -> bool:
        return self.bits[index]

    def participants(self) -> list[int]:
        """Indexes of set bits, ascending."""
        return [i for i, bit in enumerate(self.bits) if bit]

    def count(self) -> int:
        return sum(1 for bit in self.bits if bit)

    def flip(self, index: int) -> "ParticipationBitmap":
        """Copy with one bit inverted."""
        bits = list(self.bits)
        bits[index] = not bits[index]
        return ParticipationBitmap(bits=tuple(bits))

    def to_bytes(self) -> bytes:
        """Pack MSB-first."""
        out = bytearray((len(self.bits) + 7) // 8)
        for i, bit in enumerate(self.bits):
            if bit:
                out[i // 8] |= 0x80 >> (i % 8)
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes, size: Optional[int] = None) -> "ParticipationBitmap":
        """
        Unpack a wire bitmap.

        Args:
            data: Packed bitmap bytes
            size: Committee size; defaults to every bit in data

        Raises:
            StructuralError: If the byte length does not fit size or
                padding bits are set
        """
        data = bytes(data)
        if size is None:
            size = len(data) * 8
        if size < 0:
            raise StructuralError(f"Invalid bitmap size {size}")

        expected = (size + 7) // 8
        if len(data) != expected:
            raise StructuralError(
                f"Bitmap has {len(data)} bytes, committee of {size} needs {expected}",
                expected=expected,
                actual=len(data),
            )

        bits = tuple(bool(data[i // 8] & (0x80 >> (i % 8))) for i in range(size))
        for i in range(size, expected * 8):
            if data[i // 8] & (0x80 >> (i % 8)):
                raise StructuralError(f"Bitmap padding bit {i} is set")
        return cls(bits=bits)

    @classmethod
    def from_indices(cls, size: int, indices) -> "ParticipationBitmap":
        """Bitmap of the given size with the listed positions set."""
        bits = [False] * size
        for index in indices:
            if not 0 <= index < size:
                raise ValueError(f"Index {index} outside bitmap of size {size}")
            bits[index] = True
        return cls(bits=tuple(bits))

    def __repr__(self) -> str:
        rendered = "".join("1" if bit else "0" for bit in self.bits)
        return f"ParticipationBitmap({rendered})"


class Vote(BaseModel):
    """The structure committee members sign."""

    height: int = Field(ge=0, le=U64_MAX)
    round: int = Field(ge=0, le=U64_MAX)
    vote_type: int = Field(default=VOTE_TYPE_PRECOMMIT, ge=0, le=U8_MAX)
    block_hash: bytes

    model_config = ConfigDict(frozen=True)

    def rlp_bytes(self) -> bytes:
        return encode([self.height, self.round, self.vote_type, self.block_hash])

    def signing_message(self) -> bytes:
        """keccak256 of the encoded vote; this is what gets hashed to G2."""
        return keccak256(self.rlp_bytes())


class FinalityProof(BaseModel):
    """
    Aggregated precommit for one block.

    signature and block_hash come from untrusted peers and are not
    validated here; malformed values fail verification instead.
    """

    number: int = Field(ge=0, le=U64_MAX)
    round: int = Field(default=0, ge=0, le=U64_MAX)
    bitmap: ParticipationBitmap
    signature: bytes
    block_hash: Optional[bytes] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("signature", "block_hash", mode="before")
    @classmethod
    def parse_bytes(cls, v: Any) -> Any:
        return _coerce_bytes(v)

    @field_validator("number", "round", mode="before")
    @classmethod
    def parse_int(cls, v: Any) -> Any:
        return _coerce_int(v)

    @field_validator("bitmap", mode="before")
    @classmethod
    def parse_bitmap(cls, v: Any) -> Any:
        if isinstance(v, (bytes, bytearray, str)):
            return ParticipationBitmap.from_bytes(_coerce_bytes(v))
        if isinstance(v, (list, tuple)):
            return ParticipationBitmap(bits=tuple(v))
        return v

    @classmethod
    def empty(cls) -> "FinalityProof":
        """Placeholder proof carried by headers whose parent has none (genesis)."""
        return cls(number=0, bitmap=ParticipationBitmap(bits=()), signature=b"")

    def vote(self, block_hash: bytes) -> Vote:
        """The precommit this proof claims to aggregate, for block_hash."""
        return Vote(height=self.number, round=self.round, block_hash=block_hash)

    def encode_fields(self) -> list:
        """Proof as embedded in a child header: [number, round, block_hash, signature, bitmap]."""
        return [
            self.number,
            self.round,
            self.block_hash if self.block_hash is not None else ZERO_HASH,
            self.signature,
            self.bitmap.to_bytes(),
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "round": self.round,
            "bitmap": hex_encode(self.bitmap.to_bytes()),
            "signature": hex_encode(self.signature),
            "block_hash": hex_encode(self.block_hash) if self.block_hash is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], committee_size: Optional[int] = None) -> "FinalityProof":
        """
        Build from Axon JSON.

        Args:
            data: Proof dict with hex fields
            committee_size: Unpack the bitmap to exactly this many bits

        Raises:
            StructuralError: If the bitmap does not fit committee_size
        """
        bitmap = data["bitmap"]
        if isinstance(bitmap, str):
            bitmap = ParticipationBitmap.from_bytes(hex_decode(bitmap), committee_size)
        return cls(
            number=data["number"],
            round=data.get("round", 0),
            bitmap=bitmap,
            signature=data["signature"],
            block_hash=data.get("block_hash"),
        )


class Header(BaseModel):
    """
    Axon block header.

    Field order is the canonical encoding order; the header's identity is
    keccak256 of that encoding. proof is the finality proof of the parent
    block, which every child header carries.
    """

    version: int = Field(default=0, ge=0, le=U8_MAX)
    prev_hash: bytes = ZERO_HASH
    proposer: bytes = b"\x00" * ADDRESS_LENGTH
    state_root: bytes
    transactions_root: bytes = ZERO_HASH
    signed_txs_hash: bytes = ZERO_HASH
    receipts_root: bytes = ZERO_HASH
    log_bloom: bytes = b"\x00" * BLOOM_LENGTH
    timestamp: int = Field(ge=0, le=U64_MAX)
    number: int = Field(ge=0, le=U64_MAX)
    gas_used: int = Field(default=0, ge=0, le=U256_MAX)
    gas_limit: int = Field(default=0, ge=0, le=U256_MAX)
    extra_data: tuple[bytes, ...] = ()
    base_fee_per_gas: int = Field(default=0, ge=0, le=U256_MAX)
    proof: FinalityProof = Field(default_factory=FinalityProof.empty)
    call_system_script_count: int = Field(default=0, ge=0, le=U32_MAX)
    chain_id: int = Field(default=0, ge=0, le=U64_MAX)

    model_config = ConfigDict(frozen=True)

    @field_validator(
        "prev_hash", "proposer", "state_root", "transactions_root",
        "signed_txs_hash", "receipts_root", "log_bloom",
        mode="before",
    )
    @classmethod
    def parse_bytes(cls, v: Any) -> Any:
        return _coerce_bytes(v)

    @field_validator("extra_data", mode="before")
    @classmethod
    def parse_extra_data(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(_coerce_bytes(item) for item in v)
        return v

    @field_validator(
        "version", "timestamp", "number", "gas_used", "gas_limit",
        "base_fee_per_gas", "call_system_script_count", "chain_id",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: Any) -> Any:
        return _coerce_int(v)

    @field_validator("proof", mode="before")
    @classmethod
    def parse_proof(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return FinalityProof.from_dict(v)
        return v

    @model_validator(mode="after")
    def check_lengths(self) -> "Header":
        for name in ("prev_hash", "state_root", "transactions_root",
                     "signed_txs_hash", "receipts_root"):
            _require_length(getattr(self, name), HASH_LENGTH, name)
        _require_length(self.proposer, ADDRESS_LENGTH, "proposer")
        _require_length(self.log_bloom, BLOOM_LENGTH, "log_bloom")
        return self

    def encode_fields(self) -> list:
        """Header as an ordered RLP list."""
        return [
            [self.version],
            self.prev_hash,
            self.proposer,
            self.state_root,
            self.transactions_root,
            self.signed_txs_hash,
            self.receipts_root,
            self.log_bloom,
            self.timestamp,
            self.number,
            self.gas_used,
            self.gas_limit,
            [[item] for item in self.extra_data],
            self.base_fee_per_gas,
            self.proof.encode_fields(),
            self.call_system_script_count,
            self.chain_id,
        ]

    def rlp_bytes(self) -> bytes:
        return encode(self.encode_fields())

    @property
    def hash(self) -> bytes:
        """Header hash: keccak256(rlp(header))."""
        return keccak256(self.rlp_bytes())

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        for key, value in data.items():
            if isinstance(value, bytes):
                data[key] = hex_encode(value)
        data["extra_data"] = [hex_encode(item) for item in self.extra_data]
        data["proof"] = self.proof.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Header":
        return cls(**{key: data[key] for key in cls.model_fields if key in data})


class Proposal(BaseModel):
    """
    The block as proposed to the committee.

    Its hash is the block hash that precommits sign. It takes most fields
    from the header, plus the state root of the parent block and the
    block's transaction hashes, neither of which the header stores.
    Receipts, bloom, gas used, base fee and chain id are not part of it.
    """

    version: int = Field(default=0, ge=0, le=U8_MAX)
    prev_hash: bytes = ZERO_HASH
    proposer: bytes = b"\x00" * ADDRESS_LENGTH
    prev_state_root: bytes = ZERO_HASH
    transactions_root: bytes = ZERO_HASH
    signed_txs_hash: bytes = ZERO_HASH
    timestamp: int = Field(default=0, ge=0, le=U64_MAX)
    number: int = Field(ge=0, le=U64_MAX)
    # Proposals carry gas_limit as u64
    gas_limit: int = Field(default=0, ge=0, le=U64_MAX)
    extra_data: tuple[bytes, ...] = ()
    proof: FinalityProof = Field(default_factory=FinalityProof.empty)
    call_system_script_count: int = Field(default=0, ge=0, le=U32_MAX)
    tx_hashes: tuple[bytes, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator(
        "prev_hash", "proposer", "prev_state_root", "transactions_root",
        "signed_txs_hash",
        mode="before",
    )
    @classmethod
    def parse_bytes(cls, v: Any) -> Any:
        return _coerce_bytes(v)

    @field_validator("extra_data", "tx_hashes", mode="before")
    @classmethod
    def parse_byte_list(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(_coerce_bytes(item) for item in v)
        return v

    @model_validator(mode="after")
    def check_lengths(self) -> "Proposal":
        for name in ("prev_hash", "prev_state_root", "transactions_root", "signed_txs_hash"):
            _require_length(getattr(self, name), HASH_LENGTH, name)
        _require_length(self.proposer, ADDRESS_LENGTH, "proposer")
        for tx_hash in self.tx_hashes:
            _require_length(tx_hash, HASH_LENGTH, "tx_hash")
        return self

    @classmethod
    def from_header(
        cls,
        header: Header,
        prev_state_root: bytes = ZERO_HASH,
        tx_hashes: Sequence[bytes] = (),
    ) -> "Proposal":
        """
        Rebuild the proposal for header.

        Raises:
            ValidationError: If header.gas_limit does not fit in 64 bits
        """
        return cls(
            version=header.version,
            prev_hash=header.prev_hash,
            proposer=header.proposer,
            prev_state_root=prev_state_root,
            transactions_root=header.transactions_root,
            signed_txs_hash=header.signed_txs_hash,
            timestamp=header.timestamp,
            number=header.number,
            gas_limit=header.gas_limit,
            extra_data=header.extra_data,
            proof=header.proof,
            call_system_script_count=header.call_system_script_count,
            tx_hashes=tuple(tx_hashes),
        )

    def encode_fields(self) -> list:
        """Proposal as an ordered RLP list of 13 items."""
        return [
            [self.version],
            self.prev_hash,
            self.proposer,
            self.prev_state_root,
            self.transactions_root,
            self.signed_txs_hash,
            self.timestamp,
            self.number,
            self.gas_limit,
            [[item] for item in self.extra_data],
            self.proof.encode_fields(),
            self.call_system_script_count,
            list(self.tx_hashes),
        ]

    def rlp_bytes(self) -> bytes:
        return encode(self.encode_fields())

    @property
    def hash(self) -> bytes:
        """Block hash: keccak256(rlp(proposal))."""
        return keccak256(self.rlp_bytes())


class StateProof(BaseModel):
    """Claim that key maps to value under some state root."""

    key: bytes
    value: bytes
    nodes: tuple[bytes, ...]

    model_config = ConfigDict(frozen=True)

    @field_validator("key", "value", mode="before")
    @classmethod
    def parse_bytes(cls, v: Any) -> Any:
        return _coerce_bytes(v)

    @field_validator("nodes", mode="before")
    @classmethod
    def parse_nodes(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(_coerce_bytes(node) for node in v)
        return v

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": hex_encode(self.key),
            "value": hex_encode(self.value),
            "nodes": [hex_encode(node) for node in self.nodes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StateProof":
        return cls(key=data["key"], value=data["value"], nodes=data["nodes"])
