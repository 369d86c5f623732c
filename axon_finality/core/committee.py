"""
Validator committee model.

A Committee is an ordered, immutable list of BLS public keys with voting
weights. Order matters: participation bitmaps address members by position.
A CommitteeSchedule maps block-number ranges to the committee that was
active for them.
"""

import logging
from typing import Any, Iterator, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..exceptions import CommitteeError
from .constants import ADDRESS_LENGTH, U32_MAX, U64_MAX
from .types import _coerce_bytes, hex_encode, short_hex

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMITTEE_SIZE = 1024


class CommitteeMember(BaseModel):
    """A validator eligible to vote."""

    public_key: bytes
    vote_weight: int = Field(default=1, ge=0, le=U32_MAX)
    propose_weight: int = Field(default=1, ge=0, le=U32_MAX)
    address: Optional[bytes] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("public_key", "address", mode="before")
    @classmethod
    def parse_bytes(cls, v: Any) -> Any:
        return _coerce_bytes(v)

    @field_validator("address")
    @classmethod
    def check_address(cls, v: Optional[bytes]) -> Optional[bytes]:
        if v is not None and len(v) != ADDRESS_LENGTH:
            raise ValueError(f"address must be {ADDRESS_LENGTH} bytes, got {len(v)}")
        return v

    def to_dict(self) -> dict[str, Any]:
        return {
            "bls_pub_key": hex_encode(self.public_key),
            "vote_weight": self.vote_weight,
            "propose_weight": self.propose_weight,
            "address": hex_encode(self.address) if self.address is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommitteeMember":
        """Accepts Axon's ValidatorExtend JSON (bls_pub_key) or public_key."""
        return cls(
            public_key=data.get("bls_pub_key", data.get("public_key")),
            vote_weight=data.get("vote_weight", 1),
            propose_weight=data.get("propose_weight", 1),
            address=data.get("address"),
        )


class Committee:
    """
    Ordered validator committee.

    Read-only after construction; one instance can be shared by any
    number of concurrent verifications.

    Usage:
        committee = Committee([CommitteeMember(public_key=pk) for pk in keys])
        committee.total_weight()
    """

    __slots__ = ("_members", "_total_weight")

    def __init__(
        self,
        members: Sequence[CommitteeMember],
        max_size: int = DEFAULT_MAX_COMMITTEE_SIZE,
    ):
        """
        Args:
            members: Members in protocol order
            max_size: Upper bound on committee size

        Raises:
            CommitteeError: On an empty committee, zero total weight,
                duplicate public keys, or more than max_size members
        """
        members = tuple(members)
        if not members:
            raise CommitteeError("Committee must have at least one member")
        if len(members) > max_size:
            raise CommitteeError(f"Committee of {len(members)} exceeds maximum {max_size}")

        seen: set[bytes] = set()
        for member in members:
            if member.public_key in seen:
                raise CommitteeError(f"Duplicate public key {short_hex(member.public_key)}")
            seen.add(member.public_key)

        total = sum(member.vote_weight for member in members)
        if total <= 0:
            raise CommitteeError("Committee total vote weight must be positive")

        object.__setattr__(self, "_members", members)
        object.__setattr__(self, "_total_weight", total)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Committee is immutable")

    @classmethod
    def sorted(cls, members: Sequence[CommitteeMember], **kwargs) -> "Committee":
        """Committee in canonical order (ascending public key bytes)."""
        return cls(sorted(members, key=lambda m: m.public_key), **kwargs)

    @classmethod
    def from_public_keys(cls, public_keys: Sequence[bytes], weight: int = 1) -> "Committee":
        return cls([CommitteeMember(public_key=pk, vote_weight=weight) for pk in public_keys])

    @property
    def members(self) -> tuple[CommitteeMember, ...]:
        return self._members

    @property
    def public_keys(self) -> list[bytes]:
        return [member.public_key for member in self._members]

    def total_weight(self) -> int:
        return self._total_weight

    def member_at(self, index: int) -> CommitteeMember:
        if not 0 <= index < len(self._members):
            raise IndexError(f"Member index {index} out of range for committee of {len(self._members)}")
        return self._members[index]

    def len(self) -> int:
        return len(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[CommitteeMember]:
        return iter(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Committee):
            return NotImplemented
        return self._members == other._members

    def __hash__(self) -> int:
        return hash(self._members)

    def to_list(self) -> list[dict[str, Any]]:
        return [member.to_dict() for member in self._members]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]], **kwargs) -> "Committee":
        return cls([CommitteeMember.from_dict(item) for item in data], **kwargs)

    def __repr__(self) -> str:
        return f"Committee(size={len(self._members)}, total_weight={self._total_weight})"


class MetadataVersion(BaseModel):
    """Inclusive block-number range a committee is active for."""

    start: int = Field(ge=0, le=U64_MAX)
    end: int = Field(ge=0, le=U64_MAX)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_order(self) -> "MetadataVersion":
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} precedes start {self.start}")
        return self

    def contains(self, number: int) -> bool:
        return self.start <= number <= self.end

    def overlaps(self, other: "MetadataVersion") -> bool:
        return self.start <= other.end and other.start <= self.end


class CommitteeEpoch(BaseModel):
    """One schedule entry: a committee, its epoch, and its block range."""

    version: MetadataVersion
    epoch: int = Field(ge=0, le=U64_MAX)
    committee: Committee

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class CommitteeSchedule:
    """
    Committees by block range.

    Usage:
        schedule = CommitteeSchedule()
        schedule.add(MetadataVersion(start=0, end=99), epoch=0, committee=c0)
        schedule.committee_for(42)
    """

    def __init__(self) -> None:
        self._entries: list[CommitteeEpoch] = []

    def add(self, version: MetadataVersion, epoch: int, committee: Committee) -> CommitteeEpoch:
        """
        Register a committee for a block range.

        Raises:
            CommitteeError: If the range overlaps an existing entry
        """
        for entry in self._entries:
            if entry.version.overlaps(version):
                raise CommitteeError(
                    f"Range {version.start}-{version.end} overlaps epoch {entry.epoch} "
                    f"({entry.version.start}-{entry.version.end})"
                )

        entry = CommitteeEpoch(version=version, epoch=epoch, committee=committee)
        self._entries.append(entry)
        self._entries.sort(key=lambda e: e.version.start)
        logger.debug(f"Scheduled epoch {epoch} for blocks {version.start}-{version.end}")
        return entry

    def entry_for(self, number: int) -> Optional[CommitteeEpoch]:
        for entry in self._entries:
            if entry.version.contains(number):
                return entry
        return None

    def committee_for(self, number: int) -> Committee:
        """
        Raises:
            CommitteeError: If no committee covers number
        """
        entry = self.entry_for(number)
        if entry is None:
            raise CommitteeError(f"No committee scheduled for block {number}")
        return entry.committee

    @property
    def epochs(self) -> list[int]:
        return [entry.epoch for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CommitteeSchedule(epochs={self.epochs})"
