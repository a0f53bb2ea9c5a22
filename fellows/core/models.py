"""
Core data models for the fellowship directory.

A `DirectorySnapshot` is built by one refresh cycle, finalized once and then
only ever replaced, never mutated. All models are frozen.
"""

from __future__ import annotations

import time
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from scalecodec.utils.ss58 import ss58_encode

from fellows.core import compact


ACCOUNT_LEN = 32
# Polkadot network-version byte; addresses are always rendered with it so the
# same account yields the same string everywhere.
SS58_FORMAT = 0


class Judgement(str, Enum):
    """Registrar judgements, in on-chain variant order."""

    UNKNOWN = "Unknown"
    FEE_PAID = "FeePaid"
    REASONABLE = "Reasonable"
    KNOWN_GOOD = "KnownGood"
    OUT_OF_DATE = "OutOfDate"
    LOW_QUALITY = "LowQuality"
    ERRONEOUS = "Erroneous"

    @property
    def index(self) -> int:
        return list(Judgement).index(self)

    @classmethod
    def from_index(cls, index: int) -> "Judgement":
        return list(cls)[index]


POSITIVE_JUDGEMENTS = frozenset({Judgement.REASONABLE, Judgement.KNOWN_GOOD})


class IdentityClaim(BaseModel):
    """Self-asserted identity fields plus registrar judgements."""

    model_config = ConfigDict(frozen=True)

    # Both fields keep the compact tagged encoding; see `fellows.core.compact`.
    display: bytes = compact.ABSENT
    github: bytes = compact.ABSENT
    judgements: Tuple[Tuple[int, Judgement], ...] = ()

    @field_validator("display", "github")
    @classmethod
    def _single_data_item(cls, v: bytes) -> bytes:
        if compact.encoded_length(v) != len(v):
            raise ValueError("trailing bytes after data item")
        return v

    def display_name(self) -> Optional[str]:
        return compact.decode(self.display)

    def github_handle(self) -> Optional[str]:
        return compact.decode(self.github)

    def has_positive_judgement(self) -> bool:
        return any(j in POSITIVE_JUDGEMENTS for _, j in self.judgements)


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: bytes
    rank: int = Field(ge=0, le=0xFFFF)
    identity: Optional[IdentityClaim] = None
    social_linked: bool = False
    # Reserved for a future scoring pass; nothing computes it yet.
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("account")
    @classmethod
    def _account_len(cls, v: bytes) -> bytes:
        if len(v) != ACCOUNT_LEN:
            raise ValueError(f"account must be {ACCOUNT_LEN} bytes, got {len(v)}")
        return v

    @model_validator(mode="after")
    def _link_needs_handle(self) -> "Member":
        if self.social_linked and self.claimed_handle() is None:
            raise ValueError("social_linked requires a claimed handle")
        return self

    def address(self) -> str:
        return ss58_encode(self.account, ss58_format=SS58_FORMAT)

    def name(self) -> Optional[str]:
        return self.identity.display_name() if self.identity else None

    def claimed_handle(self) -> Optional[str]:
        return self.identity.github_handle() if self.identity else None

    def verified(self) -> bool:
        return self.identity is not None and self.identity.has_positive_judgement()


class DirectoryStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    named: int = 0
    verified: int = 0
    with_handle: int = 0
    handle_linked: int = 0
    total: int = 0

    @classmethod
    def from_members(cls, members: Iterable[Member]) -> "DirectoryStats":
        named = verified = with_handle = handle_linked = total = 0
        for m in members:
            total += 1
            if m.name() is not None:
                named += 1
            if m.verified():
                verified += 1
            if m.claimed_handle() is not None:
                with_handle += 1
            if m.social_linked:
                handle_linked += 1
        return cls(
            named=named,
            verified=verified,
            with_handle=with_handle,
            handle_linked=handle_linked,
            total=total,
        )


class DirectorySnapshot(BaseModel):
    """The fully resolved directory produced by one refresh cycle.

    `stats` is derived: it is only ever set by `finalize()` and is not part of
    the persisted form.
    """

    model_config = ConfigDict(frozen=True)

    members: Mapping[bytes, Member] = Field(default_factory=dict, validate_default=True)
    captured_at: Optional[int] = Field(default=None, ge=0)
    stats: DirectoryStats = Field(default_factory=DirectoryStats)

    @field_validator("members")
    @classmethod
    def _read_only_members(cls, v: Mapping[bytes, Member]) -> Mapping[bytes, Member]:
        return MappingProxyType(dict(v))

    @classmethod
    def from_members(cls, members: Iterable[Member], *, captured_at: Optional[int]) -> "DirectorySnapshot":
        return cls(members={m.account: m for m in members}, captured_at=captured_at)

    def finalize(self) -> "DirectorySnapshot":
        return self.model_copy(update={"stats": DirectoryStats.from_members(self.members.values())})

    def ordered_members(self) -> List[Member]:
        return [self.members[k] for k in sorted(self.members)]

    def since_last_update(self, now: Optional[float] = None) -> Optional[int]:
        if self.captured_at is None:
            return None
        now_s = int(time.time() if now is None else now)
        return max(0, now_s - self.captured_at)
