from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from fellows.core.models import Member


class MemberView(BaseModel):
    address: str
    rank: int
    name: Optional[str] = None
    github: Optional[str] = None
    # Registrar judged the identity Reasonable or KnownGood.
    verified: bool = False
    # GitHub bio mentions the address.
    github_verified: bool = False

    @classmethod
    def from_member(cls, member: Member) -> "MemberView":
        return cls(
            address=member.address(),
            rank=member.rank,
            name=member.name(),
            github=member.claimed_handle(),
            verified=member.verified(),
            github_verified=member.social_linked,
        )


class StatsView(BaseModel):
    named: int
    verified: int
    with_handle: int
    handle_linked: int
    total: int
    captured_at: Optional[int] = None
    last_updated: str = "?"
