"""Capability interfaces the aggregator talks to.

Production implementations live in `fellows.chain.substrate` and
`fellows.social.github`; tests plug in small in-memory stubs.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

from fellows.core.models import IdentityClaim


class MembershipSource(Protocol):
    async def member_records(self) -> List[Tuple[bytes, int]]:
        """All `(account, rank)` pairs of the collective, in source order."""
        ...


class IdentitySource(Protocol):
    async def identity_of(self, account: bytes) -> Optional[IdentityClaim]:
        """The account's own identity record, if registered."""
        ...

    async def super_of(self, account: bytes) -> Optional[Tuple[bytes, bytes]]:
        """`(parent_account, sub_label)` if the account is a sub-identity.

        The label keeps its compact tagged encoding.
        """
        ...


class ProfileSource(Protocol):
    async def bio(self, handle: str) -> Optional[str]:
        """Free-text biography of the external profile, None if it has none."""
        ...
