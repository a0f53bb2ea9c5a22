"""One refresh cycle: members, then identities, then social links."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Callable, List, Optional

import bittensor as bt

from fellows.chain.identity import resolve
from fellows.chain.members import fetch_members
from fellows.chain.sources import IdentitySource, MembershipSource, ProfileSource
from fellows.core.models import DirectorySnapshot, Member
from fellows.exceptions import ExternalApiError
from fellows.social.verifier import verify


DEFAULT_CYCLE_TIMEOUT_S = 600.0


class DirectoryAggregator:
    """
    Build a fresh `DirectorySnapshot` from the remote sources.

    Stages run strictly in order so that every member is enumerated before its
    identity is resolved, and resolved before its profile is checked. The whole
    cycle shares one wall-clock budget; on expiry the builtin `TimeoutError` is
    raised and nothing is returned.

    Sources that are async context managers (the Substrate ones) are connected
    for the duration of the cycle only.
    """

    def __init__(
        self,
        membership: MembershipSource,
        identities: IdentitySource,
        profiles: Optional[ProfileSource] = None,
        *,
        timeout_s: float = DEFAULT_CYCLE_TIMEOUT_S,
        strict_social: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.membership = membership
        self.identities = identities
        self.profiles = profiles
        self.timeout_s = timeout_s
        self.strict_social = strict_social
        self._clock = clock

    async def run(self) -> DirectorySnapshot:
        started = int(self._clock())
        try:
            return await asyncio.wait_for(self._collect(started), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            raise TimeoutError(f"directory refresh exceeded {self.timeout_s:.0f}s") from None

    async def _collect(self, started: int) -> DirectorySnapshot:
        bt.logging.info("Fetching data...")
        async with contextlib.AsyncExitStack() as stack:
            for source in self._connectable_sources():
                await stack.enter_async_context(source)
            bt.logging.info("Clients set up")

            members = await fetch_members(self.membership)
            members = await self._resolve_identities(members)

        if self.profiles is not None:
            members = await self._check_social(members)

        snapshot = DirectorySnapshot.from_members(members, captured_at=started).finalize()
        bt.logging.info(
            f"Fetched directory: {snapshot.stats.total} members, {snapshot.stats.named} named, "
            f"{snapshot.stats.verified} verified, {snapshot.stats.handle_linked}/{snapshot.stats.with_handle} github linked"
        )
        return snapshot

    def _connectable_sources(self) -> List[object]:
        out: List[object] = []
        for source in (self.membership, self.identities):
            if hasattr(source, "__aenter__") and not any(source is s for s in out):
                out.append(source)
        return out

    async def _resolve_identities(self, members: List[Member]) -> List[Member]:
        bt.logging.info("Fetching identities...")
        resolved: List[Member] = []
        for member in members:
            identity = await resolve(member.account, self.identities)
            resolved.append(member.model_copy(update={"identity": identity}))
        bt.logging.info(f"Resolved {sum(1 for m in resolved if m.identity is not None)} identities")
        return resolved

    async def _check_social(self, members: List[Member]) -> List[Member]:
        bt.logging.info("Fetching github profiles...")
        checked: List[Member] = []
        for member in members:
            try:
                linked = await verify(member, self.profiles)
            except ExternalApiError as e:
                if self.strict_social:
                    raise
                bt.logging.warning(f"Skipping github check for {member.address()}: {e}")
                linked = False
            checked.append(member.model_copy(update={"social_linked": linked}))
        return checked
