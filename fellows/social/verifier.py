from __future__ import annotations

import bittensor as bt

from fellows.chain.sources import ProfileSource
from fellows.core.models import Member


def normalize_handle(handle: str) -> str:
    """`" @octocat "` -> `"octocat"`."""
    handle = handle.strip()
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.strip()


async def verify(member: Member, profiles: ProfileSource) -> bool:
    """
    Check that the member's claimed GitHub profile points back at the account.

    The profile bio must contain the member's SS58 address verbatim. A member
    without a claimed handle is never looked up. `ExternalApiError` from the
    profile source propagates; the caller decides whether it is fatal.
    """
    handle = member.claimed_handle()
    if handle is None:
        return False
    handle = normalize_handle(handle)
    if not handle:
        return False

    bt.logging.debug(f"Fetching github profile of {handle}")
    bio = await profiles.bio(handle)
    if not bio:
        return False

    address = member.address()
    links_back = address in bio
    bt.logging.debug(f"{address} links back: {links_back}")
    return links_back
