from __future__ import annotations

from typing import List, Set

import bittensor as bt

from fellows.chain.sources import MembershipSource
from fellows.core.models import ACCOUNT_LEN, Member
from fellows.exceptions import SourceConnectionError


async def fetch_members(source: MembershipSource) -> List[Member]:
    """
    Enumerate the collective's members with their ranks.

    Everything except `account` and `rank` starts empty. Transport errors from
    the source propagate unchanged; a malformed or repeated account is treated
    as a protocol mismatch since no partial member list is usable.
    """
    bt.logging.info("Fetching collective members...")
    records = await source.member_records()

    members: List[Member] = []
    seen: Set[bytes] = set()
    for account, rank in records:
        if len(account) != ACCOUNT_LEN:
            raise SourceConnectionError(f"member key of {len(account)} bytes, expected {ACCOUNT_LEN}")
        if account in seen:
            raise SourceConnectionError(f"duplicate member 0x{account.hex()}")
        seen.add(account)

        member = Member(account=account, rank=int(rank))
        bt.logging.debug(f"Fetched member: {member.address()} rank {member.rank}")
        members.append(member)

    bt.logging.info(f"Fetched {len(members)} members")
    return members
