"""In-memory stand-ins for the remote sources."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from fellows.core import compact
from fellows.core.models import IdentityClaim, Judgement
from fellows.exceptions import SourceConnectionError


def acct(n: int) -> bytes:
    return bytes([n]) * 32


def claim(
    name: Optional[str] = None,
    github: Optional[str] = None,
    judgements: Tuple[Tuple[int, Judgement], ...] = (),
) -> IdentityClaim:
    return IdentityClaim(display=compact.encode_raw(name), github=compact.encode_raw(github), judgements=judgements)


class StubMembership:
    def __init__(self, records: List[Tuple[bytes, int]], *, fail: bool = False, delay_s: float = 0.0):
        self.records = records
        self.fail = fail
        self.delay_s = delay_s
        self.calls = 0

    async def member_records(self) -> List[Tuple[bytes, int]]:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.fail:
            raise SourceConnectionError("collectives node unreachable")
        return list(self.records)


class StubIdentities:
    def __init__(
        self,
        direct: Optional[Dict[bytes, IdentityClaim]] = None,
        supers: Optional[Dict[bytes, Tuple[bytes, bytes]]] = None,
        *,
        fail_on: Optional[bytes] = None,
    ):
        self.direct = direct or {}
        self.supers = supers or {}
        self.fail_on = fail_on
        self.calls: List[Tuple[str, bytes]] = []

    async def identity_of(self, account: bytes) -> Optional[IdentityClaim]:
        self.calls.append(("identity_of", account))
        if account == self.fail_on:
            raise SourceConnectionError("people node unreachable")
        return self.direct.get(account)

    async def super_of(self, account: bytes) -> Optional[Tuple[bytes, bytes]]:
        self.calls.append(("super_of", account))
        return self.supers.get(account)


class StubProfiles:
    def __init__(self, bios: Optional[Dict[str, Optional[str]]] = None, errors: Optional[Dict[str, Exception]] = None):
        self.bios = bios or {}
        self.errors = errors or {}
        self.calls: List[str] = []

    async def bio(self, handle: str) -> Optional[str]:
        self.calls.append(handle)
        if handle in self.errors:
            raise self.errors[handle]
        return self.bios.get(handle)
