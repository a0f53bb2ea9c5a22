from __future__ import annotations

import asyncio

import pytest

from fellows.chain.members import fetch_members
from fellows.exceptions import SourceConnectionError
from tests.stubs import StubMembership, acct


def test_fetch_members_keeps_source_order_and_empty_fields():
    src = StubMembership([(acct(3), 6), (acct(1), 1), (acct(2), 3)])
    members = asyncio.run(fetch_members(src))

    assert [(m.account, m.rank) for m in members] == [(acct(3), 6), (acct(1), 1), (acct(2), 3)]
    for m in members:
        assert m.identity is None
        assert m.social_linked is False
        assert m.confidence_score is None


def test_fetch_members_rejects_duplicates():
    src = StubMembership([(acct(1), 1), (acct(1), 2)])
    with pytest.raises(SourceConnectionError):
        asyncio.run(fetch_members(src))


def test_fetch_members_rejects_short_keys():
    src = StubMembership([(b"\x01" * 20, 1)])
    with pytest.raises(SourceConnectionError):
        asyncio.run(fetch_members(src))


def test_fetch_members_propagates_transport_errors():
    with pytest.raises(SourceConnectionError):
        asyncio.run(fetch_members(StubMembership([], fail=True)))
