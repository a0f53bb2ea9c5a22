from __future__ import annotations

from typing import Optional

import bittensor as bt

from fellows.chain.sources import IdentitySource
from fellows.core import compact
from fellows.core.models import IdentityClaim, Member


async def resolve(account: bytes, source: IdentitySource) -> Optional[IdentityClaim]:
    """
    Resolve the identity that applies to `account`.

    Order is fixed: the account's own record wins; otherwise, if the account is
    a sub-identity, the parent's record is used as is. The sub label is not
    merged into the display name. None means nothing is registered, which is
    not an error. `SourceConnectionError` from either lookup propagates.
    """
    claim = await source.identity_of(account)
    if claim is not None:
        return claim

    parent = await source.super_of(account)
    if parent is None:
        return None

    parent_account, sub_label = parent
    bt.logging.debug(
        f"Falling back to super identity 0x{parent_account.hex()} (sub label {compact.decode(sub_label)!r})"
    )
    return await source.identity_of(parent_account)


def is_verified(subject: Optional[IdentityClaim | Member]) -> bool:
    """True iff a registrar judged the identity `Reasonable` or `KnownGood`."""
    if isinstance(subject, Member):
        subject = subject.identity
    if subject is None:
        return False
    return subject.has_positive_judgement()
