"""
Substrate-backed membership and identity sources.

Both sources are async context managers: entering connects to the node and
pins the current chain head, so every lookup of one refresh cycle reads the
same block. Decoded storage values come back in slightly different shapes
depending on the decoder in use; the helpers below normalise them.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

import bittensor as bt
from async_substrate_interface import AsyncSubstrateInterface
from scalecodec.utils.ss58 import ss58_decode, ss58_encode

from fellows.core import compact
from fellows.core.models import ACCOUNT_LEN, SS58_FORMAT, IdentityClaim, Judgement
from fellows.exceptions import DecodeError, SourceConnectionError
from fellows.utils.throttle import Throttle


SubstrateFactory = Callable[[str], Any]


def _unwrap(value: Any) -> Any:
    # ScaleObj wraps the decoded python value in `.value`.
    return value.value if hasattr(value, "value") and not isinstance(value, (dict, list, tuple, str, bytes)) else value


def account_bytes(key: Any) -> bytes:
    """Normalise a decoded AccountId32 into its 32 raw bytes."""
    key = _unwrap(key)
    if isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    elif isinstance(key, str):
        try:
            raw = bytes.fromhex(key[2:] if key.startswith("0x") else ss58_decode(key))
        except ValueError as e:
            raise DecodeError(f"bad account id {key!r}") from e
    elif isinstance(key, (list, tuple)):
        if len(key) == 1:
            return account_bytes(key[0])
        try:
            raw = bytes(key)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"bad account id {key!r}") from e
    else:
        raise DecodeError(f"unsupported account id {type(key).__name__}")
    if len(raw) != ACCOUNT_LEN:
        raise DecodeError(f"account id of {len(raw)} bytes")
    return raw


def _judgement(raw: Any) -> Judgement:
    # Unit variants decode as "Reasonable"; FeePaid carries a balance: {"FeePaid": 100}.
    name = next(iter(raw)) if isinstance(raw, dict) and raw else raw
    try:
        return Judgement(name)
    except ValueError as e:
        raise DecodeError(f"unknown judgement {raw!r}") from e


def _data_or_absent(value: Any) -> bytes:
    try:
        return compact.data_from_chain(value)
    except DecodeError as e:
        bt.logging.debug(f"Undecodable identity data, treating as absent: {e}")
        return compact.ABSENT


def identity_from_chain(value: Any) -> Optional[IdentityClaim]:
    """
    Build an `IdentityClaim` from a decoded `IdentityOf` value.

    Older runtimes store `(Registration, Option<Username>)`, newer ones the bare
    registration. Malformed records resolve to None.
    """
    value = _unwrap(value)
    if value is None:
        return None
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], dict):
        value = value[0]
    if not isinstance(value, dict):
        bt.logging.warning(f"Unexpected identity shape {type(value).__name__}, ignoring")
        return None

    info = value.get("info") or {}
    judgements: List[Tuple[int, Judgement]] = []
    for entry in value.get("judgements") or []:
        try:
            registrar, raw = entry
            judgements.append((int(registrar), _judgement(raw)))
        except (DecodeError, TypeError, ValueError) as e:
            bt.logging.debug(f"Skipping judgement {entry!r}: {e}")

    return IdentityClaim(
        display=_data_or_absent(info.get("display")),
        github=_data_or_absent(info.get("github")),
        judgements=tuple(judgements),
    )


def _default_factory(url: str) -> AsyncSubstrateInterface:
    return AsyncSubstrateInterface(url, ss58_format=SS58_FORMAT)


class _SubstrateSource:
    def __init__(
        self,
        url: str,
        *,
        cooldown_s: float = 0.0,
        substrate_factory: SubstrateFactory = _default_factory,
    ) -> None:
        self.url = url
        self._factory = substrate_factory
        self._throttle = Throttle(cooldown_s)
        self._substrate: Any = None
        self._block_hash: Optional[str] = None

    async def __aenter__(self):
        bt.logging.info(f"Connecting to {self.url}")
        try:
            self._substrate = self._factory(self.url)
            await self._substrate.initialize()
            self._block_hash = await self._substrate.get_chain_head()
        except Exception as e:
            raise SourceConnectionError(f"cannot connect to {self.url}: {e}") from e
        bt.logging.debug(f"Pinned {self.url} at block {self._block_hash}")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        substrate, self._substrate = self._substrate, None
        self._block_hash = None
        if substrate is not None:
            try:
                await substrate.close()
            except Exception as e:
                bt.logging.debug(f"Error closing {self.url}: {e}")

    def _api(self) -> Any:
        if self._substrate is None:
            raise SourceConnectionError(f"{type(self).__name__} used outside of `async with`")
        return self._substrate

    async def _query(self, module: str, storage_function: str, params: list) -> Any:
        substrate = self._api()
        await self._throttle.wait()
        try:
            result = await substrate.query(module, storage_function, params, block_hash=self._block_hash)
        except Exception as e:
            raise SourceConnectionError(f"{module}.{storage_function} failed: {e}") from e
        return _unwrap(result)


class CollectivesMembershipSource(_SubstrateSource):
    """Fellowship members from the Collectives chain (`FellowshipCollective.Members`)."""

    module = "FellowshipCollective"

    async def member_records(self) -> List[Tuple[bytes, int]]:
        substrate = self._api()
        await self._throttle.wait()
        records: List[Tuple[bytes, int]] = []
        try:
            result = await substrate.query_map(self.module, "Members", block_hash=self._block_hash)
            async for key, value in result:
                value = _unwrap(value)
                rank = value.get("rank") if isinstance(value, dict) else value
                records.append((account_bytes(key), int(rank)))
        except DecodeError as e:
            raise SourceConnectionError(f"unexpected member record: {e}") from e
        except Exception as e:
            raise SourceConnectionError(f"{self.module}.Members failed: {e}") from e
        return records


class PeopleIdentitySource(_SubstrateSource):
    """Identity records from the People chain (`Identity.IdentityOf` / `Identity.SuperOf`)."""

    module = "Identity"

    async def identity_of(self, account: bytes) -> Optional[IdentityClaim]:
        value = await self._query(self.module, "IdentityOf", [ss58_encode(account, ss58_format=SS58_FORMAT)])
        bt.logging.trace(f"IdentityOf 0x{account.hex()}: {value!r}")
        return identity_from_chain(value)

    async def super_of(self, account: bytes) -> Optional[Tuple[bytes, bytes]]:
        value = await self._query(self.module, "SuperOf", [ss58_encode(account, ss58_format=SS58_FORMAT)])
        bt.logging.trace(f"SuperOf 0x{account.hex()}: {value!r}")
        if value is None:
            return None
        try:
            parent, label = value
            return account_bytes(parent), _data_or_absent(label)
        except (DecodeError, TypeError, ValueError) as e:
            bt.logging.warning(f"Unexpected SuperOf record for 0x{account.hex()}: {e}")
            return None
