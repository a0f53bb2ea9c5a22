"""
On-disk cache of the last good snapshot.

The file holds a small versioned little-endian encoding of the members and the
capture time. Members are written in account order so identical snapshots
always produce identical bytes. Stats are not stored; `load()` recomputes them.

Layout::

    b"FDSN" | u8 version | option<u64> captured_at | u32 count | member * count

    member   = 32B account | u16 rank | option<identity> | u8 social_linked
               | option<f64> confidence_score
    identity = data display | data github | u32 n | (u32 registrar, u8 judgement) * n
    option   = u8 0 | u8 1 + value
    data     = compact tagged bytes (see fellows.core.compact)
"""

from __future__ import annotations

import os
import struct
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple, TypeVar, Union

import bittensor as bt
from pydantic import ValidationError

from fellows.core import compact
from fellows.core.models import ACCOUNT_LEN, DirectorySnapshot, IdentityClaim, Judgement, Member
from fellows.exceptions import CacheError, DecodeError


MAGIC = b"FDSN"
FORMAT_VERSION = 1

T = TypeVar("T")


def _option(value: Optional[T], encode: Callable[[T], bytes]) -> bytes:
    return b"\x00" if value is None else b"\x01" + encode(value)


def _encode_identity(identity: IdentityClaim) -> bytes:
    out = bytearray()
    out += identity.display
    out += identity.github
    out += struct.pack("<I", len(identity.judgements))
    for registrar, judgement in identity.judgements:
        out += struct.pack("<IB", registrar, judgement.index)
    return bytes(out)


def _encode_member(member: Member) -> bytes:
    out = bytearray()
    out += member.account
    out += struct.pack("<H", member.rank)
    out += _option(member.identity, _encode_identity)
    out += b"\x01" if member.social_linked else b"\x00"
    out += _option(member.confidence_score, lambda v: struct.pack("<d", v))
    return bytes(out)


def encode_snapshot(snapshot: DirectorySnapshot) -> bytes:
    out = bytearray(MAGIC)
    out += struct.pack("<B", FORMAT_VERSION)
    out += _option(snapshot.captured_at, lambda v: struct.pack("<Q", v))
    members = snapshot.ordered_members()
    out += struct.pack("<I", len(members))
    for member in members:
        out += _encode_member(member)
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise CacheError(f"truncated cache at byte {self.pos} (wanted {n} more)")
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return chunk

    def unpack(self, fmt: str) -> Tuple:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))

    def flag(self) -> bool:
        (b,) = self.unpack("<B")
        if b not in (0, 1):
            raise CacheError(f"invalid flag byte {b} at {self.pos - 1}")
        return b == 1

    def data_item(self) -> bytes:
        try:
            size = compact.encoded_length(self.data, self.pos)
        except DecodeError as e:
            raise CacheError(f"bad data item at byte {self.pos}: {e}") from e
        return self.take(size)


def _decode_identity(r: _Reader) -> IdentityClaim:
    display = r.data_item()
    github = r.data_item()
    (count,) = r.unpack("<I")
    judgements: List[Tuple[int, Judgement]] = []
    for _ in range(count):
        registrar, idx = r.unpack("<IB")
        if idx >= len(Judgement):
            raise CacheError(f"unknown judgement index {idx}")
        judgements.append((registrar, Judgement.from_index(idx)))
    return IdentityClaim(display=display, github=github, judgements=tuple(judgements))


def _decode_member(r: _Reader) -> Member:
    account = r.take(ACCOUNT_LEN)
    (rank,) = r.unpack("<H")
    identity = _decode_identity(r) if r.flag() else None
    social_linked = r.flag()
    confidence = r.unpack("<d")[0] if r.flag() else None
    return Member(
        account=account,
        rank=rank,
        identity=identity,
        social_linked=social_linked,
        confidence_score=confidence,
    )


def decode_snapshot(data: bytes) -> DirectorySnapshot:
    """Decode a cache blob. Stats are left empty; call `finalize()`."""
    r = _Reader(data)
    if r.take(len(MAGIC)) != MAGIC:
        raise CacheError("not a snapshot cache file")
    (version,) = r.unpack("<B")
    if version != FORMAT_VERSION:
        raise CacheError(f"cache format version {version}, expected {FORMAT_VERSION}")

    captured_at = r.unpack("<Q")[0] if r.flag() else None
    (count,) = r.unpack("<I")
    members: List[Member] = []
    try:
        for _ in range(count):
            members.append(_decode_member(r))
    except ValidationError as e:
        raise CacheError(f"invalid member record: {e}") from e

    if r.pos != len(data):
        raise CacheError(f"{len(data) - r.pos} trailing bytes in cache")
    snapshot = DirectorySnapshot.from_members(members, captured_at=captured_at)
    if len(snapshot.members) != count:
        raise CacheError("duplicate accounts in cache")
    return snapshot


class SnapshotStore:
    """Persist the snapshot to a single file, replacing it atomically."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, snapshot: DirectorySnapshot) -> None:
        data = encode_snapshot(snapshot)
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        bt.logging.info(f"Data written to {self.path} ({len(data)} bytes)")

    def load(self) -> DirectorySnapshot:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError as e:
            raise CacheError(f"Path {self.path} does not exist") from e
        except OSError as e:
            raise CacheError(f"cannot read {self.path}: {e}") from e
        return decode_snapshot(data).finalize()
