from __future__ import annotations

import struct

import pytest

from fellows.core import compact
from fellows.core.models import DirectorySnapshot, Judgement, Member
from fellows.directory.store import FORMAT_VERSION, MAGIC, SnapshotStore, decode_snapshot, encode_snapshot
from fellows.exceptions import CacheError
from tests.stubs import acct, claim


def _snapshot() -> DirectorySnapshot:
    hashed = claim("hashed").model_copy(update={"github": bytes([34]) + b"\x07" * 32})
    members = [
        Member(account=acct(9), rank=6, identity=claim("Gav", "gavofyork", ((0, Judgement.KNOWN_GOOD), (3, Judgement.FEE_PAID))), social_linked=True),
        Member(account=acct(1), rank=1),
        Member(account=acct(4), rank=3, identity=hashed, confidence_score=0.25),
    ]
    return DirectorySnapshot.from_members(members, captured_at=1_700_000_123).finalize()


def test_roundtrip_preserves_members_and_time(tmp_path):
    store = SnapshotStore(tmp_path / "data.scale")
    snap = _snapshot()
    store.save(snap)

    loaded = store.load()
    assert loaded.members == snap.members
    assert loaded.captured_at == snap.captured_at
    assert loaded.stats == snap.stats


def test_encoding_is_deterministic():
    snap = _snapshot()
    reordered = DirectorySnapshot.from_members(list(snap.members.values())[::-1], captured_at=snap.captured_at)
    assert encode_snapshot(snap) == encode_snapshot(reordered)
    assert encode_snapshot(snap) == encode_snapshot(decode_snapshot(encode_snapshot(snap)))


def test_stats_are_not_persisted():
    snap = _snapshot()
    decoded = decode_snapshot(encode_snapshot(snap))
    assert decoded.stats.total == 0
    assert decoded.finalize().stats == snap.stats


def test_empty_snapshot_roundtrip():
    blob = encode_snapshot(DirectorySnapshot())
    assert blob == MAGIC + bytes([FORMAT_VERSION, 0]) + struct.pack("<I", 0)
    assert decode_snapshot(blob) == DirectorySnapshot()


def test_save_replaces_previous_file(tmp_path):
    path = tmp_path / "data.scale"
    path.write_bytes(b"x" * 10_000)
    store = SnapshotStore(path)
    store.save(DirectorySnapshot(captured_at=5))

    assert path.read_bytes() == encode_snapshot(DirectorySnapshot(captured_at=5))
    assert [p.name for p in tmp_path.iterdir()] == ["data.scale"]


def test_load_missing_file(tmp_path):
    store = SnapshotStore(tmp_path / "nope.scale")
    assert store.exists() is False
    with pytest.raises(CacheError):
        store.load()


@pytest.mark.parametrize(
    "mutate",
    [
        lambda b: b"XXXX" + b[4:],
        lambda b: b[:4] + bytes([FORMAT_VERSION + 1]) + b[5:],
        lambda b: b[:-3],
        lambda b: b + b"\x00",
        lambda b: b[:20],
        lambda b: b"",
    ],
)
def test_corrupt_cache_is_cache_error(tmp_path, mutate):
    path = tmp_path / "data.scale"
    path.write_bytes(mutate(encode_snapshot(_snapshot())))
    with pytest.raises(CacheError):
        SnapshotStore(path).load()


def test_invalid_member_fields_are_cache_error():
    # Identity with a linked flag but no handle fails model validation.
    body = bytearray(MAGIC + bytes([FORMAT_VERSION, 0]) + struct.pack("<I", 1))
    body += acct(1) + struct.pack("<H", 1)
    body += b"\x01" + compact.encode_raw("a") + compact.ABSENT + struct.pack("<I", 0)
    body += b"\x01" + b"\x00"
    with pytest.raises(CacheError):
        decode_snapshot(bytes(body))


def test_unknown_judgement_index_is_cache_error():
    body = bytearray(MAGIC + bytes([FORMAT_VERSION, 0]) + struct.pack("<I", 1))
    body += acct(1) + struct.pack("<H", 1)
    body += b"\x01" + compact.ABSENT + compact.ABSENT + struct.pack("<I", 1) + struct.pack("<IB", 0, 42)
    body += b"\x00" + b"\x00"
    with pytest.raises(CacheError):
        decode_snapshot(bytes(body))
