import time

from fastapi.testclient import TestClient

from fellows import __version__
from fellows.api.app import create_app
from fellows.core.models import DirectorySnapshot, Judgement, Member
from fellows.directory.scheduler import SnapshotHandle
from tests.stubs import acct, claim


def _client(snapshot=None) -> TestClient:
    handle = SnapshotHandle()
    if snapshot is not None:
        handle.publish(snapshot)
    return TestClient(create_app(handle))


def _snapshot(captured_at: int) -> DirectorySnapshot:
    members = [
        Member(account=acct(1), rank=1),
        Member(
            account=acct(2),
            rank=6,
            identity=claim("Gav", "@gavofyork", ((0, Judgement.KNOWN_GOOD),)),
            social_linked=True,
        ),
        Member(account=acct(3), rank=6, identity=claim("Rob")),
    ]
    return DirectorySnapshot.from_members(members, captured_at=captured_at).finalize()


def test_members_listing_is_ranked():
    client = _client(_snapshot(int(time.time())))

    r = client.get("/members")
    assert r.status_code == 200
    rows = r.json()
    assert [row["rank"] for row in rows] == [6, 6, 1]
    assert rows[0]["address"] < rows[1]["address"]

    gav = next(row for row in rows if row["name"] == "Gav")
    assert gav["address"] == Member(account=acct(2), rank=6).address()
    assert gav["github"] == "@gavofyork"
    assert gav["verified"] is True
    assert gav["github_verified"] is True

    plain = next(row for row in rows if row["rank"] == 1)
    assert plain["name"] is None
    assert plain["github"] is None
    assert plain["verified"] is False


def test_stats_reports_counts_and_age():
    client = _client(_snapshot(int(time.time()) - 90))

    r = client.get("/stats")
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    assert body["named"] == 2
    assert body["verified"] == 1
    assert body["with_handle"] == 1
    assert body["handle_linked"] == 1
    assert body["last_updated"] == "1m"


def test_empty_directory_before_first_fetch():
    client = _client()

    assert client.get("/members").json() == []
    stats = client.get("/stats").json()
    assert stats["total"] == 0
    assert stats["captured_at"] is None
    assert stats["last_updated"] == "?"

    health = client.get("/healthz").json()
    assert health["ok"] is True
    assert health["age_s"] is None
    assert health["members"] == 0


def test_healthz_and_version():
    now = int(time.time())
    client = _client(_snapshot(now))

    health = client.get("/healthz").json()
    assert health["captured_at"] == now
    assert health["members"] == 3
    assert 0 <= health["age_s"] < 60

    assert client.get("/version").json() == {"version": __version__}
