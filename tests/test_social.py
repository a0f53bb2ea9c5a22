from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from fellows.core.models import Member
from fellows.exceptions import ExternalApiError, ProfileNotFoundError, RateLimitedError
from fellows.social.github import GitHubProfileSource
from fellows.social.verifier import normalize_handle, verify
from tests.stubs import StubProfiles, acct, claim


def _member(handle: Optional[str]) -> Member:
    return Member(account=acct(5), rank=2, identity=claim("eve", handle))


def test_normalize_handle():
    assert normalize_handle("@octocat") == "octocat"
    assert normalize_handle("  @octocat \n") == "octocat"
    assert normalize_handle("octocat") == "octocat"


def test_verify_without_handle_makes_no_call():
    profiles = StubProfiles()
    assert asyncio.run(verify(Member(account=acct(5), rank=2), profiles)) is False
    assert asyncio.run(verify(_member(None), profiles)) is False
    assert profiles.calls == []


def test_verify_bio_mentions_address():
    m = _member("@octocat")
    profiles = StubProfiles({"octocat": f"contact: {m.address()}"})
    assert asyncio.run(verify(m, profiles)) is True
    assert profiles.calls == ["octocat"]


def test_verify_bio_without_address():
    m = _member("octocat")
    other = Member(account=acct(6), rank=1).address()
    assert asyncio.run(verify(m, StubProfiles({"octocat": f"I am {other}"}))) is False
    assert asyncio.run(verify(m, StubProfiles({"octocat": None}))) is False
    # Substring match only on the canonical address, not a truncated one.
    assert asyncio.run(verify(m, StubProfiles({"octocat": m.address()[:-1]}))) is False


def test_verify_propagates_api_errors():
    m = _member("ghost")
    profiles = StubProfiles(errors={"ghost": ProfileNotFoundError("nope", status_code=404)})
    with pytest.raises(ExternalApiError):
        asyncio.run(verify(m, profiles))


class _Resp:
    def __init__(self, payload: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}

    def json(self) -> Any:
        return self._payload


def test_github_source_fetches_bio_with_token(monkeypatch):
    calls: List[tuple] = []

    def fake_get(url: str, *, headers: Dict[str, str], timeout: float):
        calls.append((url, headers, timeout))
        return _Resp({"login": "octocat", "bio": "hello"})

    import fellows.social.github as mod

    monkeypatch.setattr(mod.requests, "get", fake_get)

    src = GitHubProfileSource("http://gh/", "tok", timeout_s=3.0)
    assert asyncio.run(src.bio("octocat")) == "hello"

    url, headers, timeout = calls[0]
    assert url == "http://gh/users/octocat"
    assert headers["Authorization"] == "Bearer tok"
    assert timeout == 3.0


def test_github_source_without_token_and_missing_bio(monkeypatch):
    seen: List[Dict[str, str]] = []

    def fake_get(url: str, *, headers: Dict[str, str], timeout: float):  # noqa: ARG001
        seen.append(headers)
        return _Resp({"login": "octocat", "bio": None})

    import fellows.social.github as mod

    monkeypatch.setattr(mod.requests, "get", fake_get)

    src = GitHubProfileSource("http://gh", None)
    assert asyncio.run(src.bio("octocat")) is None
    assert "Authorization" not in seen[0]


@pytest.mark.parametrize(
    "resp, exc",
    [
        (_Resp({}, 404), ProfileNotFoundError),
        (_Resp({}, 429), RateLimitedError),
        (_Resp({}, 403, {"x-ratelimit-remaining": "0"}), RateLimitedError),
        (_Resp({}, 500), ExternalApiError),
    ],
)
def test_github_source_maps_http_errors(monkeypatch, resp, exc):
    import fellows.social.github as mod

    monkeypatch.setattr(mod.requests, "get", lambda url, *, headers, timeout: resp)

    with pytest.raises(exc) as info:
        asyncio.run(GitHubProfileSource("http://gh").bio("someone"))
    assert info.value.status_code == resp.status_code


def test_github_source_wraps_transport_errors(monkeypatch):
    import fellows.social.github as mod

    def boom(url, *, headers, timeout):
        raise mod.requests.ConnectionError("down")

    monkeypatch.setattr(mod.requests, "get", boom)

    with pytest.raises(ExternalApiError):
        asyncio.run(GitHubProfileSource("http://gh").bio("someone"))
