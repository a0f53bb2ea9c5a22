from __future__ import annotations

import asyncio
from typing import Dict, Optional
from urllib.parse import quote

import bittensor as bt
import requests

from fellows.exceptions import ExternalApiError, ProfileNotFoundError, RateLimitedError
from fellows.utils.throttle import Throttle


class GitHubProfileSource:
    """Read GitHub user profiles through the REST API.

    Requests go through `requests` on a worker thread so the event loop keeps
    serving readers while a profile is fetched.
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: Optional[str] = None,
        *,
        timeout_s: float = 10.0,
        cooldown_s: float = 0.0,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout_s = timeout_s
        self._throttle = Throttle(cooldown_s)
        if token:
            bt.logging.info("Using GITHUB_TOKEN for authentication")
        else:
            bt.logging.warning("No GITHUB_TOKEN set. Rate limits will be lower")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "fellows-directory",
        }
        if self.token:
            # Never log this header.
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_profile(self, handle: str) -> dict:
        url = f"{self.api_url}/users/{quote(handle, safe='')}"
        try:
            r = requests.get(url, headers=self._headers(), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise ExternalApiError(f"GET {url} failed: {e}") from e

        if r.status_code == 404:
            raise ProfileNotFoundError(f"no GitHub user {handle!r}", status_code=404)
        if r.status_code == 429 or (r.status_code == 403 and r.headers.get("x-ratelimit-remaining") == "0"):
            raise RateLimitedError(f"GitHub rate limit hit for {handle!r}", status_code=r.status_code)
        if r.status_code >= 400:
            raise ExternalApiError(f"GET {url} returned {r.status_code}", status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise ExternalApiError(f"GET {url} returned invalid JSON") from e
        return data if isinstance(data, dict) else {}

    async def bio(self, handle: str) -> Optional[str]:
        await self._throttle.wait()
        profile = await asyncio.to_thread(self._get_profile, handle)
        bio = profile.get("bio")
        return bio if isinstance(bio, str) else None
