"""Error taxonomy shared by the fetch pipeline and the snapshot cache."""

from __future__ import annotations

from typing import Optional


class FellowsError(Exception):
    """Base class for directory errors."""


class SourceConnectionError(FellowsError, ConnectionError):
    """A remote chain source is unreachable or answered with an unexpected shape."""


class DecodeError(FellowsError, ValueError):
    """A chain payload could not be decoded. Never escapes the adapters."""


class CacheError(FellowsError):
    """The persisted snapshot is missing, truncated or of another version."""


class ExternalApiError(FellowsError):
    """The social profile source failed for a single handle."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProfileNotFoundError(ExternalApiError):
    pass


class RateLimitedError(ExternalApiError):
    pass
