"""Environment readers for the directory service. A `.env` in the working directory is honoured."""

from __future__ import annotations

import os
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")

_TRUTHY = frozenset({"1", "true", "t", "yes", "y", "on"})


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


def _env_bool(name: str, default: bool = False) -> bool:
    return _env_str(name, "true" if default else "false").lower() in _TRUTHY


def _testing() -> bool:
    return _env_bool("TESTING")


def _env_number(name: str, default: T, cast: Callable[[str], T], test_default: Optional[T]) -> T:
    """
    Parse a numeric env var with `cast`.

    Under TESTING=true, `TEST_<NAME>` wins, then `test_default`, so suites can
    zero out cooldowns without touching the production variable.
    """
    if _testing():
        override = _env_str(f"TEST_{name}")
        if override:
            return cast(override)
        if test_default is not None:
            return test_default
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise SystemExit(f"[fellows] {name} must be a number. Got: {raw!r}") from None


def _env_int(name: str, default: int = 0, *, test_default: Optional[int] = None) -> int:
    return _env_number(name, default, int, test_default)


def _env_float(name: str, default: float = 0.0, *, test_default: Optional[float] = None) -> float:
    return _env_number(name, default, float, test_default)
