from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fellows.directory.aggregator import DEFAULT_CYCLE_TIMEOUT_S
from fellows.directory.scheduler import DEFAULT_REFRESH_INTERVAL_S
from fellows.utils.env import _env_bool, _env_float, _env_int, _env_str


DEFAULT_CACHE_PATH = "data.scale"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_RPC_COOLDOWN_S = 2.0


@dataclass(frozen=True)
class ChainEndpointsConfig:
    collectives_rpc: str
    people_rpc: str
    rpc_cooldown_s: float


@dataclass(frozen=True)
class GitHubConfig:
    api_url: str
    token: Optional[str]
    cooldown_s: float
    timeout_s: float


@dataclass(frozen=True)
class DirectoryEnvConfig:
    chain: ChainEndpointsConfig
    github: GitHubConfig
    cache_path: str
    refresh_interval_s: int
    fetch_timeout_s: float
    strict_social: bool
    host: str
    port: int
    log_level: str


def _die(msg: str) -> None:
    raise SystemExit(f"[fellows] {msg}")


def _require_ws(name: str) -> str:
    url = _env_str(name, "")
    if not url:
        _die(f"Missing required env var: {name}")
    if not url.startswith(("ws://", "wss://")):
        _die(f"{name} must be ws(s). Got: {url!r}")
    return url


def load_directory_env() -> DirectoryEnvConfig:
    """
    Load directory configuration from env/.env with strict validation.

    Chain endpoints are mandatory; everything else has a default. A missing
    GITHUB_TOKEN is allowed and only lowers the profile API rate limit.
    """
    chain_cfg = ChainEndpointsConfig(
        collectives_rpc=_require_ws("COLLECTIVES_RPC"),
        people_rpc=_require_ws("PEOPLE_RPC"),
        rpc_cooldown_s=max(0.0, _env_float("FELLOWS_RPC_COOLDOWN_S", DEFAULT_RPC_COOLDOWN_S, test_default=0.0)),
    )

    api_url = (_env_str("FELLOWS_GITHUB_API_URL", DEFAULT_GITHUB_API_URL) or DEFAULT_GITHUB_API_URL).rstrip("/")
    if not api_url.startswith("http"):
        _die(f"FELLOWS_GITHUB_API_URL must be http(s). Got: {api_url!r}")
    github_cfg = GitHubConfig(
        api_url=api_url,
        token=_env_str("GITHUB_TOKEN", "") or None,
        cooldown_s=max(0.0, _env_float("FELLOWS_GITHUB_COOLDOWN_S", 0.5, test_default=0.0)),
        timeout_s=max(1.0, _env_float("FELLOWS_HTTP_TIMEOUT_S", 10.0)),
    )

    refresh_interval_s = _env_int("FELLOWS_REFRESH_INTERVAL_S", int(DEFAULT_REFRESH_INTERVAL_S))
    if refresh_interval_s < 1:
        _die(f"FELLOWS_REFRESH_INTERVAL_S must be positive. Got: {refresh_interval_s}")

    fetch_timeout_s = _env_float("FELLOWS_FETCH_TIMEOUT_S", DEFAULT_CYCLE_TIMEOUT_S)
    if fetch_timeout_s <= 0:
        _die(f"FELLOWS_FETCH_TIMEOUT_S must be positive. Got: {fetch_timeout_s}")

    port = _env_int("FELLOWS_PORT", 8080)
    if not 0 < port < 65536:
        _die(f"FELLOWS_PORT out of range: {port}")

    log_level = (_env_str("FELLOWS_LOG_LEVEL", "info") or "info").lower()
    if log_level not in ("info", "debug", "trace", "warning"):
        _die(f"Invalid FELLOWS_LOG_LEVEL={log_level!r} (expected info, debug, trace or warning).")

    return DirectoryEnvConfig(
        chain=chain_cfg,
        github=github_cfg,
        cache_path=_env_str("FELLOWS_CACHE_PATH", DEFAULT_CACHE_PATH) or DEFAULT_CACHE_PATH,
        refresh_interval_s=int(refresh_interval_s),
        fetch_timeout_s=float(fetch_timeout_s),
        strict_social=_env_bool("FELLOWS_STRICT_SOCIAL", False),
        host=_env_str("FELLOWS_HOST", "127.0.0.1") or "127.0.0.1",
        port=int(port),
        log_level=log_level,
    )
