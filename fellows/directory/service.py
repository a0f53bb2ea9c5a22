from __future__ import annotations

import bittensor as bt

from fellows.chain.substrate import CollectivesMembershipSource, PeopleIdentitySource
from fellows.directory.aggregator import DirectoryAggregator
from fellows.directory.scheduler import RefreshScheduler, SnapshotHandle
from fellows.directory.store import SnapshotStore
from fellows.social.github import GitHubProfileSource
from fellows.utils.config import DirectoryEnvConfig


def configure_logging(level: str) -> None:
    if level == "trace":
        bt.logging.set_trace(True)
    elif level == "debug":
        bt.logging.set_debug(True)
    elif level == "warning":
        bt.logging.set_warning(True)
    else:
        bt.logging.set_info(True)


def build_scheduler(cfg: DirectoryEnvConfig, handle: SnapshotHandle | None = None) -> RefreshScheduler:
    """Wire the production sources, store and scheduler from configuration."""
    aggregator = DirectoryAggregator(
        CollectivesMembershipSource(cfg.chain.collectives_rpc, cooldown_s=cfg.chain.rpc_cooldown_s),
        PeopleIdentitySource(cfg.chain.people_rpc, cooldown_s=cfg.chain.rpc_cooldown_s),
        GitHubProfileSource(
            cfg.github.api_url,
            cfg.github.token,
            timeout_s=cfg.github.timeout_s,
            cooldown_s=cfg.github.cooldown_s,
        ),
        timeout_s=cfg.fetch_timeout_s,
        strict_social=cfg.strict_social,
    )
    return RefreshScheduler(
        aggregator,
        SnapshotStore(cfg.cache_path),
        handle,
        interval_s=cfg.refresh_interval_s,
    )
