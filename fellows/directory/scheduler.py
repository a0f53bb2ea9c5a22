from __future__ import annotations

import asyncio
import threading
import traceback
from typing import Optional

import bittensor as bt

from fellows.core.models import DirectorySnapshot
from fellows.directory.aggregator import DirectoryAggregator
from fellows.directory.store import SnapshotStore
from fellows.exceptions import CacheError


DEFAULT_REFRESH_INTERVAL_S = 2 * 60 * 60


class SnapshotHandle:
    """
    Holds the one published snapshot.

    Snapshots are immutable, so readers just take the current reference.
    Publishing swaps the reference under a lock and bumps `version`; a snapshot
    older than the published one is refused so `captured_at` never goes back.
    """

    def __init__(self, initial: Optional[DirectorySnapshot] = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial if initial is not None else DirectorySnapshot()
        self._version = 0

    def current(self) -> DirectorySnapshot:
        with self._lock:
            return self._snapshot

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def publish(self, snapshot: DirectorySnapshot) -> bool:
        with self._lock:
            prev = self._snapshot.captured_at
            if prev is not None and (snapshot.captured_at is None or snapshot.captured_at < prev):
                bt.logging.warning(
                    f"Refusing to publish snapshot from {snapshot.captured_at}, current is from {prev}"
                )
                return False
            self._snapshot = snapshot
            self._version += 1
            return True


class RefreshScheduler:
    """Keep the published snapshot fresh: cache on startup, then periodic fetches."""

    def __init__(
        self,
        aggregator: DirectoryAggregator,
        store: SnapshotStore,
        handle: Optional[SnapshotHandle] = None,
        *,
        interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
    ) -> None:
        self.aggregator = aggregator
        self.store = store
        self.handle = handle if handle is not None else SnapshotHandle()
        self.interval_s = interval_s

    async def load_or_fetch(self) -> DirectorySnapshot:
        """Publish the cached snapshot if it decodes, else run a full fetch."""
        if self.store.exists():
            bt.logging.info("Loading from cache...")
        try:
            snapshot = self.store.load()
        except CacheError as e:
            bt.logging.warning(f"Failed to load from cache. Falling back to fetch: {e}")
            return await self.refresh_once()

        bt.logging.info(f"Loaded {snapshot.stats.total} members from cache")
        if not self.handle.publish(snapshot):
            return self.handle.current()
        return snapshot

    async def refresh_once(self) -> DirectorySnapshot:
        """
        Run one cycle, publish it and persist it. Failures propagate untouched.

        A snapshot the handle refuses (older than the one being served) is
        neither saved nor returned; the currently published snapshot is.
        """
        snapshot = await self.aggregator.run()
        if not self.handle.publish(snapshot):
            return self.handle.current()
        try:
            self.store.save(snapshot)
        except OSError as e:
            bt.logging.error(f"Failed to write cache {self.store.path}: {e}")
        return snapshot

    async def run_periodic_refresh(self) -> None:
        """Refresh forever. A failed cycle keeps the previous snapshot published."""
        try:
            await self.load_or_fetch()
        except Exception:
            bt.logging.error(f"Initial directory load failed:\n{traceback.format_exc()}")

        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await self.refresh_once()
            except Exception:
                bt.logging.error(f"Directory refresh failed, keeping previous snapshot:\n{traceback.format_exc()}")
