"""Read-only HTTP view over the published directory snapshot."""

from __future__ import annotations

import asyncio
import contextlib
from typing import List, Optional

from fastapi import FastAPI

from fellows import __version__
from fellows.api.schemas import MemberView, StatsView
from fellows.directory.scheduler import RefreshScheduler, SnapshotHandle
from fellows.utils.human import human_age


def create_app(handle: SnapshotHandle, scheduler: Optional[RefreshScheduler] = None) -> FastAPI:
    """
    Build the API around `handle`.

    With a scheduler, the app owns the refresh loop: it starts with the app and
    is cancelled on shutdown.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if scheduler is not None:
            task = asyncio.create_task(scheduler.run_periodic_refresh())
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    app = FastAPI(title="Fellowship Directory", version=__version__, lifespan=lifespan)

    @app.get("/healthz")
    def healthz():
        snapshot = handle.current()
        return {
            "ok": True,
            "captured_at": snapshot.captured_at,
            "age_s": snapshot.since_last_update(),
            "members": snapshot.stats.total,
        }

    @app.get("/version")
    def version():
        return {"version": __version__}

    @app.get("/members", response_model=List[MemberView])
    def members():
        views = [MemberView.from_member(m) for m in handle.current().ordered_members()]
        views.sort(key=lambda v: (-v.rank, v.address))
        return views

    @app.get("/stats", response_model=StatsView)
    def stats():
        snapshot = handle.current()
        return StatsView(
            **snapshot.stats.model_dump(),
            captured_at=snapshot.captured_at,
            last_updated=human_age(snapshot.since_last_update()),
        )

    return app
