from __future__ import annotations

import sys
from pathlib import Path

# Allow running as a script without requiring `PYTHONPATH=.`.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import bittensor as bt
import uvicorn

from fellows.api.app import create_app
from fellows.directory.scheduler import SnapshotHandle
from fellows.directory.service import build_scheduler, configure_logging
from fellows.utils.config import load_directory_env


def main() -> None:
    cfg = load_directory_env()
    configure_logging(cfg.log_level)

    handle = SnapshotHandle()
    scheduler = build_scheduler(cfg, handle)
    app = create_app(handle, scheduler)

    bt.logging.info(f"Listening to http://{cfg.host}:{cfg.port}")
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level if cfg.log_level != "trace" else "debug")


if __name__ == "__main__":
    main()
