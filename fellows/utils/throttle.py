from __future__ import annotations

import asyncio
import time
from typing import Callable


class Throttle:
    """Enforce a minimum delay between successive calls to one remote source.

    Callers `await throttle.wait()` right before each request. The first call
    never sleeps.
    """

    def __init__(self, min_interval_s: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.min_interval_s = max(0.0, float(min_interval_s))
        self._clock = clock
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None and self.min_interval_s > 0:
                remaining = self.min_interval_s - (self._clock() - self._last)
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last = self._clock()
