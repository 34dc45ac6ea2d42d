"""
Coalesces bursts of curve updates: at most one emission per window right
away, plus one trailing emission carrying the latest snapshot.
"""

import asyncio
import time
from typing import Any, Callable

from launchwatch.config import settings


class ThrottledEmitter:
    def __init__(
        self,
        emit: Callable[[Any], None],
        window: float = settings.THROTTLE_WINDOW_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.emit = emit
        self.window = window
        self.clock = clock
        self.emitted = 0
        self._last: float | None = None
        self._latest: Any = None
        self._trailing: asyncio.TimerHandle | None = None

    @property
    def scheduled(self) -> bool:
        return self._trailing is not None

    def notify(self, snapshot: Any) -> None:
        self._latest = snapshot
        now = self.clock()
        if self._last is None or now - self._last >= self.window:
            self.cancel()
            self._fire(now)
        elif self._trailing is None:
            delay = self.window - (now - self._last)
            loop = asyncio.get_running_loop()
            self._trailing = loop.call_later(delay, self._flush)

    def cancel(self) -> None:
        if self._trailing is not None:
            self._trailing.cancel()
            self._trailing = None

    def _flush(self) -> None:
        self._trailing = None
        self._fire(self.clock())

    def _fire(self, now: float) -> None:
        self._last = now
        self.emitted += 1
        self.emit(self._latest)
