"""
Bounded, serialized queue of transaction lookups for events whose log line
lacks the entity (launchpad buys). One request in flight, a minimum spacing
between attempts, exponential backoff on rate limits and drop-oldest under
overload.
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from launchwatch.config import settings
from launchwatch.db import log
from launchwatch.debug import dbg
from launchwatch.errors import FetchError, RateLimited
from launchwatch.models import EnrichmentTask


Fetch = Callable[[str], Awaitable[dict | None]]
OnResult = Callable[[EnrichmentTask, dict], Awaitable[None]]


class EnrichmentQueue:
    def __init__(
        self,
        fetch: Fetch,
        on_result: OnResult,
        capacity: int = settings.ENRICH_CAPACITY,
        trim_to: int = settings.ENRICH_TRIM_TO,
        spacing: float = settings.ENRICH_SPACING_SEC,
        max_retries: int = settings.ENRICH_MAX_RETRIES,
        backoff: float = settings.ENRICH_BACKOFF_SEC,
        backoff_max: float = settings.ENRICH_BACKOFF_MAX_SEC,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetch = fetch
        self.on_result = on_result
        self.capacity = capacity
        self.trim_to = trim_to
        self.spacing = spacing
        self.max_retries = max_retries
        self.backoff = backoff
        self.backoff_max = backoff_max
        self.clock = clock
        self.sleep = sleep

        self._pending: deque[EnrichmentTask] = deque()
        self._ids: set[str] = set()  # pending + in flight
        self._wake = asyncio.Event()
        self._worker: asyncio.Task | None = None
        self._last_request: float | None = None
        self.reset_counters()

    def reset_counters(self) -> None:
        self.enqueued = 0
        self.duplicates = 0
        self.evicted = 0
        self.succeeded = 0
        self.failed = 0
        self.errors = 0
        self.missing = 0
        self.retries = 0

    # ─── producer side ─────────────────────────────────────────────────────
    def enqueue(self, signature: str) -> bool:
        if signature in self._ids:
            self.duplicates += 1
            return False
        if len(self._pending) >= self.capacity:
            dropped = 0
            while len(self._pending) > self.trim_to:
                old = self._pending.popleft()
                self._ids.discard(old.signature)
                dropped += 1
            self.evicted += dropped
            dbg(f"ENRICH overload: evicted {dropped} oldest, kept {len(self._pending)}")
        self._pending.append(EnrichmentTask(signature=signature))
        self._ids.add(signature)
        self.enqueued += 1
        self._wake.set()
        return True

    @property
    def pending(self) -> list[str]:
        return [t.signature for t in self._pending]

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def clear(self) -> None:
        self._pending.clear()
        self._ids.clear()

    # ─── worker ────────────────────────────────────────────────────────────
    def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Halt the worker; queued tasks stay where they are."""
        if self._worker is None:
            return
        self._worker.cancel()
        await asyncio.gather(self._worker, return_exceptions=True)
        self._worker = None

    async def _run(self) -> None:
        while True:
            if not self._pending:
                self._wake.clear()
                await self._wake.wait()
                continue
            task = self._pending.popleft()
            try:
                await self.process(task)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.errors += 1
                await log("ERROR", f"enrichment {task.signature[:8]}… crashed: {e!r}")
            finally:
                self._ids.discard(task.signature)

    async def process(self, task: EnrichmentTask) -> bool:
        """Fetch with pacing and backoff, then hand the tx to ``on_result``."""

        def _before_sleep(state) -> None:
            task.retry_count += 1
            self.retries += 1
            dbg(
                f"ENRICH rate limited {task.signature[:8]}… retry {task.retry_count} "
                f"in {state.next_action.sleep:.2f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff, max=self.backoff_max),
            retry=retry_if_exception_type(RateLimited),
            before_sleep=_before_sleep,
            sleep=self.sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._pace()
                    tx = await self.fetch(task.signature)
        except RateLimited:
            self.failed += 1
            await log("WARN", f"enrichment gave up on {task.signature[:8]}… after {task.retry_count} retries")
            return False
        except FetchError as e:
            self.errors += 1
            await log("WARN", f"enrichment {task.signature[:8]}… failed: {e}")
            return False

        if tx is None:
            self.missing += 1
            dbg(f"ENRICH {task.signature[:8]}… not visible yet, dropped")
            return False
        await self.on_result(task, tx)
        self.succeeded += 1
        return True

    async def _pace(self) -> None:
        if self._last_request is not None:
            wait = self.spacing - (self.clock() - self._last_request)
            if wait > 0:
                await self.sleep(wait)
        self._last_request = self.clock()

    def stats(self) -> dict:
        return {
            "pending": len(self._pending),
            "enqueued": self.enqueued,
            "duplicates": self.duplicates,
            "evicted": self.evicted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
            "missing": self.missing,
            "retries": self.retries,
        }
