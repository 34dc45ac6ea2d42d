"""
Topic-keyed fan-out to consumers. Each subscriber owns a bounded queue; a
slow subscriber loses its oldest items instead of stalling the pipeline.
"""

import asyncio
from collections import defaultdict
from typing import Any

CURVES = "curves"
EVENTS = "events"
STATS = "stats"


class Channel:
    def __init__(self, maxsize: int = 100):
        self.maxsize = maxsize
        self._subs: dict[str, list[asyncio.Queue]] = defaultdict(list)
        self.latest: dict[str, Any] = {}

    def subscribe(self, topic: str) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._subs[topic].append(q)
        return q

    def unsubscribe(self, topic: str, q: asyncio.Queue) -> None:
        try:
            self._subs[topic].remove(q)
        except ValueError:
            pass

    def subscribers(self, topic: str) -> int:
        return len(self._subs[topic])

    def publish(self, topic: str, item: Any) -> None:
        self.latest[topic] = item
        for q in self._subs[topic]:
            if q.full():
                q.get_nowait()
            q.put_nowait(item)
