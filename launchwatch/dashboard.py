"""
FastAPI server exposing the monitor: Server‑Sent Events streams for the
throttled curve snapshots, tracker events, stats and the log table, plus
plain JSON snapshots.
"""

import asyncio, json, datetime as dt
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sse_starlette.sse import EventSourceResponse
from sqlalchemy import select

from launchwatch import channel as topics
from launchwatch.db import async_session, LogEntry
from launchwatch.monitor import Monitor


def _row(obj, cols):  # serialize SQLAlchemy row
    d = {}
    for c in cols:
        v = getattr(obj, c)
        if isinstance(v, dt.datetime):
            v = v.isoformat(sep=" ", timespec="seconds")
        d[c] = v
    return d


def _dump(models) -> list[dict]:
    return [m.model_dump(mode="json") for m in models]


def create_app(monitor: Monitor) -> FastAPI:
    app = FastAPI(title="launchwatch")
    app.add_middleware(CORSMiddleware, allow_origins=["*"])

    async def _follow(topic: str, first):
        q = monitor.channel.subscribe(topic)
        try:
            yield json.dumps(first)
            while True:
                yield json.dumps(await q.get())
        finally:
            monitor.channel.unsubscribe(topic, q)

    async def _poll(fn, every: float):
        while True:
            yield json.dumps(fn())
            await asyncio.sleep(every)

    async def _logs(limit: int = 200):
        while True:
            async with async_session() as s:
                rows = (
                    await s.scalars(select(LogEntry).order_by(LogEntry.ts.desc()).limit(limit))
                ).all()
            yield json.dumps([_row(r, ["ts", "level", "msg"]) for r in rows])
            await asyncio.sleep(2)

    # ─── streams ──────────────────────────────────────────────────────────
    @app.get("/socket/curves")
    async def sse_curves():
        return EventSourceResponse(
            _follow(topics.CURVES, _dump(monitor.tracker.active()))
        )

    @app.get("/socket/events")
    async def sse_events():
        return EventSourceResponse(_follow(topics.EVENTS, _dump(monitor.events)))

    @app.get("/socket/stats")
    async def sse_stats():
        return EventSourceResponse(_poll(monitor.stats, 1))

    @app.get("/socket/logs")
    async def sse_logs():
        return EventSourceResponse(_logs())

    # ─── snapshots ────────────────────────────────────────────────────────
    @app.get("/curves")
    async def curves():
        return _dump(monitor.tracker.by_progress())

    @app.get("/curves/near-completion")
    async def near_completion():
        return _dump(monitor.tracker.near_completion())

    @app.get("/curves/{mint}")
    async def curve(mint: str):
        c = monitor.tracker.get(mint)
        if c is None:
            raise HTTPException(status_code=404, detail=f"unknown mint {mint}")
        return c.model_dump(mode="json")

    @app.get("/stats")
    async def stats():
        return monitor.stats()

    @app.get("/launches")
    async def launches():
        return _dump(monitor.launches)

    @app.get("/completions")
    async def completions():
        return _dump(monitor.completions)

    @app.get("/enriched")
    async def enriched():
        return _dump(monitor.enriched)

    @app.get("/events/high-priority")
    async def high_priority():
        return _dump(monitor.tracker.high_priority_events())

    @app.post("/reset")
    async def reset():
        monitor.reset()
        return {"ok": True}

    return app
