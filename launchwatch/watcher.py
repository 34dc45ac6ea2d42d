"""
Listens to program logs over the RPC WebSocket (``logsSubscribe``) and hands
each notification to the monitor. One loop per program; a dropped
connection is logged and re-established, the monitor state survives.
"""

import asyncio
import json

import websockets
from websockets.exceptions import WebSocketException

from launchwatch.classifier import Program
from launchwatch.config import settings
from launchwatch.db import log
from launchwatch.debug import dbg
from launchwatch.models import RawNotification
from launchwatch.monitor import Monitor
from launchwatch.rpc import mask_url

RECONNECT_SEC = 5


def program_id(program: Program) -> str:
    if program is Program.CURVE:
        return settings.PUMP_PROGRAM
    return settings.LAUNCHPAD_PROGRAM


def subscription(program: Program, req_id: int = 1) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": req_id,
        "method": "logsSubscribe",
        "params": [{"mentions": [program_id(program)]}, {"commitment": settings.COMMITMENT}],
    }


def parse_notification(raw: str | bytes) -> RawNotification | None:
    """RawNotification from a ``logsNotification`` frame, None for anything
    else (subscription acks, failed transactions)."""
    data = json.loads(raw)
    if data.get("method") != "logsNotification":
        return None
    result = data["params"]["result"]
    value = result["value"]
    if value.get("err") is not None:
        return None
    return RawNotification(
        signature=value["signature"],
        logs=tuple(value.get("logs") or ()),
        slot=(result.get("context") or {}).get("slot"),
    )


async def watch(monitor: Monitor, program: Program) -> None:
    sub = subscription(program, req_id=2 if program is Program.CURVE else 4)
    async with websockets.connect(settings.RPC_WSS, ping_interval=20) as ws:
        await ws.send(json.dumps(sub))
        await log("INFO", f"subscribed to {program.value} logs ({program_id(program)[:8]}…)")
        async for raw in ws:
            try:
                note = parse_notification(raw)
            except (ValueError, KeyError, TypeError) as e:
                dbg(f"{program.value} malformed frame skipped: {e!r}")
                continue
            if note is None:
                continue
            dbg(f"{program.value} tx {note.signature[:8]}… {len(note.logs)} lines")
            try:
                await monitor.handle_logs(program, note)
            except Exception as e:
                # only this notification is lost, the feed keeps going
                await log("ERROR", f"{program.value} tx {note.signature[:8]}… dropped: {e!r}")


async def watch_loop(monitor: Monitor, program: Program) -> None:
    while True:
        try:
            await watch(monitor, program)
            await log("WARN", f"{program.value} feed closed, reconnecting")
        except asyncio.CancelledError:
            raise
        except (OSError, WebSocketException) as e:
            await log("WARN", f"{program.value} feed error on {mask_url(settings.RPC_WSS)}: {e}")
            await asyncio.sleep(RECONNECT_SEC)
        await asyncio.sleep(1)
