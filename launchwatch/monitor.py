"""
The monitoring context: one object per session that owns the dedup guard,
the curve tracker, the enrichment queue, the throttled snapshot emitter and
the outbound channel, and routes decoded log payloads between them.
"""

import datetime as dt
import time
from collections import Counter, deque

from launchwatch import channel as topics
from launchwatch.channel import Channel
from launchwatch.classifier import Program, classify, instruction_tag, payload
from launchwatch.config import Settings, settings as default_settings
from launchwatch.db import log
from launchwatch.debug import dbg
from launchwatch.decoder import decode, swap
from launchwatch.enrichment import EnrichmentQueue, Fetch
from launchwatch.errors import DecodeError
from launchwatch.identity import IdentityGuard
from launchwatch.models import (
    BuyResolution,
    CompleteEvent,
    CurveEvent,
    EnrichmentTask,
    LaunchpadInitialize,
    LaunchpadSwap,
    RawNotification,
    TokenLaunch,
    TradeEvent,
    utcnow,
)
from launchwatch.rpc import fetch_transaction, resolve_buy_accounts
from launchwatch.throttle import ThrottledEmitter
from launchwatch.tracker import CurveTracker


class Monitor:
    def __init__(
        self,
        cfg: Settings = default_settings,
        fetch: Fetch | None = None,
        channel: Channel | None = None,
        queue: EnrichmentQueue | None = None,
    ):
        self.settings = cfg
        self.channel = channel or Channel()
        self.guard = IdentityGuard()
        self.emitter = ThrottledEmitter(self._emit_curves, window=cfg.THROTTLE_WINDOW_SEC)
        self.tracker = CurveTracker(
            on_event=self._publish_event,
            on_change=self._curves_changed,
            target_sol=cfg.COMPLETION_TARGET_SOL,
            near_ratio=cfg.NEAR_COMPLETION_RATIO,
        )
        self.queue = queue or EnrichmentQueue(
            fetch or fetch_transaction,
            self._on_enriched,
            capacity=cfg.ENRICH_CAPACITY,
            trim_to=cfg.ENRICH_TRIM_TO,
            spacing=cfg.ENRICH_SPACING_SEC,
            max_retries=cfg.ENRICH_MAX_RETRIES,
            backoff=cfg.ENRICH_BACKOFF_SEC,
            backoff_max=cfg.ENRICH_BACKOFF_MAX_SEC,
        )

        self.launches: deque[TokenLaunch] = deque(maxlen=cfg.LAUNCH_HISTORY)
        self.trades: deque[TradeEvent] = deque(maxlen=cfg.TRADE_HISTORY)
        self.completions: deque[CompleteEvent] = deque(maxlen=cfg.COMPLETION_HISTORY)
        self.initializes: deque[LaunchpadInitialize] = deque(maxlen=cfg.INITIALIZE_HISTORY)
        self.enriched: deque[BuyResolution] = deque(maxlen=cfg.ENRICHED_HISTORY)
        self.events: deque[CurveEvent] = deque(maxlen=cfg.EVENT_HISTORY)
        self.counts: Counter = Counter()

        self.connected = False
        self.monitoring = False
        self._started: float | None = None
        self.last_event_time: dt.datetime | None = None

    # ─── lifecycle ─────────────────────────────────────────────────────────
    async def start(self) -> None:
        if self.monitoring:
            return
        self.monitoring = True
        self._started = time.monotonic()
        self.queue.start()
        await log("INFO", "monitoring started")

    async def stop(self) -> None:
        if not self.monitoring:
            return
        self.monitoring = False
        self._started = None
        self.emitter.cancel()
        await self.queue.stop()
        await log(
            "INFO",
            f"monitoring stopped: {self.counts['launches']} launches, "
            f"{len(self.guard.processed)} transactions, {len(self.queue)} lookups abandoned",
        )

    def reset(self) -> None:
        self.emitter.cancel()
        self.tracker.reset()
        self.guard.clear()
        self.queue.clear()
        self.queue.reset_counters()
        for history in (
            self.launches,
            self.trades,
            self.completions,
            self.initializes,
            self.enriched,
            self.events,
        ):
            history.clear()
        self.counts.clear()
        self.last_event_time = None
        if self.monitoring:
            self._started = time.monotonic()
        self.channel.publish(topics.CURVES, [])
        dbg("MONITOR all data cleared")

    @property
    def uptime(self) -> int:
        if self._started is None:
            return 0
        return int(time.monotonic() - self._started)

    # ─── intake ────────────────────────────────────────────────────────────
    async def handle_logs(self, program: Program, note: RawNotification) -> list:
        """Decode one notification and route what it carries; returns the
        decoded events (empty for duplicates)."""
        if not self.guard.mark_processed(note.signature):
            self.counts["duplicates"] += 1
            return []
        self.counts["transactions"] += 1

        decoded = []
        # directions taken so far: at most one buy and one sell per transaction
        swaps: set[bool] = set()
        for line in note.logs:
            try:
                blob = payload(line)
            except DecodeError as e:
                await self._decode_failed(note.signature, e)
                continue
            if blob is None:
                tag = instruction_tag(line) if program is Program.LAUNCHPAD else None
                if tag is not None and tag.is_buy not in swaps:
                    swaps.add(tag.is_buy)
                    decoded.append(swap(tag, note.signature))
                continue

            tag = classify(blob, program)
            if tag is None:
                continue
            if tag.is_swap:
                if tag.is_buy in swaps:
                    continue
                swaps.add(tag.is_buy)
            try:
                decoded.append(decode(tag, blob, note.signature))
            except DecodeError as e:
                await self._decode_failed(note.signature, e)

        for event in decoded:
            await self._route(event)
        return decoded

    async def _decode_failed(self, signature: str, e: DecodeError) -> None:
        self.counts["decode_errors"] += 1
        await log("WARN", f"payload decode failed in {signature[:8]}…: {e}")

    async def _route(self, event) -> None:
        self.last_event_time = utcnow()
        if isinstance(event, TokenLaunch):
            self.counts["launches"] += 1
            self.launches.appendleft(event)
            if not self.guard.mark_first_seen(event.mint):
                self.counts["reused_mints"] += 1
                dbg(f"launch for already seen mint {event.mint}")
                return
            self.tracker.register_launch(event)
            await log("INFO", f"NEW launch {event.name} ({event.symbol}) {event.mint}")
        elif isinstance(event, CompleteEvent):
            self.counts["completions"] += 1
            self.completions.appendleft(event)
            if self.tracker.mark_completed(event.mint, event) is not None:
                await log("INFO", f"COMPLETED curve {event.mint}")
        elif isinstance(event, TradeEvent):
            self.counts["trades"] += 1
            if not self.settings.TRADE_INGESTION:
                return
            self.trades.appendleft(event)
            before = self.tracker.get(event.mint)
            was_near = before is not None and before.is_near_completion
            curve = self.tracker.apply_trade(event)
            if curve is not None and curve.is_near_completion and not was_near:
                await log(
                    "INFO",
                    f"NEAR completion {curve.symbol or curve.mint} "
                    f"{curve.completion_progress:.1f}%",
                )
        elif isinstance(event, LaunchpadInitialize):
            self.counts["initializes"] += 1
            self.initializes.appendleft(event)
            p = event.mint_params
            await log("INFO", f"NEW launchpad token {p.name} ({p.symbol}) tx={event.signature[:8]}…")
        elif isinstance(event, LaunchpadSwap):
            if not event.is_buy:
                self.counts["sells"] += 1
                return
            self.counts["buys"] += 1
            self.queue.enqueue(event.signature)

    async def _on_enriched(self, task: EnrichmentTask, tx: dict) -> None:
        accounts = resolve_buy_accounts(
            tx,
            program_id=self.settings.LAUNCHPAD_PROGRAM,
            authority=self.settings.LAUNCHPAD_AUTHORITY,
        )
        if accounts is None:
            self.counts["unresolved"] += 1
            dbg(f"ENRICH no launchpad buy found in {task.signature[:8]}…")
            return

        when = utcnow()
        if tx.get("blockTime"):
            when = dt.datetime.fromtimestamp(tx["blockTime"], tz=dt.timezone.utc)
        mint = accounts["mint"]
        is_new = self.guard.mark_first_seen(mint)
        self.enriched.appendleft(
            BuyResolution(signature=task.signature, is_new=is_new, timestamp=when, **accounts)
        )
        if is_new:
            self.counts["new_entities"] += 1
            self.tracker.register_discovered(mint, task.signature, when)
            await log("INFO", f"NEW token via launchpad buy {mint} pool={accounts['pool']}")
        else:
            self.tracker.touch(mint, when)

    # ─── output ────────────────────────────────────────────────────────────
    def _publish_event(self, event: CurveEvent) -> None:
        self.events.appendleft(event)
        self.channel.publish(topics.EVENTS, event.model_dump(mode="json"))

    def _curves_changed(self) -> None:
        # snapshot is built lazily, only when the emitter actually fires
        self.emitter.notify(self.tracker.active)

    def _emit_curves(self, active) -> None:
        self.channel.publish(topics.CURVES, [c.model_dump(mode="json") for c in active()])

    def stats(self) -> dict:
        return {
            "is_connected": self.connected,
            "is_monitoring": self.monitoring,
            "uptime": self.uptime,
            "last_event_time": self.last_event_time.isoformat() if self.last_event_time else None,
            "launches_detected": self.counts["launches"],
            "trades_detected": self.counts["trades"],
            "completions_detected": self.counts["completions"],
            "initializes_detected": self.counts["initializes"],
            "buys_detected": self.counts["buys"],
            "sells_detected": self.counts["sells"],
            "new_entities": self.counts["new_entities"],
            "transactions": self.counts["transactions"],
            "duplicates": self.counts["duplicates"],
            "decode_errors": self.counts["decode_errors"],
            "active_curves": len(self.tracker.active()),
            "near_completion_curves": len(self.tracker.near_completion()),
            "enrichment": self.queue.stats(),
        }
