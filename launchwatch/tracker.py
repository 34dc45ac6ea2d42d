"""
Bonding-curve lifecycle registry.

Per mint: Active -> NearCompletion (sticky flag) -> Completed (terminal).
Progress is derived only from real SOL reserves against the fixed target and
is capped at 100. Every state change is queued as a ``CurveEvent`` and the
``on_event`` / ``on_change`` hooks are invoked so the owner can publish it.
"""

import datetime as dt
from collections import deque
from typing import Callable

from launchwatch.config import settings
from launchwatch.debug import dbg
from launchwatch.models import (
    BondingCurveState,
    CompleteEvent,
    CurveEvent,
    TokenLaunch,
    TradeEvent,
    utcnow,
)


class CurveTracker:
    def __init__(
        self,
        on_event: Callable[[CurveEvent], None] | None = None,
        on_change: Callable[[], None] | None = None,
        target_sol: float = settings.COMPLETION_TARGET_SOL,
        near_ratio: float = settings.NEAR_COMPLETION_RATIO,
        pending_limit: int = 1000,
    ):
        self.curves: dict[str, BondingCurveState] = {}
        self.pending: deque[CurveEvent] = deque(maxlen=pending_limit)
        self.on_event = on_event
        self.on_change = on_change
        self.target_sol = target_sol
        self.near_ratio = near_ratio

    # ─── mutations ─────────────────────────────────────────────────────────
    def register_launch(self, launch: TokenLaunch) -> BondingCurveState:
        curve = self.curves.get(launch.mint)
        if curve is None:
            curve = self._new_curve(launch.mint, launch.timestamp)
            self.curves[launch.mint] = curve
        curve.name = launch.name
        curve.symbol = launch.symbol
        self._queue(
            CurveEvent(
                type="launch",
                timestamp=launch.timestamp,
                mint=launch.mint,
                signature=launch.signature,
                data=launch.model_dump(mode="json"),
            )
        )
        return curve

    def register_discovered(
        self, mint: str, signature: str = "", when: dt.datetime | None = None
    ) -> BondingCurveState:
        """Create a curve for a mint first seen through an enriched buy."""
        when = when or utcnow()
        curve = self.curves.get(mint)
        if curve is not None:
            curve.last_activity = when
            return curve
        curve = self._new_curve(mint, when)
        self.curves[mint] = curve
        self._queue(
            CurveEvent(
                type="launch",
                timestamp=when,
                mint=mint,
                signature=signature,
                data={"mint": mint, "source": "enrichment"},
            )
        )
        return curve

    def touch(self, mint: str, when: dt.datetime | None = None) -> None:
        curve = self.curves.get(mint)
        if curve is not None:
            curve.last_activity = when or utcnow()

    def apply_trade(self, trade: TradeEvent) -> BondingCurveState | None:
        """Trade ingestion hook; callers leave it idle unless trades are enabled.

        Completed curves are terminal and ignore further trades.
        """
        curve = self.curves.get(trade.mint)
        if curve is None:
            curve = self._new_curve(trade.mint, trade.timestamp)
            self.curves[trade.mint] = curve
        if curve.is_completed:
            return curve

        curve.virtual_sol_reserves = trade.virtual_sol_reserves
        curve.virtual_token_reserves = trade.virtual_token_reserves
        curve.real_sol_reserves = trade.real_sol_reserves
        curve.real_token_reserves = trade.real_token_reserves
        curve.last_activity = trade.timestamp
        curve.total_trades += 1

        was_near = curve.is_near_completion
        self._recalculate(curve)
        if curve.is_near_completion and not was_near:
            self._alert_near_completion(curve)

        self._queue(
            CurveEvent(
                type="trade",
                timestamp=trade.timestamp,
                mint=trade.mint,
                priority="high" if curve.is_near_completion else "normal",
                signature=trade.signature,
                data=trade.model_dump(mode="json"),
            )
        )
        return curve

    def mark_completed(self, mint: str, event: CompleteEvent) -> BondingCurveState | None:
        curve = self.curves.get(mint)
        if curve is None:
            dbg(f"completion for untracked mint {mint}")
            return None
        curve.is_completed = True
        curve.is_active = False
        curve.completion_progress = 100.0
        curve.last_activity = event.timestamp
        self._queue(
            CurveEvent(
                type="completion",
                timestamp=event.timestamp,
                mint=mint,
                priority="high",
                signature=event.signature,
                data=event.model_dump(mode="json"),
            )
        )
        return curve

    def reset(self) -> None:
        self.curves.clear()
        self.pending.clear()

    # ─── queries ───────────────────────────────────────────────────────────
    def get(self, mint: str) -> BondingCurveState | None:
        return self.curves.get(mint)

    def active(self) -> list[BondingCurveState]:
        return [c for c in self.curves.values() if c.is_active]

    def by_progress(self) -> list[BondingCurveState]:
        live = [c for c in self.curves.values() if c.is_active and not c.is_completed]
        return sorted(live, key=lambda c: c.completion_progress, reverse=True)

    def near_completion(self) -> list[BondingCurveState]:
        return [c for c in self.by_progress() if c.is_near_completion]

    def drain_events(self) -> list[CurveEvent]:
        out = list(self.pending)
        self.pending.clear()
        return out

    def high_priority_events(self) -> list[CurveEvent]:
        return [e for e in self.pending if e.priority == "high"]

    # ─── internals ─────────────────────────────────────────────────────────
    def _new_curve(self, mint: str, when: dt.datetime) -> BondingCurveState:
        return BondingCurveState(
            mint=mint,
            sol_raised_target=self.target_sol,
            created_at=when,
            last_activity=when,
        )

    def _recalculate(self, curve: BondingCurveState) -> None:
        progress = curve.real_sol_reserves / self.target_sol * 100
        # monotonic while active, bounded to [0, 100]
        progress = max(curve.completion_progress, min(max(progress, 0.0), 100.0))
        curve.completion_progress = progress
        if progress >= self.near_ratio * 100:
            curve.is_near_completion = True

    def _alert_near_completion(self, curve: BondingCurveState) -> None:
        self._queue(
            CurveEvent(
                type="near_completion",
                timestamp=utcnow(),
                mint=curve.mint,
                priority="high",
                data=curve.model_dump(mode="json"),
            ),
        )

    def _queue(self, event: CurveEvent) -> None:
        self.pending.append(event)
        if self.on_event is not None:
            self.on_event(event)
        if self.on_change is not None and event.type != "near_completion":
            self.on_change()
