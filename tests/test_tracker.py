import datetime as dt

import pytest

from launchwatch.models import CompleteEvent, TokenLaunch, TradeEvent
from launchwatch.tracker import CurveTracker

T0 = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)


def _launch(mint="M1", name="Foo", symbol="FOO"):
    return TokenLaunch(
        mint=mint, name=name, symbol=symbol, uri="", bonding_curve="C", creator="U",
        timestamp=T0, signature=f"sig-{mint}",
    )


def _trade(mint="M1", real_sol=0.0, minutes=1):
    return TradeEvent(
        mint=mint, sol_amount=1.0, token_amount=10, is_buy=True, user="U",
        timestamp=T0 + dt.timedelta(minutes=minutes),
        virtual_sol_reserves=30.0 + real_sol, virtual_token_reserves=1,
        real_sol_reserves=real_sol, real_token_reserves=1,
    )


def _complete(mint="M1"):
    return CompleteEvent(user="U", mint=mint, bonding_curve="C", timestamp=T0, signature="done")


def test_launch_then_completion():
    events, changes = [], []
    t = CurveTracker(on_event=events.append, on_change=lambda: changes.append(1))
    curve = t.register_launch(_launch())
    assert curve.name == "Foo" and curve.symbol == "FOO"
    assert curve.completion_progress == 0
    assert curve.is_active and not curve.is_completed
    assert curve.real_sol_reserves == 0 and curve.sol_raised_target == 85.0
    assert events[-1].type == "launch" and events[-1].priority == "normal"

    t.mark_completed("M1", _complete())
    curve = t.get("M1")
    assert curve.completion_progress == 100
    assert curve.is_completed and not curve.is_active
    assert events[-1].type == "completion" and events[-1].priority == "high"
    assert len(changes) == 2


def test_completion_for_unknown_mint_is_noop():
    events = []
    t = CurveTracker(on_event=events.append)
    assert t.mark_completed("nope", _complete("nope")) is None
    assert events == [] and t.get("nope") is None


def test_progress_from_real_reserves_and_capped():
    t = CurveTracker()
    t.register_launch(_launch())
    assert t.apply_trade(_trade(real_sol=42.5)).completion_progress == 50.0
    assert t.apply_trade(_trade(real_sol=500.0)).completion_progress == 100.0


def test_progress_never_decreases_while_active():
    t = CurveTracker()
    t.register_launch(_launch())
    t.apply_trade(_trade(real_sol=60.0))
    curve = t.apply_trade(_trade(real_sol=10.0))
    assert curve.completion_progress == 60 / 85 * 100
    assert 0 <= curve.completion_progress <= 100


def test_near_completion_alert_fires_once():
    events = []
    t = CurveTracker(on_event=events.append)
    t.register_launch(_launch())
    for sol in (60.0, 68.0, 70.0, 75.0, 50.0, 72.0, 80.0):
        t.apply_trade(_trade(real_sol=sol))
    alerts = [e for e in events if e.type == "near_completion"]
    assert len(alerts) == 1
    assert alerts[0].priority == "high"
    assert t.get("M1").is_near_completion


def test_trade_priority_follows_near_completion():
    t = CurveTracker()
    t.register_launch(_launch())
    t.apply_trade(_trade(real_sol=10.0))
    t.apply_trade(_trade(real_sol=70.0))
    trades = [e for e in t.drain_events() if e.type == "trade"]
    assert [e.priority for e in trades] == ["normal", "high"]


def test_trade_creates_unknown_curve_and_ignored_after_completion():
    t = CurveTracker()
    curve = t.apply_trade(_trade(mint="M9", real_sol=8.5))
    assert curve.completion_progress == pytest.approx(10.0) and curve.name is None
    t.mark_completed("M9", _complete("M9"))
    curve = t.apply_trade(_trade(mint="M9", real_sol=1.0))
    assert curve.completion_progress == 100 and curve.is_completed


def test_queries_sorted_by_progress():
    t = CurveTracker()
    for mint, sol in (("A", 10.0), ("B", 70.0), ("C", 40.0), ("D", 75.0)):
        t.register_launch(_launch(mint=mint))
        t.apply_trade(_trade(mint=mint, real_sol=sol))
    t.mark_completed("D", _complete("D"))
    assert [c.mint for c in t.by_progress()] == ["B", "C", "A"]
    assert [c.mint for c in t.near_completion()] == ["B"]
    assert {c.mint for c in t.active()} == {"A", "B", "C"}


def test_discovered_curve_created_once():
    events = []
    t = CurveTracker(on_event=events.append)
    t.register_discovered("M2", "s1", T0)
    t.register_discovered("M2", "s2", T0 + dt.timedelta(seconds=5))
    assert [e.type for e in events] == ["launch"]
    assert t.get("M2").last_activity == T0 + dt.timedelta(seconds=5)
    assert t.get("M2").name is None


def test_event_queue_drain_and_reset():
    t = CurveTracker()
    t.register_launch(_launch("A"))
    t.register_launch(_launch("B"))
    t.mark_completed("A", _complete("A"))
    assert [e.mint for e in t.high_priority_events()] == ["A"]
    assert len(t.drain_events()) == 3
    assert t.drain_events() == []
    t.reset()
    assert t.get("B") is None and t.active() == []
