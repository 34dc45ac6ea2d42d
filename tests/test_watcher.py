import json

import pytest
from sqlalchemy.exc import OperationalError

from launchwatch import watcher
from launchwatch.classifier import Program
from launchwatch.config import settings
from launchwatch.watcher import parse_notification, subscription


def _frame(err=None, logs=("Program log: hi",), sig="5sig"):
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "method": "logsNotification",
            "params": {
                "subscription": 9,
                "result": {
                    "context": {"slot": 321},
                    "value": {"signature": sig, "err": err, "logs": list(logs)},
                },
            },
        }
    )


def test_subscription_mentions_program():
    sub = subscription(Program.CURVE, req_id=2)
    assert sub["method"] == "logsSubscribe"
    assert sub["params"][0] == {"mentions": [settings.PUMP_PROGRAM]}
    assert subscription(Program.LAUNCHPAD)["params"][0] == {"mentions": [settings.LAUNCHPAD_PROGRAM]}


def test_parse_notification():
    note = parse_notification(_frame())
    assert note.signature == "5sig"
    assert note.logs == ("Program log: hi",)
    assert note.slot == 321


def test_failed_tx_and_acks_skipped():
    assert parse_notification(_frame(err={"InstructionError": [0, "Custom"]})) is None
    assert parse_notification(json.dumps({"jsonrpc": "2.0", "id": 2, "result": 9})) is None


class FakeSocket:
    def __init__(self, frames):
        self.frames = frames
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *e):
        pass

    async def send(self, msg):
        self.sent.append(json.loads(msg))

    async def _frames(self):
        for f in self.frames:
            yield f

    def __aiter__(self):
        return self._frames()


@pytest.mark.asyncio
async def test_failed_notification_does_not_stop_feed(monkeypatch):
    sock = FakeSocket([_frame(sig="s1a"), "not json", _frame(sig="s1b")])
    monkeypatch.setattr(watcher.websockets, "connect", lambda *a, **kw: sock)

    class FlakyMonitor:
        def __init__(self):
            self.handled = []

        async def handle_logs(self, program, note):
            self.handled.append(note.signature)
            if note.signature == "s1a":
                raise OperationalError("INSERT INTO logs", {}, Exception("database is locked"))

    monitor = FlakyMonitor()
    await watcher.watch(monitor, Program.CURVE)
    assert monitor.handled == ["s1a", "s1b"]
    assert sock.sent[0]["method"] == "logsSubscribe"
