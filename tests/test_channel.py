import pytest

from launchwatch.channel import CURVES, EVENTS, Channel


@pytest.mark.asyncio
async def test_publish_fans_out_per_topic():
    ch = Channel()
    a, b = ch.subscribe(CURVES), ch.subscribe(CURVES)
    e = ch.subscribe(EVENTS)
    ch.publish(CURVES, [1])
    assert await a.get() == [1] and await b.get() == [1]
    assert e.empty()
    assert ch.latest[CURVES] == [1]


@pytest.mark.asyncio
async def test_slow_subscriber_loses_oldest():
    ch = Channel(maxsize=2)
    q = ch.subscribe(EVENTS)
    for i in range(5):
        ch.publish(EVENTS, i)
    assert [q.get_nowait(), q.get_nowait()] == [3, 4]


def test_unsubscribe():
    ch = Channel()
    q = ch.subscribe(CURVES)
    assert ch.subscribers(CURVES) == 1
    ch.unsubscribe(CURVES, q)
    ch.unsubscribe(CURVES, q)
    assert ch.subscribers(CURVES) == 0
