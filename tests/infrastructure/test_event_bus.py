"""Tests del EventBus (fan-out con drop-oldest)."""

import asyncio

from marketfeed.domain.events.feed_events import StreamStatusChanged
from marketfeed.infrastructure.event_bus import EventBus


def status(state: str) -> StreamStatusChanged:
    return StreamStatusChanged(key="BTCUSDT/1m", state=state)


def test_publish_fans_out_to_every_subscriber():
    async def scenario():
        bus = EventBus()
        q1 = await bus.subscribe("feed_status", "a")
        q2 = await bus.subscribe("feed_status", "b")
        other = await bus.subscribe("depth", "c")

        bus.publish("feed_status", status("connected"))

        assert q1.get_nowait().state == "connected"
        assert q2.get_nowait().state == "connected"
        assert other.empty()
        assert bus.stats["published"] == 1

    asyncio.run(scenario())


def test_full_queue_drops_oldest():
    async def scenario():
        bus = EventBus(max_queue_size=2)
        queue = await bus.subscribe("feed_status", "slow")

        for state in ("connecting", "connected", "closed"):
            bus.publish("feed_status", status(state))

        assert [queue.get_nowait().state, queue.get_nowait().state] == ["connected", "closed"]
        assert bus.stats["dropped"] == 1

    asyncio.run(scenario())


def test_unsubscribe():
    async def scenario():
        bus = EventBus()
        queue = await bus.subscribe("kline", "ui")
        await bus.subscribe("depth", "ui")
        assert bus.subscriber_count == 2

        await bus.unsubscribe("kline", queue)
        bus.publish("kline", status("x"))
        assert queue.empty()

        await bus.unsubscribe_all()
        assert bus.subscriber_count == 0

    asyncio.run(scenario())
