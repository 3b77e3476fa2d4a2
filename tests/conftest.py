"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional, Sequence

import pytest

from marketfeed.application.ports.event_publisher import IEventPublisher
from marketfeed.application.ports.history_provider import IHistoryProvider
from marketfeed.application.ports.stream_client import IStreamClient, StreamState
from marketfeed.application.ports.window_cache import IWindowCache
from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey


def make_candle(open_time: int, close: float = 1.5, **overrides: float) -> Candle:
    values = {"open": 1.0, "high": 2.0, "low": 0.5, "close": close, "volume": 10.0}
    values.update(overrides)
    return Candle(open_time=open_time, **values)


def make_series(count: int, start: int = 1000, step: int = 1000) -> List[Candle]:
    return [make_candle(start + i * step) for i in range(count)]


def kline_message(
    open_time: int,
    close: str = "1.5",
    closed: bool = False,
    stream: str = "btcusdt@kline_1m",
) -> str:
    return json.dumps({
        "stream": stream,
        "data": {
            "e": "kline",
            "k": {"t": open_time, "o": "1", "h": "2", "l": "0.5", "c": close, "v": "10", "x": closed},
        },
    })


def depth_message(bids: Sequence[Sequence[str]], asks: Sequence[Sequence[str]]) -> str:
    return json.dumps({
        "stream": "btcusdt@depth20",
        "data": {"lastUpdateId": 1, "bids": bids, "asks": asks},
    })


# ─── Fakes ──────────────────────────────────────────────────────────────

class RecordingPublisher(IEventPublisher):
    """Publisher que guarda (topic, event) en orden."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def publish(self, topic: str, event: Any) -> None:
        self.events.append((topic, event))

    def of(self, topic: str) -> list:
        return [event for t, event in self.events if t == topic]


class FakeHistory(IHistoryProvider):
    """Historia controlable; `gate` retiene la respuesta hasta que se active."""

    def __init__(self, candles: Sequence[Candle] = (), gate: Optional[asyncio.Event] = None) -> None:
        self.candles = list(candles)
        self.gate = gate
        self.calls: list[tuple[SubscriptionKey, int]] = []

    async def fetch(self, key: SubscriptionKey, limit: int = 500) -> List[Candle]:
        self.calls.append((key, limit))
        if self.gate is not None:
            await self.gate.wait()
        return list(self.candles)

    async def close(self) -> None:
        return None


class FakeCache(IWindowCache):
    def __init__(self, stored: Sequence[Candle] = (), gate: Optional[asyncio.Event] = None) -> None:
        self.stored = list(stored)
        self.gate = gate
        self.saves: list[tuple[Candle, ...]] = []

    async def load(self, key: SubscriptionKey) -> List[Candle]:
        if self.gate is not None:
            await self.gate.wait()
        return list(self.stored)

    async def save(self, key: SubscriptionKey, window: Sequence[Candle]) -> None:
        if window:
            self.saves.append(tuple(window))
            self.stored = list(window)


class FakeStream(IStreamClient):
    """Stream en memoria: el test empuja mensajes directo al canal."""

    def __init__(self, sink: asyncio.Queue, label: str) -> None:
        self.sink = sink
        self.label = label
        self.topics: Optional[list[str]] = None
        self.closed = False
        self._state = StreamState.DISCONNECTED

    @property
    def state(self) -> StreamState:
        return self._state

    async def connect(self, topics: Sequence[str]) -> None:
        self.topics = list(topics)
        self._state = StreamState.CONNECTED

    async def close(self) -> None:
        self.closed = True
        self._state = StreamState.CLOSED

    def push(self, item: Any) -> None:
        self.sink.put_nowait(item)


class StreamFactory:
    """Fábrica que recuerda los streams creados."""

    def __init__(self) -> None:
        self.created: list[FakeStream] = []

    def __call__(self, sink: asyncio.Queue, label: str) -> FakeStream:
        stream = FakeStream(sink, label)
        self.created.append(stream)
        return stream

    @property
    def last(self) -> FakeStream:
        return self.created[-1]


class FakeWebSocket:
    """Transporte falso: itera mensajes encolados; None termina la iteración."""

    def __init__(self, messages: Sequence[Any] = (), hold_open: bool = False) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        for message in messages:
            self._queue.put_nowait(message)
        if not hold_open:
            self._queue.put_nowait(None)
        self.closed = False

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def feed(self, message: Any) -> None:
        self._queue.put_nowait(message)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)


class FakeConnector:
    """Reemplazo de websockets.connect: callable → async context manager."""

    def __init__(self, ws: Optional[FakeWebSocket] = None, error: Optional[BaseException] = None) -> None:
        self.ws = ws if ws is not None else FakeWebSocket()
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, url: str, **kwargs: Any) -> "FakeConnector":
        self.calls.append((url, kwargs))
        return self

    async def __aenter__(self) -> FakeWebSocket:
        if self.error is not None:
            raise self.error
        return self.ws

    async def __aexit__(self, *exc_info: Any) -> bool:
        await self.ws.close()
        return False


def drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


# ─── Fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def key() -> SubscriptionKey:
    return SubscriptionKey.from_pair("BTC/USDT", "1m")


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def stream_factory() -> StreamFactory:
    return StreamFactory()
