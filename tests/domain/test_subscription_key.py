"""Tests de SubscriptionKey, DepthSnapshotStore y eventos de dominio."""

import pytest

from conftest import make_candle
from marketfeed.domain.events.feed_events import CandleApplied, WindowReplaced
from marketfeed.domain.exceptions import ValidationError
from marketfeed.domain.services.depth_store import DepthSnapshotStore
from marketfeed.domain.value_objects.depth_snapshot import EMPTY_DEPTH, DepthSnapshot
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey


class TestSubscriptionKey:
    def test_symbol_normalization(self, key):
        assert key.rest_symbol == "BTCUSDT"
        assert key.stream_symbol == "btcusdt"
        assert key.cache_key == "kline_data_BTCUSDT_1m"
        assert str(key) == "BTCUSDT/1m"

    def test_stream_topics_are_exactly_kline_and_depth(self, key):
        assert key.stream_topics() == ["btcusdt@kline_1m", "btcusdt@depth20"]
        assert key.stream_topics(5) == ["btcusdt@kline_1m", "btcusdt@depth5"]

    def test_interval_duration(self):
        assert SubscriptionKey.from_pair("ETHUSDT", "4h").interval_ms == 4 * 3_600_000
        assert SubscriptionKey.from_pair("ETHUSDT", "1M").interval_ms is None

    @pytest.mark.parametrize("symbol,interval", [("", "1m"), ("/", "1m"), ("BTC/USDT", "7m")])
    def test_invalid_pairs_rejected(self, symbol, interval):
        with pytest.raises(ValidationError):
            SubscriptionKey.from_pair(symbol, interval)

    def test_keys_are_hashable_values(self):
        a = SubscriptionKey.from_pair("BTC/USDT", "1m")
        b = SubscriptionKey.from_pair("BTC/USDT", "1m")
        assert a == b
        assert len({a, b}) == 1


class TestDepthSnapshotStore:
    def test_starts_empty(self):
        store = DepthSnapshotStore()
        assert store.snapshot is EMPTY_DEPTH
        assert store.updates == 0

    def test_replace_is_total(self):
        store = DepthSnapshotStore()
        store.replace(DepthSnapshot(bids=((10.0, 1.0), (9.0, 2.0)), asks=((11.0, 1.0),)))
        latest = DepthSnapshot(bids=((8.0, 5.0),), asks=())

        store.replace(latest)

        assert store.snapshot == latest
        assert store.updates == 2

    def test_to_dict_lists_levels(self):
        snapshot = DepthSnapshot(bids=((10.0, 1.0),), asks=((11.0, 2.0),))
        assert snapshot.to_dict() == {"bids": [[10.0, 1.0]], "asks": [[11.0, 2.0]]}


class TestFeedEvents:
    def test_window_replaced_serializes_wire_rows(self):
        candles = (make_candle(1000), make_candle(2000))
        data = WindowReplaced(key="BTCUSDT/1m", source="snapshot", candles=candles).to_dict()

        assert data["event_type"] == "WindowReplaced"
        assert data["count"] == 2
        assert data["candles"][1] == [2000, "1.0", "2.0", "0.5", "1.5", "10.0"]

    def test_candle_applied_serializes_candle(self):
        data = CandleApplied(
            key="BTCUSDT/1m", outcome="appended", candle=make_candle(3000), closed=True, window_size=3
        ).to_dict()

        assert data["candle"]["open_time"] == 3000
        assert data["closed"] is True
        assert data["window_size"] == 3
