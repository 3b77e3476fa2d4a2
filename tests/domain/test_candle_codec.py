"""Tests del codec REST / stream."""

import json

import pytest

from conftest import depth_message, kline_message
from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.exceptions import MalformedPayloadError
from marketfeed.domain.services.candle_codec import (
    DepthUpdate,
    KlineUpdate,
    StreamTopic,
    decode_depth,
    decode_rest_candle,
    decode_stream_candle,
    decode_stream_message,
    topic_of,
)


class TestRestCandle:
    def test_decodes_numeric_text(self):
        row = [1700000000000, "42000.1", "42100.0", "41950.5", "42050.25", "12.5", 1700000059999, "0", 10]

        candle = decode_rest_candle(row)

        assert candle == Candle(1700000000000, 42000.1, 42100.0, 41950.5, 42050.25, 12.5)

    def test_accepts_plain_numbers(self):
        assert decode_rest_candle([1000, 1, 2, 0.5, 1.5, 10]).close == 1.5

    @pytest.mark.parametrize("row", [
        [1000, "1", "2", "0.5", "1.5"],
        "not-a-row",
        None,
        {"t": 1000},
    ])
    def test_rejects_bad_shape(self, row):
        with pytest.raises(MalformedPayloadError):
            decode_rest_candle(row)

    @pytest.mark.parametrize("row", [
        ["1000", "1", "2", "0.5", "1.5", "10"],
        [1000.5, "1", "2", "0.5", "1.5", "10"],
        [True, "1", "2", "0.5", "1.5", "10"],
        [-1, "1", "2", "0.5", "1.5", "10"],
    ])
    def test_rejects_bad_open_time(self, row):
        with pytest.raises(MalformedPayloadError):
            decode_rest_candle(row)

    @pytest.mark.parametrize("bad", ["abc", "nan", "inf", "-1", None, [], True])
    def test_rejects_bad_numeric_field(self, bad):
        with pytest.raises(MalformedPayloadError) as exc:
            decode_rest_candle([1000, "1", "2", "0.5", bad, "10"])
        assert exc.value.field == "close"

    def test_wire_form_round_trips(self):
        candle = Candle(1000, 1.0, 2.0, 0.5, 1.5, 10.0)
        assert decode_rest_candle(candle.to_wire()) == candle


class TestStreamCandle:
    def test_decodes_kline_object(self):
        candle, closed = decode_stream_candle(
            {"t": 2000, "T": 2999, "o": "1", "h": "2", "l": "0.5", "c": "1.6", "v": "3", "x": True}
        )
        assert candle == Candle(2000, 1.0, 2.0, 0.5, 1.6, 3.0)
        assert closed is True

    def test_missing_field(self):
        with pytest.raises(MalformedPayloadError) as exc:
            decode_stream_candle({"t": 2000, "o": "1", "h": "2", "l": "0.5", "v": "3", "x": False})
        assert exc.value.field == "c"

    def test_closed_flag_must_be_boolean(self):
        with pytest.raises(MalformedPayloadError):
            decode_stream_candle({"t": 2000, "o": "1", "h": "2", "l": "0.5", "c": "1", "v": "3", "x": "false"})


class TestDepth:
    def test_decodes_levels_in_order(self):
        snapshot = decode_depth({"bids": [["100.5", "2"], ["100.0", "1"]], "asks": [["101", "3"]]})

        assert snapshot.bids == ((100.5, 2.0), (100.0, 1.0))
        assert snapshot.asks == ((101.0, 3.0),)
        assert snapshot.best_bid == (100.5, 2.0)

    def test_empty_sides_are_valid(self):
        snapshot = decode_depth({"bids": [], "asks": []})
        assert snapshot.is_empty

    @pytest.mark.parametrize("raw", [
        {"bids": []},
        {"bids": "x", "asks": []},
        {"bids": [["1"]], "asks": []},
        {"bids": [["a", "1"]], "asks": []},
    ])
    def test_rejects_bad_shape(self, raw):
        with pytest.raises(MalformedPayloadError):
            decode_depth(raw)


class TestStreamEnvelope:
    def test_topic_from_stream_name(self):
        assert topic_of("btcusdt@kline_1m") is StreamTopic.KLINE
        assert topic_of("btcusdt@depth20") is StreamTopic.DEPTH

    @pytest.mark.parametrize("stream", ["btcusdt@trade", "btcusdt", "klines@", "depth20"])
    def test_unknown_topic_rejected(self, stream):
        with pytest.raises(MalformedPayloadError):
            topic_of(stream)

    def test_kline_message(self):
        message = decode_stream_message(kline_message(3000, close="1.9", closed=True))

        assert isinstance(message, KlineUpdate)
        assert message.topic is StreamTopic.KLINE
        assert message.candle.open_time == 3000
        assert message.candle.close == 1.9
        assert message.closed is True

    def test_depth_message(self):
        message = decode_stream_message(depth_message([["10", "1"]], [["11", "2"]]))

        assert isinstance(message, DepthUpdate)
        assert message.topic is StreamTopic.DEPTH
        assert message.snapshot.best_ask == (11.0, 2.0)

    def test_accepts_bytes_and_dicts(self):
        raw = kline_message(3000)
        assert decode_stream_message(raw.encode()).candle.open_time == 3000
        assert decode_stream_message(json.loads(raw)).candle.open_time == 3000

    def test_topic_dispatch_is_not_substring_based(self):
        # "depth" dentro del nombre del símbolo no convierte una kline en depth
        raw = kline_message(3000, stream="depthusdt@kline_1m")
        assert isinstance(decode_stream_message(raw), KlineUpdate)

    @pytest.mark.parametrize("raw", [
        "{not json",
        "[]",
        json.dumps({"data": {}}),
        json.dumps({"stream": "btcusdt@kline_1m"}),
        json.dumps({"stream": "btcusdt@kline_1m", "data": {}}),
        json.dumps({"stream": "btcusdt@aggTrade", "data": {"p": "1"}}),
    ])
    def test_malformed_envelopes(self, raw):
        with pytest.raises(MalformedPayloadError):
            decode_stream_message(raw)
