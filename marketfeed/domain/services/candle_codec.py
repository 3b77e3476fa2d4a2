"""
MarketFeed – Candle Codec
=========================
Traducción sin estado entre el formato del venue y el modelo interno.

FORMATOS:
  REST   → [openTimeMs, "o", "h", "l", "c", "v", ...]   (≥ 6 elementos)
  Stream → {"stream": "btcusdt@kline_1m", "data": {"k": {t, o, h, l, c, v, x}}}
           {"stream": "btcusdt@depth20",  "data": {"bids": [...], "asks": [...]}}

El envelope del stream se decodifica a una unión etiquetada
(KlineUpdate | DepthUpdate) a partir del tipo de tópico explícito, no por
búsqueda de substring. Un tópico desconocido es MalformedPayloadError.

Cualquier violación de forma/tipo lanza MalformedPayloadError; el
llamador decide aislar la fila o el mensaje.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.exceptions import MalformedPayloadError
from marketfeed.domain.value_objects.depth_snapshot import DepthSnapshot

_OHLCV_FIELDS = ("open", "high", "low", "close", "volume")
_STREAM_FIELDS = ("o", "h", "l", "c", "v")


class StreamTopic(str, Enum):
    """Tipos de tópico del canal push."""

    KLINE = "kline"
    DEPTH = "depth"


@dataclass(frozen=True, slots=True)
class KlineUpdate:
    """Update de vela en vivo; closed=True es el último update del intervalo."""

    stream: str
    candle: Candle
    closed: bool

    @property
    def topic(self) -> StreamTopic:
        return StreamTopic.KLINE


@dataclass(frozen=True, slots=True)
class DepthUpdate:
    """Snapshot completo de profundidad recibido del stream."""

    stream: str
    snapshot: DepthSnapshot

    @property
    def topic(self) -> StreamTopic:
        return StreamTopic.DEPTH


StreamMessage = Union[KlineUpdate, DepthUpdate]


# ─── Helpers ────────────────────────────────────────────────────────────

def _parse_number(value: Any, field: str) -> float:
    """Texto numérico (o número) → float finito y no negativo."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedPayloadError(
            f"Campo '{field}' no numérico: {value!r}", field=field, payload=value
        )
    try:
        number = float(value)
    except ValueError:
        raise MalformedPayloadError(
            f"Campo '{field}' no numérico: {value!r}", field=field, payload=value
        ) from None
    if not math.isfinite(number) or number < 0:
        raise MalformedPayloadError(
            f"Campo '{field}' fuera de rango: {value!r}", field=field, payload=value
        )
    return number


def _parse_open_time(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedPayloadError(
            f"Campo '{field}' debe ser entero (ms): {value!r}", field=field, payload=value
        )
    if value < 0:
        raise MalformedPayloadError(
            f"Campo '{field}' negativo: {value!r}", field=field, payload=value
        )
    return value


def _parse_levels(raw: Any, field: str) -> tuple[tuple[float, float], ...]:
    if not isinstance(raw, (list, tuple)):
        raise MalformedPayloadError(f"'{field}' debe ser una lista", field=field, payload=raw)
    levels = []
    for level in raw:
        if not isinstance(level, (list, tuple)) or len(level) < 2:
            raise MalformedPayloadError(
                f"Nivel inválido en '{field}': {level!r}", field=field, payload=level
            )
        levels.append((_parse_number(level[0], field), _parse_number(level[1], field)))
    return tuple(levels)


# ─── Decoders ───────────────────────────────────────────────────────────

def decode_rest_candle(raw: Any) -> Candle:
    """Fila REST (array ≥ 6 elementos) → Candle."""
    if not isinstance(raw, (list, tuple)) or len(raw) < 6:
        raise MalformedPayloadError(
            "Fila REST con menos de 6 elementos", field="row", payload=raw
        )
    open_time = _parse_open_time(raw[0], "open_time")
    values = [_parse_number(raw[i + 1], name) for i, name in enumerate(_OHLCV_FIELDS)]
    return Candle(open_time, *values)


def decode_stream_candle(raw: Any) -> tuple[Candle, bool]:
    """Objeto `k` del stream → (Candle, closed)."""
    if not isinstance(raw, dict):
        raise MalformedPayloadError("Objeto kline ausente", field="k", payload=raw)
    missing = [name for name in ("t", *_STREAM_FIELDS, "x") if name not in raw]
    if missing:
        raise MalformedPayloadError(
            f"Campos ausentes en kline: {', '.join(missing)}", field=missing[0], payload=raw
        )
    closed = raw["x"]
    if not isinstance(closed, bool):
        raise MalformedPayloadError("Campo 'x' debe ser booleano", field="x", payload=closed)

    open_time = _parse_open_time(raw["t"], "t")
    values = [_parse_number(raw[name], name) for name in _STREAM_FIELDS]
    return Candle(open_time, *values), closed


def decode_depth(raw: Any) -> DepthSnapshot:
    """Objeto `data` del tópico depth → DepthSnapshot (solo validación de forma)."""
    if not isinstance(raw, dict) or "bids" not in raw or "asks" not in raw:
        raise MalformedPayloadError("Depth sin bids/asks", field="data", payload=raw)
    return DepthSnapshot(
        bids=_parse_levels(raw["bids"], "bids"),
        asks=_parse_levels(raw["asks"], "asks"),
    )


def topic_of(stream: str) -> StreamTopic:
    """'btcusdt@kline_1m' → KLINE, 'btcusdt@depth20' → DEPTH."""
    _, sep, suffix = stream.partition("@")
    if sep:
        if suffix.startswith("kline_"):
            return StreamTopic.KLINE
        if suffix.startswith("depth"):
            return StreamTopic.DEPTH
    raise MalformedPayloadError(f"Tópico desconocido: {stream!r}", field="stream", payload=stream)


def decode_stream_message(raw: str | bytes | dict) -> StreamMessage:
    """Envelope {stream, data} → KlineUpdate | DepthUpdate."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedPayloadError(f"Mensaje no-JSON: {e}", field="envelope") from None

    if not isinstance(raw, dict):
        raise MalformedPayloadError("Envelope no es un objeto", field="envelope", payload=raw)
    stream = raw.get("stream")
    data = raw.get("data")
    if not isinstance(stream, str) or not isinstance(data, dict):
        raise MalformedPayloadError("Envelope sin stream/data", field="envelope", payload=raw)

    topic = topic_of(stream)
    if topic is StreamTopic.KLINE:
        candle, closed = decode_stream_candle(data.get("k"))
        return KlineUpdate(stream=stream, candle=candle, closed=closed)
    if topic is StreamTopic.DEPTH:
        return DepthUpdate(stream=stream, snapshot=decode_depth(data))
    raise AssertionError(f"StreamTopic sin decoder: {topic}")
