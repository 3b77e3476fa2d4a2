"""
MarketFeed – Domain Events
==========================
Hechos observables de una suscripción, publicados en el EventBus para la
capa de UI. Son inmutables y llevan timestamp.

Sustituyen a los callbacks onKlineUpdate / onDepthUpdate: los
consumidores se suscriben a un tópico en lugar de registrarse en la red.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict

# Tópicos del EventBus
WINDOW_TOPIC = "kline_window"
KLINE_TOPIC = "kline"
DEPTH_TOPIC = "depth"
STATUS_TOPIC = "feed_status"
ERROR_TOPIC = "feed_error"

ALL_TOPICS = (WINDOW_TOPIC, KLINE_TOPIC, DEPTH_TOPIC, STATUS_TOPIC, ERROR_TOPIC)


@dataclass(frozen=True)
class DomainEvent:
    """Evento base de dominio."""

    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.__class__.__name__,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class WindowReplaced(DomainEvent):
    """Evento: la ventana se reemplazó completa (cache o snapshot REST)."""

    key: str = ""
    source: str = ""  # cache | snapshot
    candles: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "key": self.key,
            "source": self.source,
            "count": len(self.candles),
            "candles": [c.to_wire() for c in self.candles],
        })
        return base


@dataclass(frozen=True)
class CandleApplied(DomainEvent):
    """Evento: una vela en vivo reemplazó la cola o se añadió a la ventana."""

    key: str = ""
    outcome: str = ""  # replaced | appended | evicted | seeded
    candle: Any = None
    closed: bool = False
    window_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "key": self.key,
            "outcome": self.outcome,
            "candle": self.candle.to_dict() if self.candle is not None else None,
            "closed": self.closed,
            "window_size": self.window_size,
        })
        return base


@dataclass(frozen=True)
class DepthReplaced(DomainEvent):
    """Evento: nuevo snapshot de profundidad."""

    key: str = ""
    snapshot: Any = None

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "key": self.key,
            **(self.snapshot.to_dict() if self.snapshot is not None else {"bids": [], "asks": []}),
        })
        return base


@dataclass(frozen=True)
class StreamStatusChanged(DomainEvent):
    """Evento: transición de estado del canal push."""

    key: str = ""
    state: str = ""

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({"key": self.key, "state": self.state})
        return base


@dataclass(frozen=True)
class FeedError(DomainEvent):
    """Diagnóstico: error recuperable (nunca se lanza al consumidor)."""

    key: str = ""
    source: str = ""  # stream | history | cache
    code: str = ""
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "key": self.key,
            "source": self.source,
            "code": self.code,
            "message": self.message,
        })
        return base
