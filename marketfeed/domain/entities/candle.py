"""
MarketFeed – Domain Entity: Candle
==================================
Vela OHLCV de un intervalo fijo, identificada por su open_time.

- frozen=True → una vela nunca se muta; la vela en curso se "actualiza"
  sustituyendo el último elemento de la ventana por una vela nueva con el
  mismo open_time (misma identidad lógica).
- Se usa dataclass por rendimiento (más ligera que Pydantic para hot-path).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Candle:
    """Vela OHLCV con timestamp de apertura en milisegundos."""

    open_time: int       # epoch ms, clave única dentro de una serie
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_wire(self) -> list:
        """Forma REST del venue: [openTimeMs, "open", "high", "low", "close", "volume"]."""
        return [
            self.open_time,
            str(self.open),
            str(self.high),
            str(self.low),
            str(self.close),
            str(self.volume),
        ]

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "open_time": self.open_time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
