"""
MarketFeed – Window Slot ORM Model
==================================
Tabla `window_slots`: un slot clave-valor por (instrumento, intervalo).

DECISIONES DE DISEÑO:
- key es la PK (e.g. "kline_data_BTCUSDT_1m") → upsert con session.merge().
- payload guarda el JSON de la ventana en la forma REST del venue.
- candle_count permite inspeccionar el cache sin parsear el payload.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketfeed.infrastructure.persistence.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WindowSlotModel(Base):
    """Ventana persistida de una suscripción."""

    __tablename__ = "window_slots"

    key: Mapped[str] = mapped_column(String(96), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    candle_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<WindowSlot(key='{self.key}', candles={self.candle_count})>"
