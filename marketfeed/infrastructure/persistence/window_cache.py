"""
MarketFeed – Window Cache (SQLite)
==================================
Implementación de IWindowCache sobre la tabla `window_slots`.

FORMATO DEL SLOT:
  key     = "kline_data_{SYMBOL}_{interval}"
  payload = JSON ascendente de ≤ limit velas en forma REST
            [[openTimeMs, "o", "h", "l", "c", "v"], ...]

BEST EFFORT:
- load(): slot ausente o payload que no parsea → [] (se loguea, no es fatal).
- save(): ventana vacía → no-op. Un fallo de escritura se loguea y se
  publica como FeedError; nunca interrumpe el camino de datos en vivo.
"""

from __future__ import annotations

import json
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from marketfeed.application.ports.event_publisher import IEventPublisher
from marketfeed.application.ports.window_cache import IWindowCache
from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.events.feed_events import ERROR_TOPIC, FeedError
from marketfeed.domain.exceptions import MalformedPayloadError, PersistenceFailureError
from marketfeed.domain.services.candle_codec import decode_rest_candle
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey
from marketfeed.infrastructure.persistence.database import DatabaseManager
from marketfeed.infrastructure.persistence.models import WindowSlotModel
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("window_cache")


class WindowCache(IWindowCache):
    """Slot clave-valor persistente por SubscriptionKey."""

    def __init__(
        self,
        db: DatabaseManager,
        limit: int = 500,
        publisher: Optional[IEventPublisher] = None,
    ) -> None:
        self._db = db
        self._limit = limit
        self._publisher = publisher

        # Estadísticas de monitoreo
        self._loads = 0
        self._saves = 0
        self._failures = 0

    # ──────────────────────── Load ───────────────────────────────────────

    async def load(self, key: SubscriptionKey) -> List[Candle]:
        self._loads += 1
        try:
            payload = await self._read(key.cache_key)
        except PersistenceFailureError as e:
            self._report(key, e)
            return []

        if payload is None:
            logger.info("[%s] Sin ventana en cache", key)
            return []

        try:
            candles = self._decode(payload)
        except MalformedPayloadError as e:
            # Un slot corrupto equivale a un slot ausente
            logger.warning("[%s] Cache ilegible, se ignora: %s", key, e.message)
            return []

        logger.info("[%s] %d velas cargadas del cache", key, len(candles))
        return candles

    async def _read(self, cache_key: str) -> Optional[str]:
        try:
            await self._db.initialize()
            async with self._db.session() as session:
                row = await session.get(WindowSlotModel, cache_key)
                return row.payload if row is not None else None
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceFailureError(f"Lectura fallida: {e}", key=cache_key) from e

    @staticmethod
    def _decode(payload: str) -> List[Candle]:
        try:
            rows = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(f"JSON inválido: {e}", field="payload") from None
        if not isinstance(rows, list):
            raise MalformedPayloadError("El payload no es una lista", field="payload")
        return [decode_rest_candle(row) for row in rows]

    # ──────────────────────── Save ───────────────────────────────────────

    async def save(self, key: SubscriptionKey, window: Sequence[Candle]) -> None:
        if not window:
            return
        tail = list(window)[-self._limit:]
        payload = json.dumps([c.to_wire() for c in tail], separators=(",", ":"))
        try:
            await self._write(key.cache_key, payload, len(tail))
        except PersistenceFailureError as e:
            self._report(key, e)
            return
        self._saves += 1

    async def _write(self, cache_key: str, payload: str, count: int) -> None:
        try:
            await self._db.initialize()
            async with self._db.session() as session:
                await session.merge(
                    WindowSlotModel(key=cache_key, payload=payload, candle_count=count)
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceFailureError(f"Escritura fallida: {e}", key=cache_key) from e

    # ──────────────────────── Helpers ────────────────────────────────────

    def _report(self, key: SubscriptionKey, error: PersistenceFailureError) -> None:
        self._failures += 1
        logger.error("[%s] %s", key, error.message)
        if self._publisher is not None:
            self._publisher.publish(
                ERROR_TOPIC,
                FeedError(key=str(key), source="cache", code=error.code, message=error.message),
            )

    async def close(self) -> None:
        await self._db.close()

    @property
    def stats(self) -> dict:
        return {
            "loads": self._loads,
            "saves": self._saves,
            "failures": self._failures,
        }
