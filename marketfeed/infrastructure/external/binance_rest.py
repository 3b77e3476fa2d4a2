"""
MarketFeed – History Snapshot Fetcher (REST)
============================================
Fetch único de las últimas N velas:

  GET {base}/api/v3/klines?symbol=BTCUSDT&interval=1m&limit=500

FALLO NO FATAL:
- Error de red, timeout, status no-2xx o cuerpo que no es una lista →
  TransportFailureError logueado y publicado como FeedError; fetch()
  retorna []. El caller sigue con el cache y el stream en vivo.
- Una fila malformada se descarta sola; el resto del snapshot se usa.

Se confía en el orden ascendente y la no-duplicación del venue.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import aiohttp

from marketfeed.application.ports.event_publisher import IEventPublisher
from marketfeed.application.ports.history_provider import IHistoryProvider
from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.events.feed_events import ERROR_TOPIC, FeedError
from marketfeed.domain.exceptions import MalformedPayloadError, TransportFailureError
from marketfeed.domain.services.candle_codec import decode_rest_candle
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("binance_rest")

KLINES_PATH = "/api/v3/klines"


class HistorySnapshotFetcher(IHistoryProvider):
    """Cliente REST async del endpoint de velas históricas."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
        publisher: Optional[IEventPublisher] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None
        self._publisher = publisher

        # Estadísticas de monitoreo
        self._requests = 0
        self._failures = 0
        self._rows_skipped = 0

    @property
    def klines_url(self) -> str:
        return f"{self._base_url}{KLINES_PATH}"

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds)
            )
            self._owns_session = True
        return self._session

    # ──────────────────────── Fetch ──────────────────────────────────────

    async def fetch(self, key: SubscriptionKey, limit: int = 500) -> List[Candle]:
        self._requests += 1
        logger.info("[REST] Solicitando historia %s (limit=%d)", key, limit)

        try:
            rows = await self._request(key, limit)
        except TransportFailureError as e:
            self._failures += 1
            logger.error("[REST] Falló la historia de %s: %s", key, e.message)
            if self._publisher is not None:
                self._publisher.publish(
                    ERROR_TOPIC,
                    FeedError(key=str(key), source="history", code=e.code, message=e.message),
                )
            return []

        candles: List[Candle] = []
        for row in rows:
            try:
                candles.append(decode_rest_candle(row))
            except MalformedPayloadError as e:
                self._rows_skipped += 1
                logger.warning("[REST] Fila descartada (%s): %s", key, e.message)

        logger.info("[REST] %d velas recibidas para %s", len(candles), key)
        return candles

    async def _request(self, key: SubscriptionKey, limit: int) -> List[Any]:
        session = self._ensure_session()
        params = {
            "symbol": key.rest_symbol,
            "interval": key.interval,
            "limit": str(limit),
        }
        try:
            async with session.get(self.klines_url, params=params) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise TransportFailureError(
                        f"HTTP {response.status}: {body[:200]}", status=response.status
                    )
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportFailureError(f"Error de red: {e!r}") from e
        except ValueError as e:
            raise TransportFailureError(f"Respuesta no-JSON: {e}") from e

        if not isinstance(payload, list):
            raise TransportFailureError(
                f"Respuesta inesperada ({type(payload).__name__}), se esperaba una lista"
            )
        return payload

    async def close(self) -> None:
        """Cerrar la sesión HTTP si es propia."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def stats(self) -> dict:
        return {
            "requests": self._requests,
            "failures": self._failures,
            "rows_skipped": self._rows_skipped,
        }
