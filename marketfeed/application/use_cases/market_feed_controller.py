"""
MarketFeed – Market Feed Controller
===================================
Fachada de UNA suscripción (instrumento, intervalo): conecta cache,
snapshot REST, stream en vivo, reconciliador y depth store, y expone el
estado observable resultante.

FLUJO:
  start(key)
    ├── WindowCache.load(key)            → ventana inmediata (arranque en caliente)
    ├── task: History.fetch(key)  ──┐
    └── StreamClient.connect(topics) ─┤  (concurrentes e independientes)
                                      ▼
                          channel (asyncio.Queue)
                                      │
                          _consume()  ◄── ÚNICO escritor de ventana y depth
                                      ├── SnapshotLoaded → apply_snapshot (reemplazo total)
                                      ├── KlineUpdate    → apply_live_candle
                                      ├── DepthUpdate    → DepthSnapshotStore.replace
                                      └── status / error → EventBus (diagnóstico)

ORDEN SNAPSHOT vs STREAM:
- El snapshot entra por el mismo canal que los eventos en vivo, así que se
  aplica en orden de llegada. Si llegan velas en vivo antes, el snapshot
  las sobreescribe; las posteriores más antiguas que su cola son STALE.

PERSISTENCIA (write-behind):
- Tras cada cambio de cola o longitud se programa un save. Como máximo
  hay una escritura en vuelo; cambios durante la escritura se coalescen
  en una escritura posterior con la ventana más reciente.

CANCELACIÓN:
- stop() es seguro en cualquier punto: cancela el fetch pendiente (un
  resultado tardío se descarta), cierra el stream y detiene el consumidor.
  La última ventana y el último depth se conservan como estado final.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from marketfeed.application.ports.event_publisher import IEventPublisher
from marketfeed.application.ports.history_provider import IHistoryProvider
from marketfeed.application.ports.stream_client import (
    IStreamClient,
    StreamClientFactory,
    StreamState,
)
from marketfeed.application.ports.window_cache import IWindowCache
from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.events.feed_events import (
    DEPTH_TOPIC,
    ERROR_TOPIC,
    KLINE_TOPIC,
    STATUS_TOPIC,
    WINDOW_TOPIC,
    CandleApplied,
    DepthReplaced,
    DomainEvent,
    FeedError,
    StreamStatusChanged,
    WindowReplaced,
)
from marketfeed.domain.services.candle_codec import DepthUpdate, KlineUpdate
from marketfeed.domain.services.depth_store import DepthSnapshotStore
from marketfeed.domain.services.series_reconciler import (
    DEFAULT_WINDOW_LIMIT,
    MergeOutcome,
    SeriesReconciler,
)
from marketfeed.domain.value_objects.depth_snapshot import DepthSnapshot
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("market_feed")


@dataclass(frozen=True, slots=True)
class SnapshotLoaded:
    """Mensaje interno del canal: snapshot REST listo para aplicar."""

    candles: tuple[Candle, ...]


class MarketFeedController:
    """
    Orquesta una suscripción y expone `window` / `depth` de solo lectura.

    Uso:
        controller = MarketFeedController(history, cache, stream_factory, publisher)
        await controller.start(SubscriptionKey.from_pair("BTC/USDT", "1m"))
        ...
        await controller.stop()
    """

    def __init__(
        self,
        history: IHistoryProvider,
        cache: IWindowCache,
        stream_factory: StreamClientFactory,
        publisher: Optional[IEventPublisher] = None,
        limit: int = DEFAULT_WINDOW_LIMIT,
        depth_levels: int = 20,
    ) -> None:
        self._history = history
        self._cache = cache
        self._stream_factory = stream_factory
        self._publisher = publisher
        self._limit = limit
        self._depth_levels = depth_levels

        self._key: Optional[SubscriptionKey] = None
        self._reconciler = SeriesReconciler(limit=limit)
        self._depth_store = DepthSnapshotStore()
        self._stream: Optional[IStreamClient] = None
        self._channel: Optional[asyncio.Queue] = None
        self._running = False

        self._consumer_task: Optional[asyncio.Task] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._persist_task: Optional[asyncio.Task] = None
        self._persist_dirty = False

        # Estadísticas de monitoreo
        self._window_source = "empty"
        self._errors = 0
        self._snapshots_discarded = 0

    # ──────────────────────── Estado observable ──────────────────────────

    @property
    def key(self) -> Optional[SubscriptionKey]:
        return self._key

    @property
    def running(self) -> bool:
        return self._running

    @property
    def window(self) -> tuple[Candle, ...]:
        return self._reconciler.window

    @property
    def depth(self) -> DepthSnapshot:
        return self._depth_store.snapshot

    @property
    def stream_state(self) -> StreamState:
        return self._stream.state if self._stream is not None else StreamState.DISCONNECTED

    # ──────────────────────── Lifecycle ──────────────────────────────────

    async def start(self, key: SubscriptionKey) -> None:
        """Arrancar la suscripción. Ignorado si ya está corriendo."""
        if self._running:
            logger.warning("[%s] start() ignorado: ya corriendo %s", key, self._key)
            return

        self._key = key
        self._reconciler = SeriesReconciler(
            limit=self._limit, interval_ms=key.interval_ms, label=str(key)
        )
        self._depth_store = DepthSnapshotStore()
        channel = self._channel = asyncio.Queue()
        self._window_source = "empty"
        self._running = True
        logger.info("[%s] Iniciando suscripción (limit=%d)", key, self._limit)

        # ── 1. Cache → ventana inmediata ──
        cached = await self._cache.load(key)
        if not self._running or self._channel is not channel:
            # stop() (y quizá otro start()) durante la carga del cache
            logger.info("[%s] start() abandonado: la suscripción se detuvo", key)
            return
        if cached:
            self._reconciler.apply_snapshot(cached)
            self._window_source = "cache"
            self._publish(WINDOW_TOPIC, self._window_event("cache"))

        # ── 2. Consumidor único del canal ──
        self._consumer_task = asyncio.create_task(
            self._consume(channel), name=f"feed-consume-{key}"
        )

        # ── 3. Snapshot REST y stream en vivo, concurrentes ──
        self._fetch_task = asyncio.create_task(
            self._fetch_history(key, channel), name=f"feed-history-{key}"
        )
        self._stream = self._stream_factory(channel, str(key))
        await self._stream.connect(key.stream_topics(self._depth_levels))

    async def stop(self) -> None:
        """Detener la suscripción. Conserva ventana y depth como estado final."""
        if not self._running:
            return
        self._running = False
        key = self._key
        logger.info("[%s] Deteniendo suscripción...", key)

        await self._cancel(self._fetch_task)
        self._fetch_task = None

        if self._stream is not None:
            await self._stream.close()

        await self._cancel(self._consumer_task)
        self._consumer_task = None
        self._drain_diagnostics()

        if self._persist_task is not None:
            await asyncio.gather(self._persist_task, return_exceptions=True)
            self._persist_task = None

        logger.info("[%s] Suscripción detenida. Stats: %s", key, self._reconciler.stats)

    async def flush(self) -> None:
        """Esperar al fetch en vuelo, al vaciado del canal y a la escritura pendiente."""
        if self._fetch_task is not None:
            await asyncio.gather(self._fetch_task, return_exceptions=True)
        if self._running and self._channel is not None:
            await self._channel.join()
        if self._persist_task is not None:
            await asyncio.gather(self._persist_task, return_exceptions=True)

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ──────────────────────── Snapshot REST ──────────────────────────────

    async def _fetch_history(self, key: SubscriptionKey, channel: asyncio.Queue) -> None:
        try:
            candles = await self._history.fetch(key, self._limit)
        except Exception as e:
            self._errors += 1
            logger.error("[%s] Error obteniendo el snapshot: %s", key, e, exc_info=True)
            return
        if not self._running or channel is not self._channel:
            self._snapshots_discarded += 1
            logger.info("[%s] Snapshot tardío descartado (suscripción detenida)", key)
            return
        if not candles:
            logger.warning("[%s] Sin snapshot: se mantiene la ventana actual", key)
            return
        channel.put_nowait(SnapshotLoaded(tuple(candles)))

    # ──────────────────────── Consumidor ─────────────────────────────────

    async def _consume(self, channel: asyncio.Queue) -> None:
        """Loop de consumo; espera en queue.get() sin consumir CPU."""
        while True:
            item = await channel.get()
            try:
                self._handle(item)
            except Exception as e:
                self._errors += 1
                logger.error("[%s] Error aplicando evento: %s", self._key, e, exc_info=True)
            finally:
                channel.task_done()

    def _handle(self, item: object) -> None:
        if isinstance(item, KlineUpdate):
            self._on_kline(item)
        elif isinstance(item, DepthUpdate):
            self._depth_store.replace(item.snapshot)
            self._publish(DEPTH_TOPIC, DepthReplaced(key=str(self._key), snapshot=item.snapshot))
        elif isinstance(item, SnapshotLoaded):
            self._reconciler.apply_snapshot(item.candles)
            self._window_source = "snapshot"
            self._publish(WINDOW_TOPIC, self._window_event("snapshot"))
            self._schedule_persist()
        elif isinstance(item, StreamStatusChanged):
            self._publish(STATUS_TOPIC, item)
        elif isinstance(item, FeedError):
            self._errors += 1
            self._publish(ERROR_TOPIC, item)
        else:
            raise TypeError(f"Evento desconocido en el canal: {type(item).__name__}")

    def _on_kline(self, update: KlineUpdate) -> None:
        outcome = self._reconciler.apply_live_candle(update.candle, update.closed)
        if outcome is MergeOutcome.STALE:
            return
        if self._window_source == "empty":
            self._window_source = "live"
        self._publish(
            KLINE_TOPIC,
            CandleApplied(
                key=str(self._key),
                outcome=outcome.value,
                candle=update.candle,
                closed=update.closed,
                window_size=len(self._reconciler),
            ),
        )
        self._schedule_persist()

    def _drain_diagnostics(self) -> None:
        """Tras stop(): publicar status/errores pendientes y descartar datos."""
        if self._channel is None:
            return
        while not self._channel.empty():
            item = self._channel.get_nowait()
            self._channel.task_done()
            if isinstance(item, StreamStatusChanged):
                self._publish(STATUS_TOPIC, item)
            elif isinstance(item, FeedError):
                self._publish(ERROR_TOPIC, item)

    # ──────────────────────── Persistencia ───────────────────────────────

    def _schedule_persist(self) -> None:
        self._persist_dirty = True
        if self._persist_task is None or self._persist_task.done():
            self._persist_task = asyncio.create_task(
                self._persist_loop(self._key, self._reconciler), name=f"feed-persist-{self._key}"
            )

    async def _persist_loop(self, key: SubscriptionKey, reconciler: SeriesReconciler) -> None:
        while self._persist_dirty and reconciler is self._reconciler:
            self._persist_dirty = False
            try:
                await self._cache.save(key, reconciler.window)
            except Exception as e:
                logger.error("[%s] Persistencia fallida: %s", key, e)

    # ──────────────────────── Helpers ────────────────────────────────────

    def _window_event(self, source: str) -> WindowReplaced:
        return WindowReplaced(key=str(self._key), source=source, candles=self._reconciler.window)

    def _publish(self, topic: str, event: DomainEvent) -> None:
        if self._publisher is not None:
            self._publisher.publish(topic, event)

    @property
    def stats(self) -> dict:
        """Estadísticas de la suscripción para monitoreo."""
        return {
            "key": str(self._key) if self._key else None,
            "running": self._running,
            "window_source": self._window_source,
            "depth_updates": self._depth_store.updates,
            "errors": self._errors,
            "snapshots_discarded": self._snapshots_discarded,
            "stream": self._stream.stats if self._stream is not None else {},
            "reconciler": self._reconciler.stats,
        }
