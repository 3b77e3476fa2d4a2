"""
Dependency Injection Container.

Este módulo proporciona el contenedor de inyección de dependencias
que gestiona las instancias del feed: bus de eventos, cache, cliente REST,
fábrica de streams y el controller de la suscripción.

Clean Architecture: Este contenedor vive en la capa más externa y es el único
lugar donde se crean dependencias concretas.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from marketfeed.application.ports.history_provider import IHistoryProvider
from marketfeed.application.ports.stream_client import IStreamClient, StreamClientFactory
from marketfeed.application.ports.window_cache import IWindowCache, NullWindowCache
from marketfeed.application.use_cases.market_feed_controller import MarketFeedController
from marketfeed.infrastructure.event_bus import EventBus
from marketfeed.shared.config.settings import Settings


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Cada dependencia se crea de forma perezosa la primera vez que se pide
    y se comparte a partir de ahí (singleton por contenedor).
    """

    # Configuración
    settings: Settings = field(default_factory=Settings)

    _event_bus: Optional[EventBus] = None
    _window_cache: Optional[IWindowCache] = None
    _history_provider: Optional[IHistoryProvider] = None
    _stream_factory: Optional[StreamClientFactory] = None
    _controller: Optional[MarketFeedController] = None
    _ws_manager: Any = None

    # ==================== Infraestructura ====================

    @property
    def event_bus(self) -> EventBus:
        """Obtiene o crea el EventBus (singleton)."""
        if self._event_bus is None:
            self._event_bus = EventBus(max_queue_size=self.settings.event_bus_max_queue_size)
        return self._event_bus

    @property
    def window_cache(self) -> IWindowCache:
        """Cache SQLite, o NullWindowCache si está deshabilitado."""
        if self._window_cache is None:
            if not self.settings.cache_enabled:
                self._window_cache = NullWindowCache()
            else:
                from marketfeed.infrastructure.persistence.database import DatabaseManager
                from marketfeed.infrastructure.persistence.window_cache import WindowCache
                db = DatabaseManager(self.settings.cache_db_path, echo=self.settings.cache_db_echo)
                self._window_cache = WindowCache(
                    db, limit=self.settings.window_limit, publisher=self.event_bus
                )
        return self._window_cache

    @property
    def history_provider(self) -> IHistoryProvider:
        """Cliente REST del snapshot histórico."""
        if self._history_provider is None:
            from marketfeed.infrastructure.external.binance_rest import HistorySnapshotFetcher
            self._history_provider = HistorySnapshotFetcher(
                self.settings.venue_rest_url,
                timeout_seconds=self.settings.http_timeout_seconds,
                publisher=self.event_bus,
            )
        return self._history_provider

    @property
    def stream_factory(self) -> StreamClientFactory:
        """Fábrica de LiveStreamClient: uno nuevo por start()."""
        if self._stream_factory is None:
            from marketfeed.infrastructure.external.binance_stream import LiveStreamClient
            s = self.settings

            def factory(sink: asyncio.Queue, label: str) -> IStreamClient:
                return LiveStreamClient(
                    s.venue_ws_url,
                    sink,
                    label=label,
                    open_timeout=s.ws_open_timeout_seconds,
                    ping_interval=s.ws_ping_interval_seconds,
                    max_size=s.ws_max_message_bytes,
                )

            self._stream_factory = factory
        return self._stream_factory

    # ==================== Use Cases ====================

    @property
    def controller(self) -> MarketFeedController:
        """Controller de la suscripción activa."""
        if self._controller is None:
            self._controller = MarketFeedController(
                history=self.history_provider,
                cache=self.window_cache,
                stream_factory=self.stream_factory,
                publisher=self.event_bus,
                limit=self.settings.window_limit,
                depth_levels=self.settings.depth_levels,
            )
        return self._controller

    # ==================== Presentación ====================

    @property
    def ws_manager(self):
        """Broadcast WebSocket a la UI."""
        if self._ws_manager is None:
            from marketfeed.presentation.api.routes import feed_snapshot
            from marketfeed.presentation.websocket.websocket_manager import WebSocketManager
            self._ws_manager = WebSocketManager(self.event_bus, snapshot_provider=feed_snapshot)
        return self._ws_manager

    # ==================== Lifecycle ====================

    async def close(self) -> None:
        """Libera sesiones HTTP y el engine del cache."""
        if self._history_provider is not None:
            await self._history_provider.close()
        if self._window_cache is not None:
            await self._window_cache.close()

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._event_bus = None
        self._window_cache = None
        self._history_provider = None
        self._stream_factory = None
        self._controller = None
        self._ws_manager = None

    def override(self, name: str, instance: Any) -> None:
        """
        Override una dependencia (útil para tests con fakes).

        Args:
            name: Nombre de la dependencia (ej: 'history_provider')
            instance: Instancia a usar
        """
        attr_name = f"_{name}"
        if hasattr(self, attr_name):
            setattr(self, attr_name, instance)
        else:
            raise ValueError(f"Unknown dependency: {name}")


# ==================== Global Container ====================

_container: Optional[Container] = None


def get_container() -> Container:
    """Obtiene la instancia global del contenedor."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Inicializa el contenedor con configuración específica.

    Args:
        settings: Configuración opcional. Si es None, usa valores por defecto.
    """
    global _container
    _container = Container(settings=settings if settings is not None else Settings())
    return _container


def reset_container() -> None:
    global _container
    if _container is not None:
        _container.reset()
    _container = None
