"""
MarketFeed – WebSocket Manager (broadcast a clientes UI)
========================================================
Gestiona las conexiones WebSocket de la capa de UI y les reenvía los
eventos del feed publicados en el EventBus.

ARQUITECTURA:
  EventBus ──(kline_window | kline | depth | feed_status | feed_error)──▸
       WSManager._broadcast_loop()  ──▸ [Cliente WS 1, Cliente WS 2, ...]

NO BLOQUEA EL LOOP DEL FEED:
- Un broadcast loop por tópico, cada uno en su propia task.
- El envío a cada cliente usa asyncio.wait_for con timeout: un cliente
  lento no congela a los demás. Si falla, se elimina sin afectar al resto.

VISOR TARDÍO:
- Al conectar, el cliente recibe primero el estado actual (ventana +
  depth), así nunca empieza con la pantalla vacía si ya hay datos.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from marketfeed.domain.events.feed_events import ALL_TOPICS
from marketfeed.infrastructure.event_bus import EventBus
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("ws_manager")

SEND_TIMEOUT_SECONDS = 5.0


class WebSocketManager:
    """Gestiona conexiones de UI y broadcast del estado del feed."""

    def __init__(
        self,
        event_bus: EventBus,
        snapshot_provider: Optional[Callable[[], dict]] = None,
    ) -> None:
        self._event_bus = event_bus
        self._snapshot_provider = snapshot_provider
        self._clients: Set[WebSocket] = set()
        self._broadcast_tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Lanzar un broadcast loop por tópico del feed."""
        for topic in ALL_TOPICS:
            queue = await self._event_bus.subscribe(topic, f"ws_broadcast_{topic}")
            self._broadcast_tasks.append(
                asyncio.create_task(self._broadcast_loop(queue, topic), name=f"ws-broadcast-{topic}")
            )
        logger.info("WebSocketManager iniciado – tópicos: %s", ", ".join(ALL_TOPICS))

    async def stop(self) -> None:
        """Cancelar broadcast y cerrar todos los clientes."""
        for task in self._broadcast_tasks:
            task.cancel()
        await asyncio.gather(*self._broadcast_tasks, return_exceptions=True)
        self._broadcast_tasks.clear()

        for ws in list(self._clients):
            try:
                await ws.close()
            except (RuntimeError, WebSocketDisconnect) as e:
                logger.debug("Cliente ya cerrado: %s", e)
        self._clients.clear()
        logger.info("WebSocketManager detenido")

    async def connect(self, websocket: WebSocket) -> None:
        """Registrar un cliente nuevo y enviarle el estado actual."""
        await websocket.accept()
        self._clients.add(websocket)
        logger.info("Cliente WS conectado. Total: %d", len(self._clients))

        if self._snapshot_provider is not None:
            payload = self._encode("snapshot", self._snapshot_provider())
            disconnected: list[WebSocket] = []
            await self._safe_send(websocket, payload, disconnected)
            for ws in disconnected:
                self._clients.discard(ws)

    def disconnect(self, websocket: WebSocket) -> None:
        """Des-registrar un cliente desconectado."""
        self._clients.discard(websocket)
        logger.info("Cliente WS desconectado. Total: %d", len(self._clients))

    async def _broadcast_loop(self, queue: asyncio.Queue, topic: str) -> None:
        """Consumir eventos de un tópico y enviarlos a todos los clientes."""
        while True:
            event = await queue.get()
            if not self._clients:
                continue

            payload = self._encode(topic, event.to_dict())
            disconnected: list[WebSocket] = []
            await asyncio.gather(
                *(self._safe_send(ws, payload, disconnected) for ws in list(self._clients))
            )
            for ws in disconnected:
                self._clients.discard(ws)

    @staticmethod
    def _encode(event_type: str, data: Any) -> str:
        return json.dumps({"type": event_type, "data": data})

    @staticmethod
    async def _safe_send(ws: WebSocket, payload: str, disconnected: list[WebSocket]) -> None:
        """
        Enviar payload a un cliente con timeout.
        Si falla, marcar como desconectado para limpieza; no rompe el gather.
        """
        try:
            await asyncio.wait_for(ws.send_text(payload), timeout=SEND_TIMEOUT_SECONDS)
        except (WebSocketDisconnect, asyncio.TimeoutError, RuntimeError, OSError):
            disconnected.append(ws)

    @property
    def client_count(self) -> int:
        return len(self._clients)
