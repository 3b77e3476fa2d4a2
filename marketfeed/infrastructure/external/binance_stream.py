"""
MarketFeed – Live Stream Client (WebSocket)
===========================================
Dueño del ciclo de vida del canal push de UNA suscripción:

  {ws_base}/stream?streams=btcusdt@kline_1m/btcusdt@depth20

MÁQUINA DE ESTADOS:
  DISCONNECTED ──connect()──▸ CONNECTING ──open──▸ CONNECTED ──close──▸ CLOSED
        └──────────────────────close()─────────────────────────────────▸ CLOSED

CANAL DE SALIDA:
- No hay callbacks: cada mensaje decodificado (KlineUpdate | DepthUpdate),
  cada transición de estado (StreamStatusChanged) y cada error
  recuperable (FeedError) se encola en `sink`, una asyncio.Queue que
  consume una única task del controller.

AISLAMIENTO DE ERRORES:
- Un mensaje que no decodifica se loguea y se reporta; la conexión y los
  mensajes siguientes no se ven afectados.
- Un error de transporte se reporta como FeedError; el estado pasa a
  CLOSED solo cuando el transporte se cierra. La reconexión es decisión
  del caller, no de este cliente.
- Un cliente CLOSED no despacha nada más. close() es idempotente.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional, Sequence

import websockets
from websockets.exceptions import ConnectionClosedError, WebSocketException

from marketfeed.application.ports.stream_client import IStreamClient, StreamState
from marketfeed.domain.events.feed_events import FeedError, StreamStatusChanged
from marketfeed.domain.exceptions import MalformedPayloadError
from marketfeed.domain.services.candle_codec import decode_stream_message
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("binance_stream")


class LiveStreamClient(IStreamClient):
    """
    Cliente WebSocket asíncrono del venue (combined streams).

    Ciclo de vida:
      1. connect(topics) → lanza la task de conexión
      2. _run()          → abrir transporte y escuchar mensajes
      3. _dispatch()     → decodificar y encolar en `sink`
      4. close()         → teardown explícito (idempotente)
    """

    def __init__(
        self,
        base_url: str,
        sink: asyncio.Queue,
        label: str = "",
        open_timeout: float = 10.0,
        ping_interval: Optional[float] = 20.0,
        max_size: int = 2**20,
        connector: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._sink = sink
        self._label = label
        self._open_timeout = open_timeout
        self._ping_interval = ping_interval
        self._max_size = max_size
        self._connector = connector

        self._state = StreamState.DISCONNECTED
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None

        # Estadísticas de monitoreo
        self._messages_received = 0
        self._decode_errors = 0
        self._transport_errors = 0
        self._connected_since: float = 0.0

    # ──────────────────────── Estado ─────────────────────────────────────

    @property
    def state(self) -> StreamState:
        return self._state

    def _set_state(self, state: StreamState) -> None:
        if state is self._state:
            return
        logger.info("[WS %s] %s → %s", self._label, self._state.value, state.value)
        self._state = state
        self._sink.put_nowait(StreamStatusChanged(key=self._label, state=state.value))

    def stream_url(self, topics: Sequence[str]) -> str:
        return f"{self._base_url}/stream?streams={'/'.join(topics)}"

    # ──────────────────────── Lifecycle ──────────────────────────────────

    async def connect(self, topics: Sequence[str]) -> None:
        """Abrir el canal push. Solo válido desde DISCONNECTED."""
        if self._state is not StreamState.DISCONNECTED:
            logger.warning(
                "[WS %s] connect() ignorado en estado %s", self._label, self._state.value
            )
            return

        url = self.stream_url(topics)
        self._set_state(StreamState.CONNECTING)
        self._task = asyncio.create_task(self._run(url), name=f"ws-{self._label}")

    async def close(self) -> None:
        """Teardown explícito. Seguro aunque nunca se haya conectado."""
        self._set_state(StreamState.CLOSED)

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (WebSocketException, OSError) as e:
                logger.debug("[WS %s] Error cerrando transporte: %s", self._label, e)

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def wait_closed(self) -> None:
        """Esperar a que la task de conexión termine (transporte cerrado)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    # ──────────────────────── Conexión ───────────────────────────────────

    async def _run(self, url: str) -> None:
        logger.info("[WS %s] Conectando: %s", self._label, url)
        try:
            async with self._connector(
                url,
                open_timeout=self._open_timeout,
                ping_interval=self._ping_interval,
                close_timeout=5,
                max_size=self._max_size,
            ) as ws:
                if self._state is StreamState.CLOSED:
                    return  # close() llegó durante el handshake
                self._ws = ws
                self._connected_since = time.time()
                self._set_state(StreamState.CONNECTED)
                await self._listen(ws)

        except ConnectionClosedError as e:
            self._report_transport_error(f"Conexión cerrada con error: {e}")
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            self._report_transport_error(f"Error de transporte: {e!r}")
        finally:
            self._ws = None
            self._set_state(StreamState.CLOSED)

    async def _listen(self, ws: Any) -> None:
        """Loop de escucha hasta que el transporte se cierre."""
        async for raw_msg in ws:
            if self._state is not StreamState.CONNECTED:
                break
            self._messages_received += 1
            self._dispatch(raw_msg)

    def _dispatch(self, raw_msg: Any) -> None:
        try:
            message = decode_stream_message(raw_msg)
        except MalformedPayloadError as e:
            self._decode_errors += 1
            logger.warning("[WS %s] Mensaje descartado: %s", self._label, e.message)
            self._sink.put_nowait(
                FeedError(key=self._label, source="stream", code=e.code, message=e.message)
            )
            return
        self._sink.put_nowait(message)

    def _report_transport_error(self, message: str) -> None:
        self._transport_errors += 1
        logger.error("[WS %s] %s", self._label, message)
        self._sink.put_nowait(
            FeedError(key=self._label, source="stream", code="TRANSPORT_FAILURE", message=message)
        )

    # ──────────────────────── Stats ──────────────────────────────────────

    @property
    def stats(self) -> dict:
        """Estadísticas del cliente para monitoreo."""
        return {
            "state": self._state.value,
            "messages_received": self._messages_received,
            "decode_errors": self._decode_errors,
            "transport_errors": self._transport_errors,
            "connected_since": self._connected_since,
        }
