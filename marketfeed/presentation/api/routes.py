"""
MarketFeed – API Routes (FastAPI)
=================================
Endpoints de solo lectura para la capa de UI.

Endpoints disponibles:
  WS   /ws/market      → streaming del feed (snapshot inicial + eventos)
  GET  /api/health     → health check
  GET  /api/status     → estado de la suscripción, stream, cache y bus
  GET  /api/klines     → ventana actual (forma REST o dict)
  GET  /api/depth      → último snapshot de profundidad
"""

from __future__ import annotations

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from marketfeed.shared.logging.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# Referencias a componentes inyectados desde main.py
_ws_manager = None
_controller = None
_event_bus = None


def init_routes(ws_manager, controller, event_bus=None) -> None:
    """Inyectar dependencias desde main.py al arrancar."""
    global _ws_manager, _controller, _event_bus
    _ws_manager = ws_manager
    _controller = controller
    _event_bus = event_bus


def feed_snapshot() -> dict:
    """Estado actual para un visor que se conecta tarde."""
    if _controller is None:
        return {"key": None, "candles": [], "bids": [], "asks": []}
    return {
        "key": str(_controller.key) if _controller.key else None,
        "candles": [c.to_wire() for c in _controller.window],
        **_controller.depth.to_dict(),
    }


# ─── WebSocket endpoint para streaming a la UI ────────────────────────

@router.websocket("/ws/market")
async def market_stream(websocket: WebSocket) -> None:
    """
    El cliente se conecta aquí para recibir la ventana y el depth en
    tiempo real. El broadcast lo hace WebSocketManager; este handler solo
    gestiona el ciclo de vida de la conexión.
    """
    if _ws_manager is None:
        await websocket.close(code=1011, reason="Server not ready")
        return

    await _ws_manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Mensaje de cliente WS: %s", data[:100])
    except WebSocketDisconnect:
        pass
    finally:
        _ws_manager.disconnect(websocket)


# ─── REST endpoints ───────────────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "marketfeed"}


@router.get("/api/status")
async def feed_status() -> dict:
    """Estado completo de la suscripción."""
    return {
        "feed": _controller.stats if _controller else {},
        "ws_clients": _ws_manager.client_count if _ws_manager else 0,
        "event_bus": _event_bus.stats if _event_bus else {},
    }


@router.get("/api/klines")
async def get_klines(
    limit: int = Query(default=500, ge=1, le=1000),
    format: str = Query(default="wire", pattern="^(wire|dict)$"),
) -> dict:
    """Últimas N velas de la ventana, más antigua primero."""
    if _controller is None:
        return {"error": "Server not ready", "candles": []}

    candles = _controller.window[-limit:]
    return {
        "key": str(_controller.key) if _controller.key else None,
        "count": len(candles),
        "candles": [c.to_wire() if format == "wire" else c.to_dict() for c in candles],
    }


@router.get("/api/depth")
async def get_depth() -> dict:
    """Último snapshot de profundidad (bids / asks, mejor precio primero)."""
    if _controller is None:
        return {"error": "Server not ready", "bids": [], "asks": []}
    return {
        "key": str(_controller.key) if _controller.key else None,
        **_controller.depth.to_dict(),
    }
