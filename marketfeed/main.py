"""
MarketFeed – Main Application Entry Point
=========================================
Orquesta una suscripción de velas + profundidad y la expone a la UI.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear el contenedor (EventBus, cache, REST, fábrica de streams, controller)
  3. FastAPI lifespan startup:
     a. Iniciar WebSocketManager (broadcast a la UI)
     b. Iniciar MarketFeedController con la suscripción por defecto
  4. FastAPI lifespan shutdown:
     a. Detener todo en orden inverso

FLUJO DE DATOS:
  REST /api/v3/klines ─┐
  WS  /stream ─────────┼─▸ MarketFeedController ─▸ EventBus ─▸ WebSocketManager ─▸ UI
  Cache SQLite ────────┘           ▲      │
                                   └──────┘ write-behind (window_slots)

  uvicorn marketfeed.main:app --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketfeed import __version__
from marketfeed.container import init_container
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey
from marketfeed.presentation.api.routes import init_routes, router
from marketfeed.shared.config.settings import settings
from marketfeed.shared.logging.logger import get_logger, setup_logging

# ─── Logging ────────────────────────────────────────────────────────────
setup_logging(settings.log_level)
logger = get_logger("main")

# ─── Contenedor de Dependencias ─────────────────────────────────────────
container = init_container(settings)


# ─── FastAPI Lifespan ───────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle de la aplicación."""
    key = SubscriptionKey.from_pair(settings.default_symbol, settings.default_interval)

    logger.info("=" * 60)
    logger.info("  MarketFeed v%s", __version__)
    logger.info("  Suscripción: %s (streams: %s)", key, ", ".join(key.stream_topics(settings.depth_levels)))
    logger.info("  Ventana: %d velas", settings.window_limit)
    logger.info("  REST: %s", settings.venue_rest_url)
    logger.info("  WS:   %s", settings.venue_ws_url)
    if settings.cache_enabled:
        logger.info("  Cache: %s", settings.cache_db_path)
    else:
        logger.info("  Cache: Deshabilitado (cache_enabled=False)")
    logger.info("=" * 60)

    init_routes(container.ws_manager, container.controller, container.event_bus)

    await container.ws_manager.start()
    await container.controller.start(key)

    logger.info("✓ Todos los componentes iniciados correctamente")

    yield  # ← La app está corriendo aquí

    # ── SHUTDOWN ──
    logger.info("Iniciando shutdown...")
    await container.controller.stop()
    await container.ws_manager.stop()
    await container.close()
    await container.event_bus.unsubscribe_all()
    logger.info("✓ Shutdown completo")


# ─── FastAPI App ────────────────────────────────────────────────────────

app = FastAPI(
    title="MarketFeed",
    description="Ventana de velas reconciliada (snapshot REST + stream) y profundidad en vivo",
    version=__version__,
    lifespan=lifespan,
)

# CORS para frontend local
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def run() -> None:
    """Entry point de consola: `marketfeed`."""
    uvicorn.run(
        "marketfeed.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
