"""
MarketFeed – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.

NOTA: el símbolo y el intervalo por defecto solo los usa el entry point
para construir la primera SubscriptionKey. Los componentes del core
reciben la clave explícitamente en start(), nunca la leen de aquí.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── Venue (REST + WebSocket) ───────────────────────────────────────
    venue_rest_url: str = Field(
        default="https://api.binance.com",
        description="Base URL del endpoint REST de velas históricas",
    )
    venue_ws_url: str = Field(
        default="wss://stream.binance.com:9443",
        description="Base URL del canal push (combined streams)",
    )

    # ─── Suscripción por defecto ────────────────────────────────────────
    default_symbol: str = Field(default="BTC/USDT", description="Instrumento BASE/QUOTE")
    default_interval: str = Field(default="1m", description="Intervalo de vela del venue")

    # ─── Ventana de velas ───────────────────────────────────────────────
    window_limit: int = Field(
        default=500, ge=1, le=1000,
        description="Máximo de velas en la ventana (y en el snapshot REST)",
    )
    depth_levels: int = Field(
        default=20, description="Niveles del tópico de profundidad (@depth20)",
    )

    # ─── Transporte ─────────────────────────────────────────────────────
    http_timeout_seconds: float = Field(
        default=10.0, description="Timeout total de la petición REST de historia",
    )
    ws_open_timeout_seconds: float = Field(
        default=10.0, description="Timeout del handshake WebSocket",
    )
    ws_ping_interval_seconds: float | None = Field(
        default=20.0, description="Ping de transporte (None = deshabilitado)",
    )
    ws_max_message_bytes: int = Field(
        default=2**20, description="Tamaño máximo aceptado por mensaje (1 MB)",
    )

    # ─── Cache local (SQLite) ───────────────────────────────────────────
    cache_enabled: bool = Field(default=True, description="Persistir la ventana en disco")
    cache_db_path: str = Field(
        default="kline_cache.db", description="Archivo SQLite del cache de ventanas",
    )
    cache_db_echo: bool = Field(default=False, description="Loguear queries SQL (debug)")

    # ─── Event Bus ──────────────────────────────────────────────────────
    event_bus_max_queue_size: int = Field(
        default=10_000,
        description="Tamaño máximo de cola por consumidor del Event Bus",
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton global – solo para el entry point (main.py)
settings = Settings()
