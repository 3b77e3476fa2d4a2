"""
MarketFeed – Domain Value Object: SubscriptionKey
=================================================
Par (instrumento, intervalo) que identifica un slot del cache y el
conjunto de tópicos del stream. Inmutable durante toda la suscripción.

NORMALIZACIÓN DEL SÍMBOLO:
  "BTC/USDT" → "BTCUSDT" (REST, clave de cache)
             → "btcusdt" (tópicos del stream)
"""

from __future__ import annotations

from dataclasses import dataclass

from marketfeed.domain.exceptions import ValidationError

# Intervalos soportados por el venue → duración en ms (1M es irregular)
INTERVAL_MS: dict[str, int | None] = {
    "1s": 1_000,
    "1m": 60_000,
    "3m": 3 * 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "30m": 30 * 60_000,
    "1h": 3_600_000,
    "2h": 2 * 3_600_000,
    "4h": 4 * 3_600_000,
    "6h": 6 * 3_600_000,
    "8h": 8 * 3_600_000,
    "12h": 12 * 3_600_000,
    "1d": 86_400_000,
    "3d": 3 * 86_400_000,
    "1w": 7 * 86_400_000,
    "1M": None,
}

CACHE_KEY_PREFIX = "kline_data"


@dataclass(frozen=True, slots=True)
class SubscriptionKey:
    """Clave (símbolo, intervalo) de una suscripción."""

    symbol: str      # forma canónica BASE/QUOTE o BASEQUOTE, tal como llegó
    interval: str    # e.g. "1m"

    @classmethod
    def from_pair(cls, symbol: str, interval: str) -> "SubscriptionKey":
        """Construye una clave validada."""
        symbol = (symbol or "").strip()
        if not symbol.replace("/", ""):
            raise ValidationError("Símbolo vacío", field="symbol", value=symbol)
        if interval not in INTERVAL_MS:
            raise ValidationError(
                f"Intervalo no soportado: {interval!r}",
                field="interval",
                value=interval,
            )
        return cls(symbol=symbol, interval=interval)

    @property
    def rest_symbol(self) -> str:
        """BTC/USDT → BTCUSDT"""
        return self.symbol.replace("/", "").upper()

    @property
    def stream_symbol(self) -> str:
        """BTC/USDT → btcusdt"""
        return self.rest_symbol.lower()

    @property
    def cache_key(self) -> str:
        return f"{CACHE_KEY_PREFIX}_{self.rest_symbol}_{self.interval}"

    @property
    def interval_ms(self) -> int | None:
        return INTERVAL_MS.get(self.interval)

    def stream_topics(self, depth_levels: int = 20) -> list[str]:
        """Tópicos push: exactamente kline del intervalo + depth del instrumento."""
        return [
            f"{self.stream_symbol}@kline_{self.interval}",
            f"{self.stream_symbol}@depth{depth_levels}",
        ]

    def __str__(self) -> str:
        return f"{self.rest_symbol}/{self.interval}"
