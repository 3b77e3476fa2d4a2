"""
MarketFeed – Application Port: Window Cache
===========================================
Espejo write-behind de la ventana por SubscriptionKey.

No es fuente de verdad una vez que fluyen datos en vivo; solo permite
mostrar algo al instante en un arranque en caliente.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey


class IWindowCache(ABC):
    """Slot clave-valor único por (instrumento, intervalo)."""

    @abstractmethod
    async def load(self, key: SubscriptionKey) -> List[Candle]:
        """Ventana persistida, o [] si no existe o no se puede parsear. NUNCA lanza."""
        pass

    @abstractmethod
    async def save(self, key: SubscriptionKey, window: Sequence[Candle]) -> None:
        """Persistir las últimas `limit` velas; no-op si está vacía. NUNCA lanza."""
        pass

    async def close(self) -> None:
        return None


class NullWindowCache(IWindowCache):
    """Cache deshabilitado (cache_enabled=False)."""

    async def load(self, key: SubscriptionKey) -> List[Candle]:
        return []

    async def save(self, key: SubscriptionKey, window: Sequence[Candle]) -> None:
        return None
