"""
MarketFeed – Application Port: History Provider
===============================================
Interfaz para el fetch único del snapshot histórico.

El snapshot es una optimización, no un requisito de corrección: el
stream en vivo reconstruye por sí solo una ventana contigua.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from marketfeed.domain.entities.candle import Candle
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey


class IHistoryProvider(ABC):
    """
    Interfaz para obtener las últimas N velas de una suscripción.

    IMPLEMENTACIONES:
    - HistorySnapshotFetcher (REST del venue)
    - Fakes en memoria (tests)
    """

    @abstractmethod
    async def fetch(self, key: SubscriptionKey, limit: int = 500) -> List[Candle]:
        """
        Obtiene hasta `limit` velas recientes, ordenadas por open_time ASC.

        NUNCA lanza: ante fallo de transporte o status no-2xx retorna [].
        """
        pass

    async def close(self) -> None:
        """Liberar recursos de red (opcional)."""
        return None
