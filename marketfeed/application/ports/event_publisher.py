"""
MarketFeed – Application Port: Event Publisher
==============================================
Interfaz para publicar el estado observable de una suscripción.

El controller publica eventos; la infraestructura decide CÓMO
entregarlos (colas en memoria, WebSocket a la UI, etc.)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketfeed.domain.events.feed_events import DomainEvent


class IEventPublisher(ABC):
    """
    Interfaz para publicar eventos del feed.

    IMPLEMENTACIONES:
    - EventBus (fan-out asyncio.Queue)
    - Recolectores en memoria (tests)
    """

    @abstractmethod
    def publish(self, topic: str, event: DomainEvent) -> None:
        """
        Publica un evento a un tópico. No bloquea ni lanza.

        Args:
            topic: Nombre del tópico (e.g. "kline", "depth")
            event: Evento de dominio
        """
        pass
