"""
MarketFeed – Application Port: Stream Client
============================================
Interfaz del canal push de una suscripción.

El cliente no conoce la ventana ni el depth store: solo encola mensajes
decodificados en la cola que recibe al construirse.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Sequence


class StreamState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class IStreamClient(ABC):
    """
    IMPLEMENTACIONES:
    - LiveStreamClient (WebSocket del venue)
    - Fakes con conector en memoria (tests)
    """

    @property
    @abstractmethod
    def state(self) -> StreamState:
        pass

    @abstractmethod
    async def connect(self, topics: Sequence[str]) -> None:
        """DISCONNECTED → CONNECTING; la apertura del transporte pasa a CONNECTED."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Teardown idempotente; seguro en cualquier estado."""
        pass

    @property
    def stats(self) -> dict:
        return {"state": self.state.value}


# (sink, label) → cliente nuevo para una suscripción
StreamClientFactory = Callable[[asyncio.Queue, str], IStreamClient]
