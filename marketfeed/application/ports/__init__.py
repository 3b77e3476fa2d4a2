"""
Application Ports.

Interfaces que la capa de aplicación usa; la infraestructura las implementa.
"""
from marketfeed.application.ports.event_publisher import IEventPublisher
from marketfeed.application.ports.history_provider import IHistoryProvider
from marketfeed.application.ports.stream_client import (
    IStreamClient,
    StreamClientFactory,
    StreamState,
)
from marketfeed.application.ports.window_cache import IWindowCache, NullWindowCache

__all__ = [
    "IEventPublisher",
    "IHistoryProvider",
    "IStreamClient",
    "IWindowCache",
    "NullWindowCache",
    "StreamClientFactory",
    "StreamState",
]
