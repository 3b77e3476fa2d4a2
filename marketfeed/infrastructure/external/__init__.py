"""
External Infrastructure.

Adaptadores de red hacia el venue: REST (historia) y WebSocket (stream).
"""
from marketfeed.infrastructure.external.binance_rest import HistorySnapshotFetcher
from marketfeed.infrastructure.external.binance_stream import LiveStreamClient

__all__ = ["HistorySnapshotFetcher", "LiveStreamClient"]
