"""
MarketFeed – Depth Snapshot Store
=================================
Último snapshot de profundidad: "best effort, latest wins".

replace() es un overwrite incondicional; no hay merge ni validación más
allá de la forma (hecha por el codec). Adecuado para un top-of-book, no
para reconstruir el order book completo.
"""

from __future__ import annotations

from marketfeed.domain.value_objects.depth_snapshot import EMPTY_DEPTH, DepthSnapshot


class DepthSnapshotStore:
    """Contenedor del snapshot de profundidad más reciente."""

    def __init__(self) -> None:
        self._snapshot: DepthSnapshot = EMPTY_DEPTH
        self._updates = 0

    @property
    def snapshot(self) -> DepthSnapshot:
        return self._snapshot

    @property
    def updates(self) -> int:
        return self._updates

    def replace(self, snapshot: DepthSnapshot) -> None:
        self._snapshot = snapshot
        self._updates += 1
