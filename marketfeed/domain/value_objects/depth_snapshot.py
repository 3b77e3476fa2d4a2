"""
MarketFeed – Domain Value Object: DepthSnapshot
===============================================
Top-of-book más reciente: niveles [precio, cantidad], mejor precio primero.

Siempre es un reemplazo completo; no existe merge incremental de deltas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

DepthLevel = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class DepthSnapshot:
    """Snapshot de profundidad (bids / asks)."""

    bids: tuple[DepthLevel, ...] = field(default_factory=tuple)
    asks: tuple[DepthLevel, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    @property
    def best_bid(self) -> DepthLevel | None:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> DepthLevel | None:
        return self.asks[0] if self.asks else None

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "bids": [list(level) for level in self.bids],
            "asks": [list(level) for level in self.asks],
        }


EMPTY_DEPTH = DepthSnapshot()
