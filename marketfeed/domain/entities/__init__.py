"""Domain entities."""
from marketfeed.domain.entities.candle import Candle

__all__ = ["Candle"]
