"""Application use cases."""
from marketfeed.application.use_cases.market_feed_controller import (
    MarketFeedController,
    SnapshotLoaded,
)

__all__ = ["MarketFeedController", "SnapshotLoaded"]
