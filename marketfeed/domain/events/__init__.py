"""Domain events."""
from marketfeed.domain.events.feed_events import (
    ALL_TOPICS,
    DEPTH_TOPIC,
    ERROR_TOPIC,
    KLINE_TOPIC,
    STATUS_TOPIC,
    WINDOW_TOPIC,
    CandleApplied,
    DepthReplaced,
    DomainEvent,
    FeedError,
    StreamStatusChanged,
    WindowReplaced,
)

__all__ = [
    "ALL_TOPICS",
    "DEPTH_TOPIC",
    "ERROR_TOPIC",
    "KLINE_TOPIC",
    "STATUS_TOPIC",
    "WINDOW_TOPIC",
    "CandleApplied",
    "DepthReplaced",
    "DomainEvent",
    "FeedError",
    "StreamStatusChanged",
    "WindowReplaced",
]
