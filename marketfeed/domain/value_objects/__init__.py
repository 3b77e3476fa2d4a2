"""Domain value objects."""
from marketfeed.domain.value_objects.depth_snapshot import EMPTY_DEPTH, DepthSnapshot
from marketfeed.domain.value_objects.subscription_key import SubscriptionKey

__all__ = ["DepthSnapshot", "EMPTY_DEPTH", "SubscriptionKey"]
