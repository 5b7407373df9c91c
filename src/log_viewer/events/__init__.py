"""Broadcast fan-out for live log events."""

from log_viewer.events.bus import (
    DEFAULT_CAPACITY,
    Broadcaster,
    SubscriberLagged,
    Subscription,
    SubscriptionClosed,
)

__all__ = [
    "Broadcaster",
    "Subscription",
    "SubscriberLagged",
    "SubscriptionClosed",
    "DEFAULT_CAPACITY",
]
