"""
channels: delivery strategies behind the NotificationChannel protocol.

- batch: chunked, per-chunk rate limited (FirebaseChannel)
- bounded: per-recipient rate limited with an in-flight ceiling (WebPushChannel)
"""

from pushfanout.channels.base import NotificationChannel, RateLimitedChannel
from pushfanout.channels.batch import BatchedChannel
from pushfanout.channels.bounded import BoundedConcurrencyChannel
from pushfanout.channels.firebase import FirebaseChannel
from pushfanout.channels.web_push import WebPushChannel

__all__ = [
    "BatchedChannel",
    "BoundedConcurrencyChannel",
    "FirebaseChannel",
    "NotificationChannel",
    "RateLimitedChannel",
    "WebPushChannel",
]
