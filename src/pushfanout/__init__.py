"""
Rate-limited, fault-isolated notification fan-out.

This package dispatches notifications to many recipients through pluggable
delivery channels:
- Firebase Cloud Messaging (batch-oriented, per-chunk rate limiting)
- Web Push (per-subscription, rate limited with an in-flight ceiling)
"""

from pushfanout.bootstrap import build_registry
from pushfanout.channels import (
    BatchedChannel,
    BoundedConcurrencyChannel,
    FirebaseChannel,
    NotificationChannel,
    WebPushChannel,
)
from pushfanout.dispatcher import NotificationDispatcher
from pushfanout.exceptions import (
    ChannelNotRegisteredError,
    ConfigurationError,
    DispatchError,
    EventLoopMismatchError,
    PushFanoutError,
    RateLimiterClosedError,
    SubscriptionDecodeError,
    TransportError,
)
from pushfanout.models import DispatchReport, DispatchResult, DispatchStatus
from pushfanout.rate_limiter import TokenBucketRateLimiter
from pushfanout.registry import ChannelRegistry, get_channel_registry

__all__ = [
    "BatchedChannel",
    "BoundedConcurrencyChannel",
    "ChannelNotRegisteredError",
    "ChannelRegistry",
    "ConfigurationError",
    "DispatchError",
    "DispatchReport",
    "DispatchResult",
    "DispatchStatus",
    "EventLoopMismatchError",
    "FirebaseChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "PushFanoutError",
    "RateLimiterClosedError",
    "SubscriptionDecodeError",
    "TokenBucketRateLimiter",
    "TransportError",
    "WebPushChannel",
    "build_registry",
    "get_channel_registry",
]
