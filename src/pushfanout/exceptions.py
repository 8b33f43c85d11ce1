"""
Exception hierarchy for notification fan-out.

Configuration and request-level errors propagate to callers. Per-recipient
errors (TransportError, SubscriptionDecodeError) are raised by delivery
code and converted into failed DispatchResult entries by the channels.
"""

from typing import Optional


class PushFanoutError(Exception):
    """Base class for all pushfanout errors."""

    pass


class ConfigurationError(PushFanoutError, ValueError):
    """Raised when a limiter or channel is constructed with invalid parameters."""

    pass


class ChannelNotRegisteredError(PushFanoutError, LookupError):
    """Raised when a channel name has no registered channel."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Notifier for {name} not registered")


class DispatchError(PushFanoutError):
    """Raised when a send request fails before any recipient is attempted."""

    pass


class TransportError(PushFanoutError):
    """Raised by a delivery when a single transport call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SubscriptionDecodeError(PushFanoutError):
    """Raised when a recipient identifier cannot be decoded into a subscription."""

    pass


class RateLimiterClosedError(PushFanoutError):
    """Raised when work is scheduled on a limiter that has been closed."""

    pass


class EventLoopMismatchError(DispatchError, RuntimeError):
    """Raised when a limiter is used from a second event loop while its own loop is running."""

    pass
