"""
Channel Registry

Maps channel names to registered NotificationChannel instances so callers
can resolve a delivery strategy at runtime.

Lifecycle: created empty, mutated through register/unregister/clear, read
through get. Entries are not reference counted; replacing a name simply
drops the previous channel (its in-flight sends are unaffected because
every channel owns its own limiter and state).
"""

import threading
from typing import Optional

import structlog

from pushfanout.channels.base import NotificationChannel
from pushfanout.exceptions import ChannelNotRegisteredError

logger = structlog.get_logger(__name__)


class ChannelRegistry:
    """
    Registry of delivery channels keyed by name.

    Usage:
    ------
    >>> registry = ChannelRegistry()
    >>> registry.register("firebase", FirebaseChannel(delivery))
    >>> channel = registry.get("firebase")
    >>> results = await channel.send(tokens, metadata)

    Thread Safety:
    --------------
    All reads and writes go through one lock, so registration and lookup are
    safe from concurrent threads and tasks. Replacement is a single
    dictionary assignment under the lock.
    """

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._lock = threading.Lock()

    def register(self, name: str, channel: NotificationChannel) -> None:
        """
        Register a channel under ``name``, replacing any existing entry.

        Parameters:
        -----------
        name : str
            Channel name used for lookup
        channel : NotificationChannel
            Channel instance
        """
        with self._lock:
            previous = self._channels.get(name)
            self._channels[name] = channel

        if previous is not None and previous is not channel:
            logger.warning(
                "channel_replaced",
                channel=name,
                old_channel=type(previous).__name__,
                new_channel=type(channel).__name__,
            )
        logger.info(
            "channel_registered",
            channel=name,
            channel_class=type(channel).__name__,
        )

    def get(self, name: str) -> NotificationChannel:
        """
        Get the channel registered under ``name``.

        Raises:
        -------
        ChannelNotRegisteredError
            If no channel is registered under ``name``
        """
        with self._lock:
            channel = self._channels.get(name)
        if channel is None:
            raise ChannelNotRegisteredError(name)
        return channel

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._channels

    def unregister(self, name: str) -> bool:
        """Remove ``name``; return True if it was registered."""
        with self._lock:
            removed = self._channels.pop(name, None)
        if removed is not None:
            logger.info("channel_unregistered", channel=name)
        return removed is not None

    def names(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    def clear(self) -> None:
        """
        Remove all registered channels.

        Used to reset state between test runs or reconfiguration cycles.
        """
        with self._lock:
            self._channels.clear()
        logger.debug("channel_registry_cleared")

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)


# Singleton instance
_registry: Optional[ChannelRegistry] = None
_registry_lock = threading.Lock()


def get_channel_registry() -> ChannelRegistry:
    """
    Get or create the process-wide ChannelRegistry instance.

    Returns:
        ChannelRegistry instance
    """
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = ChannelRegistry()
        return _registry
