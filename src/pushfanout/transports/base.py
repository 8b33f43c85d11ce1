"""Delivery capability protocols consumed by the channels."""

from typing import Any, Protocol, runtime_checkable

from pushfanout.models import PushSubscription


@runtime_checkable
class MessageDelivery(Protocol):
    """Sends one pre-built provider message (e.g. an FCM message)."""

    def ensure_ready(self) -> None:
        """Raise DispatchError when the transport cannot be used at all."""
        ...

    async def send_one(self, message: dict[str, Any], dry_run: bool = False) -> Any:
        """Send one message; raise on failure."""
        ...


@runtime_checkable
class SubscriptionDelivery(Protocol):
    """Sends one encrypted payload to a push subscription."""

    def ensure_ready(self) -> None:
        """Raise DispatchError when the transport cannot be used at all."""
        ...

    async def send_one(
        self,
        subscription: PushSubscription,
        payload: str,
        options: dict[str, Any],
    ) -> Any:
        """Send one payload; raise on failure."""
        ...
