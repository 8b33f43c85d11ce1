"""
Firebase Cloud Messaging channel.

Mobile push through FCM: batch-oriented, up to 500 device tokens per chunk,
one rate-limiter token per chunk.
"""

from typing import Any, ClassVar

from pushfanout.channels.batch import DEFAULT_BATCH_RATE, DEFAULT_CHUNK_SIZE, BatchedChannel
from pushfanout.models import FirebaseNotificationOptions
from pushfanout.transports.base import MessageDelivery

DEFAULT_TITLE = "Default Notification"


class FirebaseChannel(BatchedChannel):
    """
    FCM channel sending to device registration tokens.

    Example:
        >>> channel = FirebaseChannel(FcmHttpDelivery(project_id, token_provider))
        >>> results = await channel.send(
        ...     ["device-token-1", "device-token-2"],
        ...     [{"title": "Order shipped", "body": "Arrives Tuesday"}],
        ... )
    """

    channel_name: ClassVar[str] = "firebase"
    options_model = FirebaseNotificationOptions

    def __init__(
        self,
        delivery: MessageDelivery,
        max_messages_per_second: int = DEFAULT_BATCH_RATE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        interval_seconds: float = 1.0,
    ):
        """
        Initialize Firebase channel.

        Args:
            delivery: FCM delivery capability
            max_messages_per_second: Chunks admitted per interval (default 500)
            chunk_size: Device tokens per chunk (default 500, the FCM limit)
            interval_seconds: Rate limiter refill interval
        """
        super().__init__(max_messages_per_second, chunk_size, interval_seconds)
        self.delivery = delivery

    def ensure_ready(self) -> None:
        self.delivery.ensure_ready()

    def build_message(self, token: str, options: FirebaseNotificationOptions) -> dict[str, Any]:
        """Build the FCM v1 message for one device token."""
        return {
            "token": token,
            "notification": {
                "title": options.title or DEFAULT_TITLE,
                "body": options.body or "",
            },
            "data": dict(options.data or {}),
        }

    async def deliver(self, recipient: str, options: FirebaseNotificationOptions) -> Any:
        message = self.build_message(recipient, options)
        return await self.delivery.send_one(message, dry_run=options.dry_run)
