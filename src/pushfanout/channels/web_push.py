"""
Web Push channel.

Browser push to individual subscriptions: no provider batching, so every
recipient is rate limited on its own and the number of open sends is capped.
Recipients are JSON-serialized PushSubscription records.
"""

import json
from typing import Any, ClassVar

from pydantic import ValidationError

from pushfanout.channels.bounded import (
    DEFAULT_BOUNDED_RATE,
    DEFAULT_MAX_CONCURRENT_SENDS,
    BoundedConcurrencyChannel,
)
from pushfanout.exceptions import SubscriptionDecodeError
from pushfanout.models import PushSubscription, WebPushOptions
from pushfanout.transports.base import SubscriptionDelivery

DEFAULT_TITLE = "Notification"


class WebPushChannel(BoundedConcurrencyChannel):
    """
    Web Push channel over VAPID-authenticated push services.

    Example:
        >>> channel = WebPushChannel(PyWebPushDelivery(private_key, "mailto:ops@example.com"))
        >>> results = await channel.send([subscription_json], [{"title": "Hi", "TTL": 60}])
    """

    channel_name: ClassVar[str] = "web_push"
    options_model = WebPushOptions

    def __init__(
        self,
        delivery: SubscriptionDelivery,
        max_messages_per_second: int = DEFAULT_BOUNDED_RATE,
        max_concurrent_sends: int = DEFAULT_MAX_CONCURRENT_SENDS,
        interval_seconds: float = 1.0,
    ):
        """
        Initialize Web Push channel.

        Args:
            delivery: Web push delivery capability
            max_messages_per_second: Sends admitted per interval (default 50)
            max_concurrent_sends: Sends in flight at once (default 5)
            interval_seconds: Rate limiter refill interval
        """
        super().__init__(max_messages_per_second, max_concurrent_sends, interval_seconds)
        self.delivery = delivery

    def ensure_ready(self) -> None:
        self.delivery.ensure_ready()

    def decode_recipient(self, recipient: str) -> PushSubscription:
        try:
            return PushSubscription.model_validate_json(recipient)
        except ValidationError as exc:
            raise SubscriptionDecodeError(
                f"Invalid push subscription: {exc.error_count()} validation error(s), "
                f"first: {exc.errors()[0]['msg']}"
            ) from exc

    def build_payload(self, options: WebPushOptions) -> str:
        """JSON payload shown by the service worker."""
        return json.dumps(
            {
                "title": options.title or DEFAULT_TITLE,
                "body": options.body or "",
                "data": options.data or {},
            }
        )

    def build_request_options(self, options: WebPushOptions) -> dict[str, Any]:
        """Request options, leaving out anything unset."""
        request_options: dict[str, Any] = {
            "ttl": options.ttl,
            "vapid_details": options.vapid_details,
            "headers": options.headers,
        }
        return {key: value for key, value in request_options.items() if value is not None}

    async def deliver(self, target: PushSubscription, options: WebPushOptions) -> Any:
        return await self.delivery.send_one(
            target,
            self.build_payload(options),
            self.build_request_options(options),
        )
