"""
Web Push delivery via pywebpush.

Handles VAPID signing and payload encryption through pywebpush. The
library call is blocking, so each send runs in a worker thread.
"""

import asyncio
from typing import Any, Optional

import structlog
from pywebpush import WebPushException, webpush

from pushfanout.exceptions import DispatchError, TransportError
from pushfanout.logging_config import mask_identifier
from pushfanout.models import PushSubscription, VapidDetails

logger = structlog.get_logger(__name__)


class PyWebPushDelivery:
    """
    Web Push client sending one encrypted payload per subscription.

    Channel-level VAPID credentials apply unless a message carries its own
    ``vapid_details``.
    """

    def __init__(
        self,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize web push delivery.

        Args:
            vapid_private_key: VAPID private key for authentication
            vapid_subject: VAPID subject claim (e.g., mailto:admin@example.com)
            timeout: HTTP timeout for the push service call
        """
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout = timeout

    def ensure_ready(self) -> None:
        if not self.vapid_private_key or not self.vapid_subject:
            raise DispatchError("VAPID credentials are not configured")

    async def send_one(
        self,
        subscription: PushSubscription,
        payload: str,
        options: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Send one payload to a subscription.

        Args:
            subscription: Decoded push subscription
            payload: JSON payload to encrypt and deliver
            options: Request options; any of ttl, vapid_details, headers

        Returns:
            {"status_code": ..., "endpoint": ...}

        Raises:
            TransportError: If the push service rejects the message
                (status 404/410 means the subscription has expired)
        """
        vapid: Optional[VapidDetails] = options.get("vapid_details")
        kwargs: dict[str, Any] = {
            "subscription_info": subscription.to_subscription_info(),
            "data": payload,
            "vapid_private_key": vapid.private_key if vapid else self.vapid_private_key,
            # pywebpush mutates the claims dict, so build a fresh one per call
            "vapid_claims": {"sub": vapid.subject if vapid else self.vapid_subject},
            "timeout": self.timeout,
        }
        if options.get("ttl") is not None:
            kwargs["ttl"] = options["ttl"]
        if options.get("headers"):
            kwargs["headers"] = dict(options["headers"])

        try:
            response = await asyncio.to_thread(webpush, **kwargs)
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            if status_code in (404, 410):
                logger.warning(
                    "push_subscription_expired",
                    endpoint=mask_identifier(subscription.endpoint),
                    status_code=status_code,
                )
            raise TransportError(f"Web push failed: {exc.message}", status_code=status_code) from exc

        return {
            "status_code": getattr(response, "status_code", None),
            "endpoint": subscription.endpoint,
        }
