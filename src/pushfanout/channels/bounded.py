"""
Concurrency-bounded channel adapter.

For transports without a batch endpoint: every recipient is its own
scheduling unit on the rate limiter, and a fixed-capacity in-flight set caps
how many sends are pending at once regardless of how fast the limiter admits
them. The two limits are independent (throughput vs. open connections).
"""

import asyncio
from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, Optional

import structlog

from pushfanout.channels.base import (
    Metadata,
    RateLimitedChannel,
    error_message,
    fill_missing,
)
from pushfanout.exceptions import ConfigurationError, SubscriptionDecodeError
from pushfanout.logging_config import mask_identifier
from pushfanout.models import DispatchResult

logger = structlog.get_logger(__name__)

DEFAULT_BOUNDED_RATE = 50
DEFAULT_MAX_CONCURRENT_SENDS = 5


class BoundedConcurrencyChannel(RateLimitedChannel):
    """
    Channel that rate limits per recipient and caps in-flight sends.

    Subclasses implement ``ensure_ready``, ``deliver`` and optionally
    ``decode_recipient``. A recipient that fails to decode is recorded as a
    failed result and never reaches the limiter or the transport.

    Attributes:
        max_concurrent_sends: Ceiling on simultaneously pending sends
        rate_limiter: Token bucket admitting individual sends
    """

    def __init__(
        self,
        max_messages_per_second: int = DEFAULT_BOUNDED_RATE,
        max_concurrent_sends: int = DEFAULT_MAX_CONCURRENT_SENDS,
        interval_seconds: float = 1.0,
    ):
        """
        Initialize bounded channel.

        Args:
            max_messages_per_second: Sends admitted per interval
            max_concurrent_sends: Maximum sends in flight at once
            interval_seconds: Rate limiter refill interval

        Raises:
            ConfigurationError: If max_concurrent_sends or the rate is not positive
        """
        if not isinstance(max_concurrent_sends, int) or max_concurrent_sends <= 0:
            raise ConfigurationError(
                f"max_concurrent_sends must be a positive integer, got {max_concurrent_sends!r}"
            )

        super().__init__(max_messages_per_second, interval_seconds)
        self.max_concurrent_sends = max_concurrent_sends

    @abstractmethod
    def ensure_ready(self) -> None:
        """Raise DispatchError if no recipient can be attempted."""

    @abstractmethod
    async def deliver(self, target: Any, options: Any) -> Any:
        """Send to one decoded recipient and return the transport response."""

    def decode_recipient(self, recipient: str) -> Any:
        """Decode a recipient identifier; raise SubscriptionDecodeError if invalid."""
        return recipient

    async def send(
        self,
        recipients: Sequence[str],
        metadata: Metadata = None,
    ) -> list[DispatchResult]:
        """
        Send to all recipients with at most ``max_concurrent_sends`` in flight.

        Args:
            recipients: Recipient identifiers
            metadata: Optional per-recipient options, index-aligned with recipients

        Returns:
            One DispatchResult per recipient, in input order

        Raises:
            DispatchError: If the channel cannot dispatch at all
        """
        recipients = list(recipients)
        if not recipients:
            return []

        self.ensure_ready()

        results: list[Optional[DispatchResult]] = [None] * len(recipients)
        in_flight: set[asyncio.Future] = set()
        index_of: dict[asyncio.Future, int] = {}

        logger.info(
            "bounded_dispatch_started",
            channel=self.channel_name,
            recipients=len(recipients),
            max_concurrent_sends=self.max_concurrent_sends,
        )

        for index, recipient in enumerate(recipients):
            try:
                target = self.decode_recipient(recipient)
            except SubscriptionDecodeError as exc:
                logger.warning(
                    "recipient_decode_failed",
                    channel=self.channel_name,
                    index=index,
                    error=error_message(exc),
                )
                results[index] = DispatchResult.failed(recipient, error_message(exc))
                continue

            if len(in_flight) >= self.max_concurrent_sends:
                done, in_flight = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )
                self._reap(done, index_of, recipients, results)

            future = self.rate_limiter.schedule(
                lambda index=index, recipient=recipient, target=target: self._send_one(
                    index, recipient, target, metadata, results
                )
            )
            in_flight.add(future)
            index_of[future] = index

        if in_flight:
            done, _ = await asyncio.wait(in_flight)
            self._reap(done, index_of, recipients, results)

        return results  # type: ignore[return-value]

    def _reap(
        self,
        done: set[asyncio.Future],
        index_of: dict[asyncio.Future, int],
        recipients: list[str],
        results: list[Optional[DispatchResult]],
    ) -> None:
        for future in done:
            index = index_of.pop(future)
            if future.cancelled():
                fill_missing(results, recipients, range(index, index + 1), "Send cancelled")
            elif future.exception() is not None:
                fill_missing(
                    results,
                    recipients,
                    range(index, index + 1),
                    error_message(future.exception()),
                )

    async def _send_one(
        self,
        index: int,
        recipient: str,
        target: Any,
        metadata: Metadata,
        results: list[Optional[DispatchResult]],
    ) -> None:
        try:
            options = self.options_for(metadata, index)
            response = await self.deliver(target, options)
        except Exception as exc:
            logger.error(
                "recipient_send_failed",
                channel=self.channel_name,
                recipient=mask_identifier(recipient),
                error=error_message(exc),
            )
            results[index] = DispatchResult.failed(recipient, error_message(exc))
            return

        logger.info(
            "recipient_send_succeeded",
            channel=self.channel_name,
            recipient=mask_identifier(recipient),
        )
        results[index] = DispatchResult.success(recipient, response)
