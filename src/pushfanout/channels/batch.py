"""
Batch-oriented channel adapter.

Recipients (with their aligned metadata) are partitioned into fixed-size
chunks. Each chunk is one scheduling unit on the channel's rate limiter,
since batch-capable providers express limits in requests per second rather
than messages per second. Inside a chunk every recipient is sent
concurrently and each send isolates its own failure.
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
from pushfanout.exceptions import ConfigurationError
from pushfanout.logging_config import mask_identifier
from pushfanout.models import DispatchResult

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_RATE = 500
DEFAULT_CHUNK_SIZE = 500


def chunk_ranges(total: int, chunk_size: int) -> list[range]:
    """Split ``range(total)`` into consecutive ranges of at most ``chunk_size``."""
    return [range(start, min(start + chunk_size, total)) for start in range(0, total, chunk_size)]


class BatchedChannel(RateLimitedChannel):
    """
    Channel that rate limits per chunk and sends a chunk's recipients concurrently.

    Subclasses implement ``ensure_ready`` (request-level readiness) and
    ``deliver`` (one recipient, one transport call).

    Attributes:
        chunk_size: Maximum recipients per chunk (also the in-chunk concurrency bound)
        rate_limiter: Token bucket admitting chunks
    """

    def __init__(
        self,
        max_messages_per_second: int = DEFAULT_BATCH_RATE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        interval_seconds: float = 1.0,
    ):
        """
        Initialize batched channel.

        Args:
            max_messages_per_second: Chunks admitted per interval
            chunk_size: Maximum recipients per chunk
            interval_seconds: Rate limiter refill interval

        Raises:
            ConfigurationError: If chunk_size or the rate is not positive
        """
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be a positive integer, got {chunk_size!r}")

        super().__init__(max_messages_per_second, interval_seconds)
        self.chunk_size = chunk_size

    @abstractmethod
    def ensure_ready(self) -> None:
        """Raise DispatchError if no recipient can be attempted."""

    @abstractmethod
    async def deliver(self, recipient: str, options: Any) -> Any:
        """Send to one recipient and return the transport response."""

    async def send(
        self,
        recipients: Sequence[str],
        metadata: Metadata = None,
    ) -> list[DispatchResult]:
        """
        Send to all recipients, one rate-limited unit per chunk.

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
        chunks = chunk_ranges(len(recipients), self.chunk_size)

        logger.info(
            "batch_dispatch_started",
            channel=self.channel_name,
            recipients=len(recipients),
            chunks=len(chunks),
            chunk_size=self.chunk_size,
        )

        futures = [
            self.rate_limiter.schedule(
                lambda indices=indices: self._send_chunk(indices, recipients, metadata, results)
            )
            for indices in chunks
        ]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        for indices, outcome in zip(chunks, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "batch_chunk_failed",
                    channel=self.channel_name,
                    first_index=indices.start,
                    size=len(indices),
                    error=error_message(outcome),
                )
                fill_missing(results, recipients, indices, error_message(outcome))

        return results  # type: ignore[return-value]

    async def _send_chunk(
        self,
        indices: range,
        recipients: list[str],
        metadata: Metadata,
        results: list[Optional[DispatchResult]],
    ) -> None:
        await asyncio.gather(
            *(self._send_one(index, recipients[index], metadata, results) for index in indices)
        )

    async def _send_one(
        self,
        index: int,
        recipient: str,
        metadata: Metadata,
        results: list[Optional[DispatchResult]],
    ) -> None:
        try:
            options = self.options_for(metadata, index)
            response = await self.deliver(recipient, options)
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
