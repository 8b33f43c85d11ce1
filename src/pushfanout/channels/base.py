"""Channel protocol and the rate-limited channel base class."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from pushfanout.models import DispatchResult
from pushfanout.rate_limiter import TokenBucketRateLimiter

Metadata = Optional[Sequence[Any]]


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol every delivery channel implements.

    ``send`` returns exactly one DispatchResult per recipient. Per-recipient
    failures are reported as failed results; only request-level failures
    (nothing could be dispatched) raise.
    """

    async def send(
        self,
        recipients: Sequence[str],
        metadata: Metadata = None,
    ) -> list[DispatchResult]:
        ...


class RateLimitedChannel(ABC):
    """
    Base for channels that throttle transport calls through their own limiter.

    Subclasses set ``channel_name`` and ``options_model`` and implement
    ``send``. Each instance owns one TokenBucketRateLimiter for its lifetime.
    """

    channel_name: ClassVar[str] = "channel"
    options_model: ClassVar[type[BaseModel]]

    def __init__(self, max_messages_per_second: int, interval_seconds: float = 1.0):
        self.rate_limiter = TokenBucketRateLimiter(
            max_per_interval=max_messages_per_second,
            interval_seconds=interval_seconds,
            name=self.channel_name,
        )

    @abstractmethod
    async def send(
        self,
        recipients: Sequence[str],
        metadata: Metadata = None,
    ) -> list[DispatchResult]:
        ...

    def options_for(self, metadata: Metadata, index: int) -> Any:
        """
        Return the options for the recipient at ``index``.

        Missing entries (short or absent metadata, None) yield default
        options. Mappings are validated into ``options_model`` and may raise
        pydantic.ValidationError, which callers treat as a per-recipient failure.
        """
        if metadata is None or index >= len(metadata):
            return self.options_model()

        entry = metadata[index]
        if entry is None:
            return self.options_model()
        if isinstance(entry, self.options_model):
            return entry
        if isinstance(entry, Mapping):
            return self.options_model.model_validate(dict(entry))
        return self.options_model.model_validate(entry, from_attributes=True)

    def close(self) -> None:
        """Stop the channel's rate limiter."""
        self.rate_limiter.close()

    async def aclose(self) -> None:
        await self.rate_limiter.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def error_message(exc: BaseException) -> str:
    """Human-readable message for a failed result."""
    return str(exc) or type(exc).__name__


def fill_missing(
    results: list[Optional[DispatchResult]],
    recipients: Sequence[str],
    indices: range,
    error: str,
) -> None:
    """Mark any unset result slot in ``indices`` as failed."""
    for index in indices:
        if results[index] is None:
            results[index] = DispatchResult.failed(recipients[index], error)
