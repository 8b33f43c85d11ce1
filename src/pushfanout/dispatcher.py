"""
Notification Dispatcher

Resolves a channel by name and fans a notification out to its recipients.
Adds to the raw channel ``send``:
- a check that the channel returned one result per recipient
- structured logs for the request and its outcome
- Prometheus metrics per channel
"""

import time
from collections import Counter
from collections.abc import Sequence
from typing import Optional

import structlog

from pushfanout.channels.base import Metadata
from pushfanout.exceptions import DispatchError
from pushfanout.metrics import (
    dispatch_duration_seconds,
    dispatch_errors_total,
    dispatch_results_total,
)
from pushfanout.models import DispatchReport, DispatchResult, DispatchStatus
from pushfanout.registry import ChannelRegistry, get_channel_registry

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """
    Dispatches notifications through channels held by a registry.

    The registry is passed in (defaulting to the process-wide one) so the
    dependency stays explicit and replaceable in tests.
    """

    def __init__(self, registry: Optional[ChannelRegistry] = None):
        self.registry = registry if registry is not None else get_channel_registry()

    async def dispatch(
        self,
        channel_name: str,
        recipients: Sequence[str],
        metadata: Metadata = None,
    ) -> DispatchReport:
        """
        Send to ``recipients`` through the channel registered as ``channel_name``.

        Args:
            channel_name: Registered channel name (e.g., "firebase", "web_push")
            recipients: Recipient identifiers
            metadata: Optional per-recipient options, index-aligned with recipients

        Returns:
            DispatchReport with per-recipient results and counts

        Raises:
            ChannelNotRegisteredError: If no channel is registered under channel_name
            DispatchError: If the request fails before any recipient is attempted,
                or the channel breaks the one-result-per-recipient contract
        """
        channel = self.registry.get(channel_name)
        recipients = list(recipients)

        logger.info(
            "dispatch_started",
            channel=channel_name,
            recipients=len(recipients),
            metadata_entries=len(metadata) if metadata is not None else 0,
        )

        started = time.perf_counter()
        try:
            results = await channel.send(recipients, metadata)
        except DispatchError as exc:
            dispatch_errors_total.labels(channel=channel_name, error_type=type(exc).__name__).inc()
            logger.error("dispatch_rejected", channel=channel_name, error=str(exc))
            raise
        duration = time.perf_counter() - started

        self._verify_complete(channel_name, recipients, results)

        counts = Counter(result.status for result in results)
        for status in DispatchStatus:
            if counts[status]:
                dispatch_results_total.labels(channel=channel_name, status=status.value).inc(
                    counts[status]
                )
        dispatch_duration_seconds.labels(channel=channel_name).observe(duration)

        report = DispatchReport(
            channel=channel_name,
            total=len(results),
            succeeded=counts[DispatchStatus.SUCCESS],
            failed=counts[DispatchStatus.FAILED],
            duration_seconds=duration,
            results=results,
        )

        log = logger.warning if report.failed else logger.info
        log(
            "dispatch_completed",
            channel=channel_name,
            total=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
            duration_seconds=round(duration, 3),
        )
        return report

    @staticmethod
    def _verify_complete(
        channel_name: str,
        recipients: list[str],
        results: list[DispatchResult],
    ) -> None:
        expected = Counter(recipients)
        actual = Counter(result.recipient for result in results)
        if expected != actual:
            missing = sum((expected - actual).values())
            unexpected = sum((actual - expected).values())
            raise DispatchError(
                f"Channel {channel_name} returned {len(results)} results for "
                f"{len(recipients)} recipients ({missing} missing, {unexpected} unexpected)"
            )
