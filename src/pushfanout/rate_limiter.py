"""
Token Bucket Rate Limiter

Admits scheduled units of asynchronous work at a configured maximum rate.

Features:
- ``max_per_interval`` tokens refilled every ``interval_seconds``
- FIFO queue for units that arrive while the bucket is empty
- Admission is purely rate based; a unit's outcome never affects throttling
- Refill timer only runs while there is work in the current window
- Thread-safe state updates (tokens and queue share one lock)

A limiter is owned by a single channel instance and bound to one event loop
at a time. Once that loop has stopped (for example after ``asyncio.run``
returns) the next ``schedule`` call rebinds it to the caller's loop; using it
from a second loop while the first is still running raises
EventLoopMismatchError.
"""

import asyncio
import threading
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

import structlog

from pushfanout.exceptions import (
    ConfigurationError,
    EventLoopMismatchError,
    RateLimiterClosedError,
)
from pushfanout.metrics import rate_limiter_queue_depth

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Unit = Callable[[], Awaitable[Any]]


class TokenBucketRateLimiter:
    """
    Token bucket throttle for scheduling units of async work.

    ``schedule`` returns a future that resolves with the unit's own result
    (or raises the unit's own exception) once the unit has been admitted and
    has completed. Callers are responsible for handling unit errors.

    Example:
        >>> limiter = TokenBucketRateLimiter(max_per_interval=500, interval_seconds=1.0)
        >>> response = await limiter.schedule(lambda: client.post(url, json=body))
    """

    def __init__(
        self,
        max_per_interval: int,
        interval_seconds: float = 1.0,
        name: str = "default",
    ):
        """
        Initialize rate limiter.

        Args:
            max_per_interval: Units admitted per refill interval (bucket capacity)
            interval_seconds: Refill interval in seconds
            name: Label used in logs and metrics

        Raises:
            ConfigurationError: If either parameter is not positive
        """
        if not isinstance(max_per_interval, int) or max_per_interval <= 0:
            raise ConfigurationError(
                f"max_per_interval must be a positive integer, got {max_per_interval!r}"
            )
        if interval_seconds <= 0:
            raise ConfigurationError(
                f"interval_seconds must be positive, got {interval_seconds!r}"
            )

        self.max_per_interval = max_per_interval
        self.interval_seconds = interval_seconds
        self.name = name

        self._tokens = max_per_interval
        self._queue: deque[tuple[Unit, asyncio.Future]] = deque()
        self._lock = threading.Lock()
        self._refill_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running: set[asyncio.Task] = set()
        self._closed = False

    @property
    def available_tokens(self) -> int:
        with self._lock:
            return self._tokens

    @property
    def pending(self) -> int:
        """Number of units waiting for a token."""
        with self._lock:
            return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def refill_active(self) -> bool:
        """True while a refill timer is scheduled."""
        with self._lock:
            return self._refill_task is not None and not self._refill_task.done()

    def schedule(self, unit: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Submit a unit of work for rate-limited execution.

        Args:
            unit: Zero-argument callable returning an awaitable

        Returns:
            Future resolving with the unit's result after it has run

        Raises:
            RateLimiterClosedError: If the limiter has been closed
            EventLoopMismatchError: If the limiter is in use on another running loop
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        with self._lock:
            if self._closed:
                raise RateLimiterClosedError(f"Rate limiter '{self.name}' is closed")

            self._bind(loop)

            if self._tokens > 0:
                self._tokens -= 1
                admitted = True
            else:
                self._queue.append((unit, future))
                admitted = False

            if self._refill_task is None or self._refill_task.done():
                self._refill_task = loop.create_task(self._refill_loop())
            depth = len(self._queue)

        rate_limiter_queue_depth.labels(limiter=self.name).set(depth)

        if admitted:
            self._start(unit, future)
        else:
            logger.debug("rate_limiter_unit_queued", limiter=self.name, pending=depth)

        return future

    def close(self) -> None:
        """
        Stop the refill timer and cancel queued units.

        Units that are already running complete normally. Further calls to
        ``schedule`` raise RateLimiterClosedError.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            queued = list(self._queue)
            self._queue.clear()
            refill_task = self._refill_task
            self._refill_task = None
            loop = self._loop

        _cancel_on_loop(loop, refill_task, queued)

        rate_limiter_queue_depth.labels(limiter=self.name).set(0)
        logger.debug("rate_limiter_closed", limiter=self.name, cancelled=len(queued))

    async def aclose(self) -> None:
        """Close the limiter and wait for the refill timer to stop."""
        with self._lock:
            refill_task = self._refill_task
        self.close()
        if refill_task is not None and refill_task.get_loop() is asyncio.get_running_loop():
            await asyncio.gather(refill_task, return_exceptions=True)

    async def __aenter__(self) -> "TokenBucketRateLimiter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _bind(self, loop: asyncio.AbstractEventLoop) -> None:
        # Caller holds self._lock
        if self._loop is loop:
            return

        previous = self._loop
        if previous is not None and not previous.is_closed() and previous.is_running():
            raise EventLoopMismatchError(
                f"Rate limiter '{self.name}' is in use on another running event loop"
            )

        # Work left on a stopped loop can never be admitted from this one
        stale_task = self._refill_task
        stale = list(self._queue)
        self._queue.clear()
        self._refill_task = None
        self._loop = loop
        _cancel_on_loop(previous, stale_task, stale)

        if previous is not None:
            logger.debug("rate_limiter_rebound", limiter=self.name, dropped=len(stale))

    def _start(self, unit: Unit, future: asyncio.Future) -> None:
        task = asyncio.ensure_future(self._run(unit, future))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, unit: Unit, future: asyncio.Future) -> None:
        # The unit's outcome goes to the caller's future, never back into
        # the limiter.
        try:
            result = await unit()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)

    async def _refill_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)

                admitted: list[tuple[Unit, asyncio.Future]] = []
                with self._lock:
                    if self._closed:
                        return

                    self._tokens = self.max_per_interval
                    while self._queue and self._tokens > 0:
                        unit, future = self._queue.popleft()
                        if future.done():
                            # Caller gave up while queued
                            continue
                        self._tokens -= 1
                        admitted.append((unit, future))

                    depth = len(self._queue)
                    idle = not admitted and not self._queue
                    if idle:
                        self._refill_task = None

                rate_limiter_queue_depth.labels(limiter=self.name).set(depth)

                for unit, future in admitted:
                    self._start(unit, future)

                if admitted:
                    logger.debug(
                        "rate_limiter_refilled",
                        limiter=self.name,
                        admitted=len(admitted),
                        pending=depth,
                    )

                if idle:
                    return
        finally:
            # Cancelled (e.g. by asyncio.run shutting down): let the next
            # schedule start a fresh timer
            with self._lock:
                if self._refill_task is asyncio.current_task():
                    self._refill_task = None


def _cancel_on_loop(
    loop: Optional[asyncio.AbstractEventLoop],
    refill_task: Optional[asyncio.Task],
    queued: list[tuple[Unit, asyncio.Future]],
) -> None:
    """Cancel a timer and queued futures on the loop that owns them."""
    if loop is None or loop.is_closed():
        return

    def cancel() -> None:
        if refill_task is not None:
            refill_task.cancel()
        for _, future in queued:
            if not future.done():
                future.cancel()

    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None

    if running is loop or not loop.is_running():
        cancel()
    else:
        loop.call_soon_threadsafe(cancel)
