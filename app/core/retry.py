"""Retry and circuit-breaker helpers for calls to external services."""

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def async_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Retry an async function with exponential backoff.

    Args:
        max_attempts: Total attempts including the first one
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after every failure
        exceptions: Exception types that trigger a retry; others propagate at once

    Example:
        @async_retry(max_attempts=3, delay=0.5)
        async def fetch_accounts():
            response = await client.get(...)
            return response
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            current_delay = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s", func.__name__, max_attempts, e
                        )
                        raise
                    logger.warning(
                        "%s attempt %d failed: %s, retrying in %.1fs",
                        func.__name__,
                        attempt,
                        e,
                        current_delay,
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff
            raise RuntimeError("unreachable")

        return wrapper

    return decorator


class CircuitOpenError(Exception):
    """Raised instead of calling a service whose circuit is open."""


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    CLOSED passes calls through. After ``failure_threshold`` consecutive
    failures it becomes OPEN and rejects calls with CircuitOpenError until
    ``reset_timeout`` seconds have passed; the next call is then a HALF_OPEN
    trial whose outcome closes or re-opens the circuit.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return self.CLOSED
        if self._clock() - self._opened_at >= self.reset_timeout:
            return self.HALF_OPEN
        return self.OPEN

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("circuit %s closed", self.name)
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if self.state == self.HALF_OPEN or self._failures >= self.failure_threshold:
            self._opened_at = self._clock()
            logger.warning("circuit %s opened after %d failures", self.name, self._failures)

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        if self.state == self.OPEN:
            raise CircuitOpenError(f"Circuit {self.name} is open")
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result
