"""
cluster_discovery.tier1_runtime.retry
──────────────────────────────────────
Bounded retry with linear backoff for single platform API calls.
Backed by Tenacity. Only errors flagged ``retryable`` (transport failures,
5xx, throttling) are retried; auth and input errors propagate on the first
attempt.

Attempt n that fails transiently is followed by a sleep of n * unit
seconds, so the default policy (5 attempts, 1s unit) waits 1+2+3+4 seconds
before giving up and re-raising the last error unchanged.

Usage:
    executor = RetryExecutor(max_attempts=5)
    endpoints = executor.execute(lambda: client.get(path))

    @retry_policy(max_attempts=3)
    def read_node(name): ...
"""
from __future__ import annotations

import functools
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_incrementing

from cluster_discovery.tier0_core.errors import is_retryable
from cluster_discovery.tier0_core.logging import get_logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
BACKOFF_UNIT_SECONDS = 1.0

logger = get_logger(__name__)


class RetryExecutor:
    """
    Runs an operation until it succeeds, fails non-transiently, or runs out
    of attempts.

    Backoff waits are interruptible: ``interrupt()`` (e.g. from a shutdown
    hook on another thread) cuts the current wait short and the next attempt
    starts immediately.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_unit: float = BACKOFF_UNIT_SECONDS,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.backoff_unit = backoff_unit
        self._sleep = sleep or self._interruptible_sleep
        self._wakeup = threading.Event()

    def execute(self, operation: Callable[[], T]) -> T:
        """Invoke *operation*, retrying transient failures. Re-raises the last error."""
        self._wakeup.clear()
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_unit, increment=self.backoff_unit),
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(operation)

    def interrupt(self) -> None:
        """Wake a thread that is currently waiting between attempts."""
        self._wakeup.set()

    def _interruptible_sleep(self, seconds: float) -> None:
        if self._wakeup.wait(seconds):
            self._wakeup.clear()
            logger.warning("retry.backoff_interrupted", planned_delay=seconds)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "retry.scheduled",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay=delay,
            error=str(exc),
            error_type=type(exc).__name__,
            retry_after=getattr(exc, "retry_after", None),
        )


def retry_policy(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_unit: float = BACKOFF_UNIT_SECONDS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of RetryExecutor for plain functions."""
    executor = RetryExecutor(max_attempts=max_attempts, backoff_unit=backoff_unit)

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return executor.execute(lambda: fn(*args, **kwargs))

        return wrapper
    return decorator


__all__ = ["RetryExecutor", "retry_policy", "DEFAULT_MAX_ATTEMPTS", "BACKOFF_UNIT_SECONDS"]
