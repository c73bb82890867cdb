"""Transient-failure retry for opening provider streams."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, before_sleep_log, retry_if_exception, stop_after_attempt

from ..errors import ClassifiedError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 10.0


def is_retryable_error(exception: BaseException) -> bool:
    """Only classified rate-limit and network failures are retried."""

    return isinstance(exception, ClassifiedError) and exception.retryable


class RetryPolicy:
    """Exponential backoff around an async operation, honouring ``retry_after``.

    The delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)`` capped
    at ``max_delay``, unless the failure carries a provider ``retry_after``,
    which is used instead (also capped). The last failure is re-raised as is.
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        if base_delay < 0 or max_delay < 0:
            msg = "retry delays cannot be negative"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep or asyncio.sleep

    def compute_delay(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            return min(self.max_delay, max(0.0, float(retry_after)))
        exponent = max(0, retry_state.attempt_number - 1)
        return min(self.max_delay, self.base_delay * (2**exponent))

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.compute_delay,
            retry=retry_if_exception(is_retryable_error),
            sleep=self._sleep,
            before_sleep=before_sleep_log(LOGGER, logging.INFO),
            reraise=True,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or a non-retryable error occurs."""

        return await self.retrying()(operation)


__all__ = ["RetryPolicy", "is_retryable_error"]
