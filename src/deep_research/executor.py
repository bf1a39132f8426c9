"""
Rate-Limited Request Executor

Wraps a remote call with exponential-backoff retries on throttling. Only
failures that carry a rate-limit signal are retried; everything else is
raised to the caller untouched.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from src.config.settings import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_INITIAL_RETRY_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DeepResearchSettings,
)
from src.tools.base import RateLimitError, parse_retry_after
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def is_rate_limited(error: BaseException) -> bool:
    """True for RateLimitError or any error exposing an HTTP 429 status."""
    if isinstance(error, RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429:
        return True
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None) == 429


def suggested_wait(error: BaseException) -> Optional[float]:
    """Provider-suggested wait in seconds, from retry_after or a Retry-After header."""
    retry_after = getattr(error, "retry_after", None)
    if isinstance(retry_after, (int, float)) and retry_after >= 0:
        return float(retry_after)
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    try:
        return parse_retry_after(headers.get("retry-after"))
    except AttributeError:
        return None


class RateLimitedExecutor:
    """
    Retry remote calls that fail with a rate-limit signal.

    The N-th retry (N starting at 0) waits at most
    ``min(initial_delay * backoff_factor ** N, max_delay)``; provider hints
    are honoured but capped at ``max_delay`` as well.

    Args:
        max_retries: Retries after the first attempt.
        initial_delay: Wait before the first retry, in seconds.
        backoff_factor: Multiplier applied to the delay after each retry.
        max_delay: Upper bound for any single wait.
        sleep: Awaitable sleep function (injectable for tests).
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        max_delay: float = DEFAULT_MAX_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        if backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        self.max_retries = max(0, max_retries)
        self.initial_delay = max(0.0, initial_delay)
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: DeepResearchSettings, sleep: Sleep = asyncio.sleep
    ) -> "RateLimitedExecutor":
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_retry_delay,
            backoff_factor=settings.backoff_factor,
            max_delay=settings.max_retry_delay,
            sleep=sleep,
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
    ) -> T:
        """
        Run ``operation`` and retry it while it is rate limited.

        Raises:
            The last error once retries are exhausted, or any non-rate-limit
            error immediately.
        """
        retries_left = self.max_retries if max_retries is None else max(0, max_retries)
        delay = self.initial_delay if initial_delay is None else max(0.0, initial_delay)
        delay = min(delay, self.max_delay)

        while True:
            try:
                return await operation()
            except Exception as e:
                if not is_rate_limited(e) or retries_left <= 0:
                    raise

                hint = suggested_wait(e)
                wait = min(hint, self.max_delay) if hint is not None else delay
                logger.warning(
                    "Rate limited, waiting before retry",
                    wait_seconds=wait,
                    retries_left=retries_left,
                )
                await self._sleep(wait)

                retries_left -= 1
                delay = min(delay * self.backoff_factor, self.max_delay)
