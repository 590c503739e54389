"""
Retry utilities for storage conflicts on the ledger commit path
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Sequence

from healcoin_ledger.core.config import LedgerSettings

logger = logging.getLogger(__name__)


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.05,
        max_delay: float = 1.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: Optional[Sequence[type[BaseException]]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_exceptions = tuple(retryable_exceptions or (Exception,))

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        retryable_exceptions: Sequence[type[BaseException]],
    ) -> "RetryConfig":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            retryable_exceptions=retryable_exceptions,
        )


class RetryExhausted(Exception):
    """All attempts failed with a retryable exception."""

    def __init__(self, attempts: int, last_exception: BaseException):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(f"gave up after {attempts} attempts: {last_exception}")


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay for exponential backoff with jitter"""
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        # spread concurrent retries of the same account
        delay *= 0.5 + random.random() * 0.5

    return delay


async def retry_async(func: Callable[..., Awaitable[Any]], config: RetryConfig, *args, **kwargs) -> Any:
    """Await ``func`` with exponential backoff on retryable exceptions.

    Non-retryable exceptions propagate untouched on the attempt that raised
    them. When every attempt fails, :class:`RetryExhausted` wraps the last one.
    """
    last_exception: BaseException | None = None
    name = getattr(func, "__name__", repr(func))

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as exc:
            last_exception = exc

            if attempt == config.max_attempts:
                logger.error("Max retry attempts (%s) reached for %s: %s", config.max_attempts, name, exc)
                break

            delay = calculate_delay(attempt, config)
            logger.warning(
                "Attempt %s/%s failed for %s: %s. Retrying in %.3fs",
                attempt,
                config.max_attempts,
                name,
                exc,
                delay,
            )
            await asyncio.sleep(delay)

    assert last_exception is not None
    raise RetryExhausted(config.max_attempts, last_exception) from last_exception
