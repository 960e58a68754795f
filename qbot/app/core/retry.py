"""Retry mechanism with exponential backoff for LLM calls.

This module provides a configurable retry policy and a helper that implements
exponential backoff for transient failures of the upstream LLM API.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

import openai

from qbot.app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 2)
        base_delay: Initial delay between retries in seconds (default: 0.5)
        max_delay: Maximum delay between retries in seconds (default: 8.0)
        exponential_base: Base for exponential calculation (default: 2.0)
        retryable_exceptions: Tuple of exception types that trigger a retry

    Example:
        >>> policy = RetryPolicy(max_retries=5, base_delay=1.0)
        >>> delay = policy.calculate_delay(attempt=2)  # Returns 4.0
    """

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 8.0
    exponential_base: float = 2.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        openai.APIConnectionError,
        openai.RateLimitError,
        openai.InternalServerError,
        TimeoutError,
    )

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay for a given retry attempt.

        delay = min(base_delay * (exponential_base ^ attempt), max_delay)

        Args:
            attempt: The current retry attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)

    def is_retryable(self, exception: Exception) -> bool:
        """Check if an exception should trigger a retry.

        For API status errors only 429 and 5xx responses are retryable.
        """
        if isinstance(exception, openai.APIStatusError):
            status = exception.status_code
            return status == 429 or status >= 500

        return isinstance(exception, self.retryable_exceptions)


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying transient failures.

    Raises:
        The last exception once retries are exhausted, or the first
        non-retryable exception.
    """
    retry_policy = policy or RetryPolicy()
    name = getattr(func, "__name__", repr(func))

    for attempt in range(retry_policy.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not retry_policy.is_retryable(e):
                logger.debug(
                    f"Non-retryable exception in {name}: {type(e).__name__}: {e}"
                )
                raise

            if attempt >= retry_policy.max_retries:
                logger.warning(
                    f"Max retries ({retry_policy.max_retries}) exceeded for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            delay = retry_policy.calculate_delay(attempt)
            logger.warning(
                f"Retry {attempt + 1}/{retry_policy.max_retries} for {name} "
                f"after {type(e).__name__}: {e}. Waiting {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover

