"""
Retry policy for calls to external providers (parsing services, embedding APIs).

Retry is opt-in: a call site wraps itself with ``with_retry`` when it wants
transient failures retried with exponential backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from pydantic import BaseModel, Field, field_validator

from docindex.core.config.settings import settings
from docindex.core.exceptions import DocumentProcessingError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig(BaseModel):
    """Backoff configuration, delays in seconds"""
    max_retries: int = Field(
        default=settings.RETRY_MAX_RETRIES, description="Retries after the first attempt")
    initial_delay: float = Field(
        default=settings.RETRY_INITIAL_DELAY, description="Delay before the first retry")
    backoff_multiplier: float = Field(
        default=settings.RETRY_BACKOFF_MULTIPLIER, description="Growth factor between retries")
    max_delay: float = Field(
        default=settings.RETRY_MAX_DELAY, description="Upper bound for a single delay")

    @field_validator('max_retries')
    @classmethod
    def validate_max_retries(cls, v):
        if v < 0:
            raise ValueError('max_retries must be non-negative')
        return v

    @field_validator('initial_delay', 'max_delay')
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError('delays must be non-negative')
        return v

    @field_validator('backoff_multiplier')
    @classmethod
    def validate_backoff_multiplier(cls, v):
        if v < 1:
            raise ValueError('backoff_multiplier must be at least 1')
        return v

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-indexed)"""
        return min(self.initial_delay * self.backoff_multiplier ** attempt, self.max_delay)


def is_retriable(error: BaseException) -> bool:
    """
    Decide whether an error is transient.

    Retriable: taxonomy codes RATE_LIMITED / PROVIDER_UNAVAILABLE / PARSE_TIMEOUT,
    raw HTTP 429 responses, and network-level timeouts or connection failures.
    """
    if isinstance(error, DocumentProcessingError):
        return error.retriable
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code == 429
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    # asyncio.TimeoutError is an alias of TimeoutError on 3.11+
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    return False


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    should_retry: Callable[[BaseException], bool] = is_retriable,
) -> T:
    """
    Run ``operation`` and retry it on transient failures.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        config: Backoff configuration
        should_retry: Error classifier, defaults to ``is_retriable``

    Returns:
        The operation's result

    Raises:
        The last error observed, unchanged, once retries are exhausted or
        immediately for a non-retriable error.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not should_retry(e) or attempt >= config.max_retries:
                raise
            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_retries + 1} failed with {e!r}; "
                f"retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
            attempt += 1
