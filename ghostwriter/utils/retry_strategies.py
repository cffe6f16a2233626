"""
Retry strategy for completion calls.

Exponential backoff through tenacity. Only transient transport failures are
retried; everything else surfaces on the first attempt.
"""

import asyncio
import logging
from typing import Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)


class TransientCompletionError(Exception):
    """A completion failure worth retrying (rate limited or server-side)."""

    pass


class RetryConfig:
    """Configuration for retry strategies."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        jitter: bool = True,
        retryable_exceptions: tuple = (
            TransientCompletionError,
            aiohttp.ClientConnectionError,
            asyncio.TimeoutError,
        ),
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts, including the first
            initial_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds
            jitter: Whether to add up to one second of random jitter
            retryable_exceptions: Exceptions that should trigger retry
        """
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions


def create_async_retrying(config: Optional[RetryConfig] = None) -> AsyncRetrying:
    """
    Build a tenacity AsyncRetrying controller for completion calls.

    Usage:
        async for attempt in create_async_retrying(config):
            with attempt:
                ...

    Args:
        config: Retry configuration (uses defaults if None)
    """
    if config is None:
        config = RetryConfig()

    wait = wait_exponential(
        multiplier=config.initial_delay,
        min=config.initial_delay,
        max=config.max_delay,
    )
    if config.jitter:
        wait = wait + wait_random(0, 1)

    return AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait,
        retry=retry_if_exception_type(config.retryable_exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


COMPLETION_RETRY_CONFIG = RetryConfig()
