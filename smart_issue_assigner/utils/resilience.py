"""Resilience utilities for retrying unreliable external calls."""

import logging
import time
import random
from typing import Any, Callable, Optional
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True
    backoff_multiplier: float = 2.0
    exceptions: tuple = (Exception,)


class RetryableError(Exception):
    """Exception that indicates an operation should be retried."""
    pass


class NonRetryableError(Exception):
    """Exception that indicates an operation should not be retried."""
    pass


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate exponential backoff delay for a retry attempt.

    Args:
        attempt: Current attempt number (0-based)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = min(config.base_delay * (config.backoff_multiplier ** attempt), config.max_delay)

    # Add jitter to prevent thundering herd
    if config.jitter:
        delay += delay * 0.1 * random.random()

    return delay


def call_with_retry(
    func: Callable[..., Any],
    config: RetryConfig,
    *args,
    description: Optional[str] = None,
    **kwargs
) -> Any:
    """Call ``func`` until it succeeds, raises a non-retryable error or runs out of attempts.

    The last exception is re-raised unchanged once all attempts are spent, so
    callers always see the typed failure rather than a wrapper.
    """
    name = description or getattr(func, '__name__', 'call')
    last_exception: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except NonRetryableError:
            raise
        except config.exceptions as e:
            last_exception = e

            if attempt < config.max_attempts - 1:
                delay = calculate_delay(attempt, config)
                logger.warning(
                    f"Attempt {attempt + 1} failed for {name}: {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                time.sleep(delay)
            else:
                logger.error(f"All {config.max_attempts} attempts failed for {name}")

    raise last_exception
