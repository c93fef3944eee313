"""
Exponential backoff retry executor for calls to external providers.

Operations are zero-argument coroutine factories. A failed attempt is retried
only when the error is classified as retryable: an explicit HTTP 429 status on
the exception, or, when the exception carries no status code, a rate-limit
marker in its message. Timeouts are retried only when the policy opts in.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
import openai

from telehealth.config.constants import (
    BACKOFF_BASE_DELAY,
    BACKOFF_MAX_DELAY,
    BACKOFF_MAX_JITTER,
    DEFAULT_MAX_RETRIES,
    LOGGER_NAME,
    RATE_LIMIT_MARKERS,
)

logger = logging.getLogger(LOGGER_NAME)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters. All delays are in seconds."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = BACKOFF_BASE_DELAY
    max_delay: float = BACKOFF_MAX_DELAY
    max_jitter: float = BACKOFF_MAX_JITTER
    retry_on_timeout: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0 or self.max_jitter < 0:
            raise ValueError("Backoff delays must be non-negative")


DEFAULT_POLICY = RetryPolicy()


def get_status_code(error: BaseException) -> Optional[int]:
    """
    Extract an HTTP status code from a provider exception, if it carries one.

    OpenAI errors expose ``status_code``, Twilio REST errors expose ``status``
    and httpx errors carry the status on ``response``.
    """
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Classify an error as rate-limit related.

    An explicit status code wins; the message heuristic is only used when the
    exception has no status code.
    """
    status = get_status_code(error)
    if status is not None:
        return status == RATE_LIMIT_STATUS
    message = str(error).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def is_timeout_error(error: BaseException) -> bool:
    """Return True for request timeouts and aborted-by-deadline calls."""
    return isinstance(
        error,
        (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException, openai.APITimeoutError),
    )


def is_retryable_error(error: BaseException, policy: RetryPolicy = DEFAULT_POLICY) -> bool:
    if is_rate_limit_error(error):
        return True
    return policy.retry_on_timeout and is_timeout_error(error)


def compute_backoff_delay(
    attempt: int,
    policy: RetryPolicy = DEFAULT_POLICY,
    jitter: Optional[float] = None,
) -> float:
    """
    Compute the delay before the next attempt.

    Args:
        attempt: Number of failed attempts so far (>= 0)
        policy: Backoff parameters
        jitter: Jitter to add; sampled from [0, policy.max_jitter) when None

    Returns:
        float: ``min(base * 2**attempt + jitter, max_delay)`` in seconds
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    if jitter is None:
        jitter = random.random() * policy.max_jitter
    return min(policy.base_delay * (2 ** attempt) + jitter, policy.max_delay)


async def retry_with_exponential_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    random_fn: Callable[[], float] = random.random,
) -> T:
    """
    Run an operation, retrying rate-limited failures with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_retries: Overrides ``policy.max_retries`` when given
        policy: Backoff parameters, defaults to DEFAULT_POLICY
        sleep: Awaitable sleep used between attempts
        random_fn: Source of uniform [0, 1) values for jitter

    Returns:
        The operation's result

    Raises:
        The last error when it is not retryable or the retry budget is spent
    """
    policy = policy or DEFAULT_POLICY
    if max_retries is None:
        max_retries = policy.max_retries
    elif max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")

    retries = 0
    while True:
        try:
            logger.debug(f"Executing operation, attempt {retries + 1}")
            return await operation()
        except Exception as e:
            retries += 1
            retryable = is_retryable_error(e, policy)
            logger.debug(
                f"Error on attempt {retries}: {type(e).__name__}: {e} "
                f"(status={get_status_code(e)}, retryable={retryable})"
            )

            if retries > max_retries or not retryable:
                logger.debug(
                    f"Giving up after {retries} attempt(s). "
                    f"Max retries: {max_retries}. Retryable: {retryable}"
                )
                raise

            delay = compute_backoff_delay(
                retries, policy, jitter=random_fn() * policy.max_jitter
            )
            logger.warning(
                f"Rate limited. Retrying in {delay * 1000:.0f}ms "
                f"(attempt {retries}/{max_retries})"
            )
            await sleep(delay)
