"""Retry logic with exponential backoff and jitter

1. Only retries transient errors (timeouts, rate limits, 5xx errors)
2. Uses exponential backoff with jitter to prevent thundering herd
3. Gives up after max retries
"""

import asyncio
import random
import logging
from typing import Callable, Any, Optional, TypeVar
from functools import wraps
import httpx

from lifescore.resilience.metrics import record_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 2
BASE_DELAY = 0.5  # seconds
MAX_DELAY = 8.0  # seconds
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable: network timeouts, HTTP 429 and 5xx, provider timeout/rate-limit
    errors. Everything else (4xx, bad keys, malformed requests) is not.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in [429, 500, 502, 503, 504]

    if isinstance(exc, httpx.TimeoutException):
        return True

    # OpenAI SDK errors (checked by class name to avoid the import)
    if exc.__class__.__name__ in ['RateLimitError', 'APITimeoutError', 'APIConnectionError', 'InternalServerError']:
        return True

    return False


def calculate_backoff(attempt: int) -> float:
    """
    Exponential backoff delay with jitter.

    delay = min(BASE_DELAY * 2**attempt, MAX_DELAY) ± 10%
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    return max(delay + jitter_amount, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    api_name: Optional[str] = None,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Only retries transient errors. Gives up after max_retries attempts and
    re-raises the last exception.

    Example:
        text = await retry_with_backoff(client.create, prompt, max_retries=2, api_name="openai")
    """
    api_name = api_name or func.__name__

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if attempt == max_retries:
                logger.error(f"[RETRY] All {max_retries} retries exhausted for {api_name}")
                raise

            if not is_retryable_error(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {api_name}: {type(e).__name__}: {e}"
                )
                raise

            backoff = calculate_backoff(attempt)
            record_retry(api_name)
            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {api_name} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )
            await asyncio.sleep(backoff)


def with_retry(max_retries: int = MAX_RETRIES, api_name: Optional[str] = None) -> Callable:
    """
    Decorator to add retry logic to async functions.

    Example:
        @with_retry(max_retries=2)
        async def call_api():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(
                func, *args, max_retries=max_retries, api_name=api_name, **kwargs
            )
        return wrapper
    return decorator
