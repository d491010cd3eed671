"""Retry utilities for Microsoft Graph calls."""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import TypeVar

import httpx
from azure.core.exceptions import ClientAuthenticationError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Throttling and gateway errors are worth another attempt
RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""

    max_retries: int = 3
    backoff_factor: float = 1.0
    max_wait: float = 60.0


def is_retryable_error(error: Exception) -> bool:
    """Determine if an error is retryable.

    Status-bearing errors retry only on RETRYABLE_STATUS_CODES; transport
    failures (timeouts, refused connections) always retry.
    """
    if isinstance(error, ClientAuthenticationError):
        return False

    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        return status_code in RETRYABLE_STATUS_CODES

    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES

    return isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError))


def retry_with_backoff(policy: RetryPolicy | None = None):
    """Decorator that retries async functions with exponential backoff."""
    if policy is None:
        policy = RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(policy.max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable_error(e):
                        raise

                    if attempt >= policy.max_retries:
                        logger.error(
                            f"{func.__name__} failed after {policy.max_retries + 1} attempts: {e}"
                        )
                        raise

                    wait_time = min(
                        policy.backoff_factor * (2 ** attempt) + random.uniform(0, 1),
                        policy.max_wait,
                    )

                    logger.warning(
                        f"{func.__name__} attempt {attempt + 1}/{policy.max_retries + 1} "
                        f"failed: {e}. Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)

            raise RuntimeError("Unexpected retry failure")

        return wrapper

    return decorator


GRAPH_API_POLICY = RetryPolicy(
    max_retries=get_settings().graph_max_retries,
    backoff_factor=1.0,
    max_wait=30.0,
)
