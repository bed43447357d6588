# src/llm/retry.py — v3
"""Retry policy with exponential backoff for translation requests.

The policy is independent of the transport: ``with_retry`` wraps any
awaitable factory, classifies each failure and either sleeps and tries
again or gives up with ``RetryExhausted``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import openai

from i18ndiff.llm.base_client import EmptyResponseError

logger = logging.getLogger(__name__)

RETRYABLE_ERROR_TYPES: frozenset[str] = frozenset(
    {"rate_limit", "server_error", "timeout"}
)

_SERVER_STATUS_CODES = (500, 502, 503, 504)


class RetryExhausted(Exception):
    """A request failed for good, either non-retryable or out of attempts."""

    def __init__(self, label: str, error_type: str, attempts: int, last_error: Exception):
        self.label = label
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Translation failed after {attempts} attempt(s) ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff curve."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = False
    retryable: frozenset[str] = field(default=RETRYABLE_ERROR_TYPES)

    def compute_delay(self, attempt: int) -> float:
        """Delay before the retry following 0-based ``attempt``."""
        delay = self.base_delay_s * (self.backoff_factor ** attempt)
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay

    def is_retryable(self, error_type: str) -> bool:
        return error_type in self.retryable


def classify_error(error: BaseException) -> str:
    """Classify an exception into a retry error type."""
    if isinstance(error, EmptyResponseError):
        return "empty_response"
    if isinstance(error, openai.RateLimitError):
        return "rate_limit"
    if isinstance(error, (openai.APITimeoutError, asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(error, openai.APIStatusError):
        if error.status_code == 429:
            return "rate_limit"
        if error.status_code >= 500:
            return "server_error"
        if error.status_code == 400:
            return "bad_request"
        return "unknown"

    msg = str(error).lower()
    if "429" in msg or "rate limit" in msg:
        return "rate_limit"
    if "timeout" in msg or "timed out" in msg or "aborted" in msg:
        return "timeout"
    if any(str(code) in msg for code in _SERVER_STATUS_CODES) or "server error" in msg:
        return "server_error"
    return "unknown"


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy | None = None,
    label: str = "request",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function under ``policy``.

    Raises:
        RetryExhausted: On a non-retryable error or when attempts run out.
    """
    policy = policy or RetryPolicy()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1

            if not policy.is_retryable(error_type) or attempts >= policy.max_attempts:
                raise RetryExhausted(label, error_type, attempts, e) from e

            delay = policy.compute_delay(attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs: %s",
                label, error_type, attempts, policy.max_attempts, delay, e,
            )
            await sleep(delay)
