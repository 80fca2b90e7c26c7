"""Retry executor with exponential backoff and jitter for transient node failures."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from manifest_mcp.errors import NON_RETRYABLE_CODES, ErrorCode, ManifestMCPError, error_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.25

# Case-insensitive substrings that mark a failure as plausibly temporary.
TRANSIENT_SIGNATURES: Tuple[str, ...] = (
    # network level
    "econnrefused",
    "econnreset",
    "etimedout",
    "enotfound",
    "connection refused",
    "connection reset",
    "name or service not known",
    "nodename nor servname",
    "network",
    "socket",
    "timeout",
    "timed out",
    "connection",
    # HTTP 5xx
    "500",
    "502",
    "503",
    "504",
    "internal server error",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
    # throttling
    "429",
    "too many requests",
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Immutable retry settings; delays are in milliseconds."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000

    def __post_init__(self) -> None:
        problems = []
        if self.max_retries < 0:
            problems.append("max_retries must be a non-negative integer")
        if self.base_delay_ms < 0:
            problems.append("base_delay_ms must be non-negative")
        if self.max_delay_ms < self.base_delay_ms:
            problems.append("max_delay_ms must be greater than or equal to base_delay_ms")
        if problems:
            raise ManifestMCPError(
                ErrorCode.INVALID_CONFIG,
                f"Invalid retry policy: {', '.join(problems)}",
                {"errors": problems},
            )


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_transient_error_message(message: str) -> bool:
    lowered = message.lower()
    return any(signature in lowered for signature in TRANSIENT_SIGNATURES)


def is_retryable_error(error: BaseException) -> bool:
    """Classify a failure: permanent kinds never retry, others only on a transient signature."""
    if isinstance(error, ManifestMCPError):
        if error.code in NON_RETRYABLE_CODES or error.retryable is False:
            return False
        return is_transient_error_message(error.message)
    if isinstance(error, Exception):
        return is_transient_error_message(error_message(error))
    return False


def calculate_backoff(attempt: int, base_delay_ms: int, max_delay_ms: int) -> int:
    """
    Delay before retry number ``attempt`` (0-indexed).

    ``min(base * 2**attempt, max)`` perturbed by uniform jitter of +/-25% of the
    capped value, floored to a non-negative integer.
    """
    capped = min(base_delay_ms * (2**attempt), max_delay_ms)
    jitter = capped * JITTER_RATIO * (random.random() * 2 - 1)
    return max(0, int(capped + jitter))


async def _sleep(delay_ms: int) -> None:
    await asyncio.sleep(delay_ms / 1000)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    operation_name: Optional[str] = None,
    on_retry: Optional[Callable[[BaseException, int, int], Any]] = None,
) -> T:
    """
    Run ``operation`` until it succeeds, fails permanently, or retries run out.

    ``on_retry(error, attempt_number, delay_ms)`` is called just before each
    backoff wait; it is an observer only. The last error is re-raised when the
    executor gives up.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    name = operation_name or getattr(operation, "__name__", "operation")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_retries or not is_retryable_error(exc):
                raise
            delay_ms = calculate_backoff(attempt, policy.base_delay_ms, policy.max_delay_ms)
            attempt += 1
            logger.warning(
                "operation=%s attempt=%d failed error=%s retry_in_ms=%d",
                name,
                attempt,
                error_message(exc),
                delay_ms,
            )
            if on_retry is not None:
                try:
                    on_retry(exc, attempt, delay_ms)
                except Exception:
                    logger.exception("on_retry callback failed for %s", name)
            await _sleep(delay_ms)
