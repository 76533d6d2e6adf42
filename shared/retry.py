"""Bounded retry for async operations."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    *,
    attempts: int,
    is_retryable: Callable[[BaseException], bool],
    label: str = "operation",
) -> T:
    """Run *operation* up to *attempts* times.

    The operation receives the zero-based attempt number. Errors for which
    *is_retryable* is false propagate immediately; a retryable error on the
    last attempt propagates as well, so the caller decides how exhaustion
    is reported.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(attempts):
        try:
            return await operation(attempt)
        except Exception as e:
            if not is_retryable(e) or attempt == attempts - 1:
                raise
            log.warning(
                "retrying_operation",
                operation=label,
                attempt=attempt + 1,
                attempts=attempts,
                error_type=type(e).__name__,
            )
    raise AssertionError("unreachable")
