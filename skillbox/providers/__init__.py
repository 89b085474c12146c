"""Market data access layer."""

from .fetch import (
    backoff_with_jitter,
    check_cost_limit,
    fetch_with_retry,
    resolve_timeout,
)

__all__ = [
    "backoff_with_jitter",
    "check_cost_limit",
    "fetch_with_retry",
    "resolve_timeout",
]
