"""Rate limiting module - Fixed window counters with per-key locking."""

from .models import (
    AUTH_SCOPE,
    GLOBAL_SCOPE,
    RateLimitConfig,
    RateLimitResult,
    ScopeBudget,
)
from .store import CounterStore, InMemoryCounterStore, RateWindow
from .limiter import RateLimiter, run_sweeper
from .exceptions import RateLimitExceededError, retry_after_header


__all__ = [
    "AUTH_SCOPE",
    "GLOBAL_SCOPE",
    "RateLimitConfig",
    "RateLimitResult",
    "ScopeBudget",
    "CounterStore",
    "InMemoryCounterStore",
    "RateWindow",
    "RateLimiter",
    "run_sweeper",
    "RateLimitExceededError",
    "retry_after_header",
]
