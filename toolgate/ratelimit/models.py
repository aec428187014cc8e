"""Rate limit configuration and result types."""

from typing import NamedTuple

from pydantic import BaseModel, Field

from toolgate.config import Settings


GLOBAL_SCOPE = "global"
AUTH_SCOPE = "auth"


class RateLimitConfig(BaseModel):
    """Configuration for rate limiting.

    Attributes:
        window_seconds: Size of the fixed counting window for invocations.
        global_limit: Default per-client budget across all tools.
        tool_limit: Default per-client budget for a single tool.
        auth_failure_limit: Failed authentications allowed per source.
        auth_failure_window_seconds: Window for counting authentication failures.
        idle_seconds: Windows untouched for this long are evicted by the sweep.
    """

    window_seconds: int = Field(default=60, ge=1, description="Window size in seconds")
    global_limit: int = Field(default=120, ge=1, description="Requests per window per client")
    tool_limit: int = Field(default=60, ge=1, description="Requests per window per client per tool")
    auth_failure_limit: int = Field(default=5, ge=1, description="Auth failures per window per source")
    auth_failure_window_seconds: int = Field(default=300, ge=1, description="Auth failure window")
    idle_seconds: int = Field(default=600, ge=1, description="Idle time before eviction")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitConfig":
        return cls(
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            global_limit=settings.RATE_LIMIT_GLOBAL_DEFAULT,
            tool_limit=settings.RATE_LIMIT_TOOL_DEFAULT,
            auth_failure_limit=settings.AUTH_FAILURE_LIMIT,
            auth_failure_window_seconds=settings.AUTH_FAILURE_WINDOW_SECONDS,
            idle_seconds=settings.RATE_LIMIT_IDLE_SECONDS,
        )


class ScopeBudget(NamedTuple):
    """One counter to check: which window, under which limit.

    Attributes:
        key: Counter key, e.g. ``client:c1:global``.
        scope: ``global``, ``auth`` or a tool name.
        limit: Units allowed per window.
        window_seconds: Window size.
    """

    key: str
    scope: str
    limit: int
    window_seconds: int


class RateLimitResult(NamedTuple):
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        limit: The limit of the tightest (or denying) scope.
        remaining: Units left in the tightest scope after this call.
        reset_at: Unix timestamp when that scope's window resets.
        retry_after: Seconds to wait if denied (0 if allowed).
        scope: The denying scope, or the tightest one when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: float = 0.0
    scope: str | None = None
