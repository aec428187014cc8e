"""Rate limit exceptions."""

import math

from toolgate.auth.exceptions import ErrorKind, ToolGatewayError


def retry_after_header(seconds: float) -> str:
    """Whole seconds for the Retry-After header, rounded up and never zero."""
    return str(max(1, math.ceil(seconds)))


class RateLimitExceededError(ToolGatewayError):
    """Raised when a rate limit is exceeded.

    Attributes:
        limit: The rate limit that was exceeded.
        retry_after: Seconds until request can be retried.
        scope: The exhausted scope ("global", "auth" or a tool name).
    """

    kind = ErrorKind.rate_limited

    def __init__(self, limit: int, retry_after: float, scope: str | None = None):
        super().__init__(
            message=f"Rate limit exceeded ({limit} requests/window). Retry after {retry_after:.1f}s",
            code="RATE_LIMITED"
        )
        self.limit = limit
        self.retry_after = retry_after
        self.scope = scope

    @property
    def retry_after_header(self) -> str:
        return retry_after_header(self.retry_after)
