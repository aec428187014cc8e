"""Base exception, error taxonomy and authentication/authorization errors."""

from enum import Enum


class ErrorKind(str, Enum):
    """Caller-visible error kinds.

    Every failure that leaves the gateway is labelled with exactly one of
    these, and each kind maps to one HTTP-equivalent status.
    """

    unauthorized = "Unauthorized"
    forbidden = "Forbidden"
    tool_not_found = "ToolNotFound"
    tool_disabled = "ToolDisabled"
    validation_error = "ValidationError"
    rate_limited = "RateLimited"
    executor_failure = "ExecutorFailure"
    timeout = "Timeout"
    internal_error = "InternalError"

    @property
    def http_status(self) -> int:
        """HTTP status code for this error kind."""
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.unauthorized: 401,
    ErrorKind.forbidden: 403,
    ErrorKind.tool_not_found: 404,
    ErrorKind.tool_disabled: 503,
    ErrorKind.validation_error: 400,
    ErrorKind.rate_limited: 429,
    ErrorKind.executor_failure: 502,
    ErrorKind.timeout: 504,
    ErrorKind.internal_error: 500,
}


class ToolGatewayError(Exception):
    """Base exception for all Tool Gateway errors."""

    kind: ErrorKind = ErrorKind.internal_error

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.http_status


class InternalError(ToolGatewayError):
    """Raised for faults inside the gateway.

    The message is generic; diagnostic detail goes to the logs.
    """

    def __init__(self, message: str = "Internal gateway error"):
        super().__init__(message=message, code="INTERNAL_ERROR")


class AuthenticationError(ToolGatewayError):
    """Raised when authentication fails."""

    kind = ErrorKind.unauthorized


class UnauthorizedError(AuthenticationError):
    """The only authentication failure callers ever see.

    Expired, revoked, malformed and unknown credentials all collapse into
    this error with the same message.
    """

    def __init__(self):
        super().__init__(message="Invalid or missing credential", code="UNAUTHORIZED")


class CredentialError(AuthenticationError):
    """Internal credential failure, carrying the reason for logging only."""

    state = "unknown"


class InvalidTokenError(CredentialError):
    """Raised when a credential is structurally invalid or fails verification."""

    state = "malformed"


class ExpiredTokenError(CredentialError):
    """Raised when a time-bound credential is past its validity window."""

    state = "expired"


class RevokedCredentialError(CredentialError):
    """Raised when a credential has been explicitly invalidated."""

    state = "revoked"


class UnknownCredentialError(CredentialError):
    """Raised when no credential store recognises the credential."""

    state = "unknown"


class AuthorizationError(ToolGatewayError):
    """Raised when a client lacks permission for an action."""

    kind = ErrorKind.forbidden


class ToolNotAllowedError(AuthorizationError):
    """Raised when a client attempts to use a tool outside its permission set."""

    def __init__(self, tool_name: str, client_id: str):
        super().__init__(
            message=f"Client '{client_id}' is not authorized to use tool '{tool_name}'",
            code="FORBIDDEN"
        )
        self.tool_name = tool_name
        self.client_id = client_id
