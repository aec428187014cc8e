"""Custom exceptions for tool execution."""

from toolgate.auth.exceptions import ErrorKind, ToolGatewayError


class GatewayError(ToolGatewayError):
    """Base exception for dispatch-specific errors."""
    pass


class ExecutorError(GatewayError):
    """Raised when the tool executor fails or returns unusable output.

    Attributes:
        tool_name: Tool whose execution failed.
    """

    kind = ErrorKind.executor_failure

    def __init__(self, tool_name: str, message: str, code: str = "EXECUTOR_FAILURE"):
        super().__init__(message=message, code=code)
        self.tool_name = tool_name


class BackendUnavailableError(ExecutorError):
    """Raised when a backend tool server is unreachable.

    Attributes:
        backend_url: URL of the unreachable backend.
        reason: Description of the connection failure.
    """

    def __init__(self, tool_name: str, backend_url: str, reason: str = "Connection failed"):
        super().__init__(
            tool_name=tool_name,
            message=f"Backend at '{backend_url}' is unavailable: {reason}",
            code="BACKEND_UNAVAILABLE"
        )
        self.backend_url = backend_url
        self.reason = reason


class BackendError(ExecutorError):
    """Raised when a backend returns an error response.

    Attributes:
        backend_url: URL of the backend that returned an error.
        status_code: HTTP status code from backend (or JSON-RPC error code).
        detail: Error detail from backend response.
    """

    def __init__(self, tool_name: str, backend_url: str, status_code: int, detail: str = ""):
        super().__init__(
            tool_name=tool_name,
            message=f"Backend at '{backend_url}' returned error {status_code}: {detail}",
            code="BACKEND_ERROR"
        )
        self.backend_url = backend_url
        self.backend_status = status_code
        self.detail = detail


class ExecutionTimeoutError(GatewayError):
    """Raised when the invocation deadline expires before the tool finishes.

    Attributes:
        tool_name: Tool that did not finish in time.
        timeout_seconds: Deadline that was exceeded.
    """

    kind = ErrorKind.timeout

    def __init__(self, tool_name: str, timeout_seconds: float):
        super().__init__(
            message=f"Tool '{tool_name}' did not finish within {timeout_seconds:g}s",
            code="TIMEOUT"
        )
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds
