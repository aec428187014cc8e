"""Pydantic schemas for invocation requests, results and the backend wire format."""

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from toolgate.auth.exceptions import ErrorKind, ToolGatewayError
from toolgate.ratelimit.exceptions import RateLimitExceededError
from toolgate.validation.exceptions import FieldViolation, SchemaValidationError


def generate_request_id() -> str:
    """Generate a unique request ID for tracing."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvocationRequest(BaseModel):
    """A single tool invocation as seen by the dispatcher.

    Attributes:
        tool_name: Tool to invoke.
        arguments: Raw, unvalidated payload.
        credential: Raw credential from the caller.
        request_id: Correlation ID (caller-supplied or generated).
        timestamp: When the request was received.
        timeout: Deadline in seconds (dispatcher default if None).
        source: Caller address, keys the auth-failure budget.
    """

    tool_name: str
    arguments: Any = Field(default_factory=dict)
    credential: str | None = None
    request_id: str = Field(default_factory=generate_request_id)
    timestamp: datetime = Field(default_factory=_utcnow)
    timeout: float | None = Field(default=None, gt=0)
    source: str = "unknown"


class InvokeToolRequest(BaseModel):
    """Request body for the invoke endpoint.

    Attributes:
        tool_name: Name of the tool to invoke.
        arguments: Arguments to pass to the tool.
        request_id: Optional request ID for tracing.
        timeout: Optional deadline in seconds.
    """

    tool_name: str = Field(..., description="Tool to invoke")
    arguments: Any = Field(default_factory=dict, description="Tool arguments")
    request_id: str | None = Field(default=None, max_length=128, description="Optional request ID")
    timeout: float | None = Field(default=None, gt=0, description="Deadline in seconds")


class ErrorDetail(BaseModel):
    """Caller-facing error description.

    Attributes:
        kind: Error taxonomy member.
        message: Human-readable message.
        retry_after: Seconds to wait, for RateLimited only.
        violations: Field violations, for ValidationError only.
    """

    kind: ErrorKind
    message: str
    retry_after: float | None = None
    violations: list[FieldViolation] | None = None

    @classmethod
    def from_exception(cls, exc: ToolGatewayError) -> "ErrorDetail":
        detail = cls(kind=exc.kind, message=exc.message)
        if isinstance(exc, RateLimitExceededError):
            detail.retry_after = exc.retry_after
        if isinstance(exc, SchemaValidationError):
            detail.violations = list(exc.violations)
        return detail


class ExecutionMetadata(BaseModel):
    """Metadata attached to every invocation result."""

    request_id: str
    tool_name: str
    client_id: str | None = None
    elapsed_ms: float = Field(ge=0)
    timestamp: datetime = Field(default_factory=_utcnow)


class InvocationResult(BaseModel):
    """Outcome of an invocation: exactly one of ``output`` or ``error``."""

    success: bool
    output: Any = None
    error: ErrorDetail | None = None
    metadata: ExecutionMetadata

    @model_validator(mode="after")
    def _one_outcome(self) -> "InvocationResult":
        if self.success and self.error is not None:
            raise ValueError("a successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("a failed result must carry an error")
        if not self.success and self.output is not None:
            raise ValueError("a failed result cannot carry output")
        return self

    @classmethod
    def ok(cls, output: Any, metadata: ExecutionMetadata) -> "InvocationResult":
        return cls(success=True, output=output, metadata=metadata)

    @classmethod
    def failure(cls, error: ErrorDetail, metadata: ExecutionMetadata) -> "InvocationResult":
        return cls(success=False, error=error, metadata=metadata)

    @property
    def status_code(self) -> int:
        """HTTP status for this result."""
        if self.error is None:
            return 200
        return self.error.kind.http_status


class MCPToolCallParams(BaseModel):
    """Parameters for a tool call request.

    Attributes:
        name: Name of the tool to invoke.
        arguments: Arguments to pass to the tool.
    """

    name: str = Field(..., description="Name of the tool to invoke")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class MCPRequest(BaseModel):
    """JSON-RPC 2.0 request sent to HTTP-backed tools."""

    jsonrpc: Literal["2.0"] = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method to call")
    params: MCPToolCallParams = Field(..., description="Tool call parameters")
    id: str | int = Field(..., description="Request ID for correlation")


class MCPErrorDetail(BaseModel):
    """Error details in JSON-RPC format."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Any | None = Field(default=None, description="Additional error data")


class MCPResponse(BaseModel):
    """JSON-RPC 2.0 response from an HTTP-backed tool.

    Attributes:
        jsonrpc: JSON-RPC version (always "2.0").
        result: Result on success.
        error: Error details on failure.
        id: Request ID for correlation.
    """

    jsonrpc: Literal["2.0"] = Field(default="2.0", description="JSON-RPC version")
    result: Any | None = Field(default=None, description="Result on success")
    error: MCPErrorDetail | None = Field(default=None, description="Error on failure")
    id: str | int | None = Field(default=None, description="Request ID for correlation")
