"""Pydantic schemas for audit logging."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class AuditStatus(str, Enum):
    """Status of a tool invocation.

    Attributes:
        success: Tool executed successfully.
        error: The invocation failed.
        timeout: The deadline expired waiting on the executor.
        rate_limited: Request was rate limited.
    """

    success = "success"
    error = "error"
    timeout = "timeout"
    rate_limited = "rate_limited"


class AuditRecord(BaseModel):
    """One audit record per completed invocation.

    Only who/what/when/outcome is recorded; payloads and outputs never are.

    Attributes:
        request_id: Correlation ID for tracing.
        client_id: Who invoked the tool ("anonymous" if authentication failed).
        tool_name: Which tool was invoked.
        status: Outcome of the invocation.
        duration_ms: Call duration in milliseconds.
        error_code: Error code if failed.
        timestamp: When the invocation completed.
    """

    request_id: str
    client_id: str
    tool_name: str
    status: AuditStatus
    duration_ms: int = Field(ge=0)
    error_code: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogResponse(BaseModel):
    """API response model for audit log entries."""

    id: int
    timestamp: datetime
    request_id: str
    client_id: str
    tool_name: str
    status: AuditStatus
    duration_ms: int
    error_code: str | None = None

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    """Paginated response for audit log queries.

    Attributes:
        items: List of audit log entries.
        total: Total count matching the query.
        limit: Limit used in query.
        offset: Offset used in query.
    """

    items: list[AuditLogResponse]
    total: int
    limit: int
    offset: int
