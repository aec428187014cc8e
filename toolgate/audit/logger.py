"""Audit context and sinks for tool invocations."""

import time
from abc import ABC, abstractmethod

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from toolgate.auth.exceptions import ErrorKind

from .schemas import AuditRecord, AuditStatus
from .repository import create_audit_log

# Configure structured logger
logger = structlog.get_logger("audit")

ANONYMOUS_CLIENT = "anonymous"


class AuditContext:
    """Tracks timing and outcome of a single invocation.

    Attributes:
        request_id: Correlation ID for tracing.
        client_id: Who is invoking the tool, None until authenticated.
        tool_name: Which tool is being invoked.
        start_time: When the invocation started.
        status: Final status of the invocation.
        error_code: Error code if failed.
    """

    def __init__(
        self,
        request_id: str,
        tool_name: str,
        client_id: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.client_id = client_id
        self.tool_name = tool_name
        self.start_time = time.perf_counter()
        self.status = AuditStatus.success
        self.error_code: str | None = None

    def mark_error(self, error_code: str) -> None:
        """Mark the invocation as failed with an error code.

        Args:
            error_code: The error code to record.
        """
        self.status = AuditStatus.error
        self.error_code = error_code

    def mark_timeout(self) -> None:
        """Mark the invocation as timed out."""
        self.status = AuditStatus.timeout
        self.error_code = "TIMEOUT"

    def mark_rate_limited(self) -> None:
        """Mark the invocation as rate limited."""
        self.status = AuditStatus.rate_limited
        self.error_code = "RATE_LIMITED"

    def mark_failure(self, kind: ErrorKind, error_code: str) -> None:
        """Record a failure according to its error kind."""
        if kind == ErrorKind.timeout:
            self.mark_timeout()
        elif kind == ErrorKind.rate_limited:
            self.mark_rate_limited()
        else:
            self.mark_error(error_code)

    @property
    def duration_ms(self) -> int:
        """Calculate duration in milliseconds."""
        elapsed = time.perf_counter() - self.start_time
        return int(elapsed * 1000)

    def to_record(self) -> AuditRecord:
        return AuditRecord(
            request_id=self.request_id,
            client_id=self.client_id or ANONYMOUS_CLIENT,
            tool_name=self.tool_name,
            status=self.status,
            duration_ms=self.duration_ms,
            error_code=self.error_code,
        )


class AuditSink(ABC):
    """Destination for audit records."""

    @abstractmethod
    async def emit(self, record: AuditRecord) -> None:
        """Deliver one audit record."""


class LoggingAuditSink(AuditSink):
    """Writes audit records to the structured log."""

    async def emit(self, record: AuditRecord) -> None:
        logger.info(
            "tool_invocation",
            request_id=record.request_id,
            client_id=record.client_id,
            tool_name=record.tool_name,
            status=record.status.value,
            duration_ms=record.duration_ms,
            error_code=record.error_code,
        )


class DatabaseAuditSink(LoggingAuditSink):
    """Persists audit records and also logs them for real-time monitoring."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def emit(self, record: AuditRecord) -> None:
        async with self.session_factory() as session:
            await create_audit_log(session, record)
        await super().emit(record)


class MemoryAuditSink(AuditSink):
    """Keeps records in a list. Used by tests and local runs."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    async def emit(self, record: AuditRecord) -> None:
        self.records.append(record)
