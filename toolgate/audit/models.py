"""SQLAlchemy models for audit logging."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    String,
    Integer,
    DateTime,
    Enum as SQLAlchemyEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from toolgate.database import Base

from .schemas import AuditStatus


class AuditLog(Base):
    """Audit log entry for tool invocations.

    Records WHO called WHAT tool WHEN and how it ended. No inputs or outputs
    are stored.

    Attributes:
        id: Primary key.
        timestamp: When the invocation completed.
        request_id: Correlation ID (caller-supplied or generated).
        client_id: Who invoked the tool.
        tool_name: Which tool was invoked.
        status: Outcome of the invocation.
        duration_ms: How long the call took in milliseconds.
        error_code: Error code if failed (nullable).
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="When the invocation completed",
    )
    request_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
        comment="Correlation ID for tracing",
    )
    client_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Who invoked the tool",
    )
    tool_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Which tool was invoked",
    )
    status: Mapped[AuditStatus] = mapped_column(
        SQLAlchemyEnum(AuditStatus, name="audit_status_enum"),
        nullable=False,
        index=True,
        comment="Outcome of the invocation",
    )
    duration_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Call duration in milliseconds",
    )
    error_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Error code if failed",
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<AuditLog(id={self.id}, client={self.client_id}, "
            f"tool={self.tool_name}, status={self.status.value})>"
        )
