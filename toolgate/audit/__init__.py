"""Audit module - Logging and compliance."""

from .logger import (
    ANONYMOUS_CLIENT,
    AuditContext,
    AuditSink,
    LoggingAuditSink,
    DatabaseAuditSink,
    MemoryAuditSink,
)
from .schemas import AuditStatus, AuditRecord, AuditLogResponse

__all__ = [
    "ANONYMOUS_CLIENT",
    "AuditContext",
    "AuditSink",
    "LoggingAuditSink",
    "DatabaseAuditSink",
    "MemoryAuditSink",
    "AuditStatus",
    "AuditRecord",
    "AuditLogResponse",
]
