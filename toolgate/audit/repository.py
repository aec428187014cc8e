"""Repository layer for audit log database operations."""

from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditLog
from .schemas import AuditRecord, AuditStatus


async def create_audit_log(
    db: AsyncSession,
    record: AuditRecord,
) -> AuditLog:
    """Create a new audit log entry.

    Args:
        db: Async database session.
        record: Audit record to insert.

    Returns:
        The created AuditLog instance.
    """
    audit_log = AuditLog(
        timestamp=record.timestamp,
        request_id=record.request_id,
        client_id=record.client_id,
        tool_name=record.tool_name,
        status=record.status,
        duration_ms=record.duration_ms,
        error_code=record.error_code,
    )
    db.add(audit_log)
    await db.commit()
    return audit_log


async def get_audit_logs(
    db: AsyncSession,
    client_id: str | None = None,
    tool_name: str | None = None,
    status: AuditStatus | None = None,
    request_id: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    """Query audit logs with optional filters.

    Args:
        db: Async database session.
        client_id: Filter by client ID.
        tool_name: Filter by tool name.
        status: Filter by status.
        request_id: Filter by correlation ID.
        start_time: Filter logs after this time.
        end_time: Filter logs before this time.
        limit: Maximum results to return.
        offset: Pagination offset.

    Returns:
        Tuple of (list of matching logs, total count).
    """
    conditions = []
    if client_id is not None:
        conditions.append(AuditLog.client_id == client_id)
    if tool_name is not None:
        conditions.append(AuditLog.tool_name == tool_name)
    if status is not None:
        conditions.append(AuditLog.status == status)
    if request_id is not None:
        conditions.append(AuditLog.request_id == request_id)
    if start_time is not None:
        conditions.append(AuditLog.timestamp >= start_time)
    if end_time is not None:
        conditions.append(AuditLog.timestamp <= end_time)

    count_query = select(func.count(AuditLog.id)).where(*conditions)
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = (
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.timestamp.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    logs = list(result.scalars().all())

    return logs, total
