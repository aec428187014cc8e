"""Admin router for audit log queries."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.database import get_db
from toolgate.auth.models import ClientIdentity
from toolgate.auth.dependencies import get_admin_client

from .schemas import (
    AuditStatus,
    AuditLogResponse,
    AuditLogListResponse,
)
from .repository import get_audit_logs


router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def query_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[ClientIdentity, Depends(get_admin_client)],
    client_id: Annotated[str | None, Query(description="Filter by client ID")] = None,
    tool_name: Annotated[str | None, Query(description="Filter by tool name")] = None,
    status: Annotated[AuditStatus | None, Query(description="Filter by status")] = None,
    request_id: Annotated[str | None, Query(max_length=128, description="Filter by correlation ID")] = None,
    start_time: Annotated[datetime | None, Query(description="Filter logs after this time")] = None,
    end_time: Annotated[datetime | None, Query(description="Filter logs before this time")] = None,
    limit: Annotated[int, Query(ge=1, le=1000, description="Max results")] = 100,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
) -> AuditLogListResponse:
    """Query audit logs with optional filters.

    Requires an admin client. Only mounted when audit records are persisted
    to the database.
    """
    logs, total = await get_audit_logs(
        db=db,
        client_id=client_id,
        tool_name=tool_name,
        status=status,
        request_id=request_id,
        start_time=start_time,
        end_time=end_time,
        limit=limit,
        offset=offset,
    )

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )
