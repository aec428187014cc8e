"""Admin router for tool registry changes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from toolgate.auth.dependencies import get_admin_client
from toolgate.auth.models import ClientIdentity
from toolgate.dependencies import get_gateway
from toolgate.gateway.service import Gateway

from .schemas import ToolStatusResponse, ToolStatusUpdate


router = APIRouter(prefix="/admin", tags=["admin"])


@router.put("/tools/{tool_name}/enabled", response_model=ToolStatusResponse)
async def set_tool_enabled(
    tool_name: str,
    update: ToolStatusUpdate,
    admin: Annotated[ClientIdentity, Depends(get_admin_client)],
    gateway: Annotated[Gateway, Depends(get_gateway)],
) -> ToolStatusResponse:
    """Enable or disable a tool. Requires an admin client.

    In-flight requests keep the definition they already read; the change
    applies to the next lookup.
    """
    tool = gateway.registry.set_enabled(tool_name, update.enabled)
    return ToolStatusResponse(name=tool.name, enabled=tool.enabled)
