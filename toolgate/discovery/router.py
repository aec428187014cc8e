"""FastAPI router for tool discovery."""

from typing import Annotated

from fastapi import APIRouter, Depends

from toolgate.auth.dependencies import get_current_client
from toolgate.auth.models import ClientIdentity
from toolgate.dependencies import get_gateway
from toolgate.gateway.service import Gateway

from .schemas import ToolListResponse


router = APIRouter(prefix="/mcp", tags=["tools"])


@router.get("/tools", response_model=ToolListResponse)
async def list_tools(
    client: Annotated[ClientIdentity, Depends(get_current_client)],
    gateway: Annotated[Gateway, Depends(get_gateway)],
) -> ToolListResponse:
    """List all tools the authenticated client can invoke.

    Requires: Valid credential in Authorization header.

    Returns:
        ToolListResponse with list of accessible tools and count.
    """
    tools = gateway.discovery.discover(client)
    return ToolListResponse(tools=tools, count=len(tools))
