"""Pydantic schemas for registry admin endpoints."""

from pydantic import BaseModel, Field


class ToolStatusUpdate(BaseModel):
    """Request body for enabling or disabling a tool."""

    enabled: bool = Field(..., description="New availability of the tool")


class ToolStatusResponse(BaseModel):
    """API response schema after a status change.

    Attributes:
        name: Unique tool identifier.
        enabled: Availability after the change.
    """

    name: str = Field(..., description="Unique tool identifier")
    enabled: bool = Field(..., description="Whether the tool is available")
