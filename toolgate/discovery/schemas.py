"""Pydantic schemas for tool discovery responses."""

from typing import Any

from pydantic import BaseModel, Field


class ToolDescriptor(BaseModel):
    """What a caller learns about one tool.

    Attributes:
        name: Unique tool identifier.
        description: Human-readable description.
        input_schema: JSON Schema for the tool's input.
        output_schema: JSON Schema for the tool's output.
    """

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Human-readable description")
    input_schema: dict[str, Any] = Field(..., description="JSON Schema of the input")
    output_schema: dict[str, Any] = Field(..., description="JSON Schema of the output")


class ToolListResponse(BaseModel):
    """API response schema for list of tools.

    Attributes:
        success: Always true for a listing.
        tools: Tools the caller may invoke.
        count: Total number of tools returned.
    """

    success: bool = True
    tools: list[ToolDescriptor] = Field(default_factory=list, description="List of tools")
    count: int = Field(..., description="Total number of tools")
