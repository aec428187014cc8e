"""Registry module - Tool definitions and lookup."""

from .models import Tool, FieldSpec, FieldType, fields_to_json_schema
from .exceptions import RegistryError, DuplicateToolError, ToolNotFoundError, ToolDisabledError
from .config import ToolRegistryConfig, load_tool_registry
from .service import ToolRegistry, ToolListing


__all__ = [
    "Tool",
    "FieldSpec",
    "FieldType",
    "fields_to_json_schema",
    "RegistryError",
    "DuplicateToolError",
    "ToolNotFoundError",
    "ToolDisabledError",
    "ToolRegistryConfig",
    "load_tool_registry",
    "ToolRegistry",
    "ToolListing",
]
