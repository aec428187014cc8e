"""Static tool registry config loader."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from .models import Tool


class ToolRegistryConfig(BaseModel):
    """Container for tool definitions, in registration order."""

    tools: list[Tool] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> "ToolRegistryConfig":
        seen_names: set[str] = set()
        for tool in self.tools:
            if tool.name in seen_names:
                raise ValueError(f"duplicate tool name in config: {tool.name}")
            seen_names.add(tool.name)
        return self


def load_tool_registry(config_path: str | None = None) -> ToolRegistryConfig:
    """Load tool registry config from YAML.

    Args:
        config_path: Optional custom path for the tool registry config.

    Returns:
        Parsed ToolRegistryConfig, or an empty config if the file is missing.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "tools.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        return ToolRegistryConfig()

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    return ToolRegistryConfig(**data)
