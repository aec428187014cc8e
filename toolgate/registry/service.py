"""In-memory tool registry with copy-on-write snapshots."""

import threading
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

import structlog

from toolgate.auth.models import WILDCARD

from .config import load_tool_registry
from .exceptions import DuplicateToolError, ToolNotFoundError
from .models import Tool

logger = structlog.get_logger("registry")


class ToolListing:
    """Lazy, restartable view over one registry snapshot.

    Iterating twice yields the same tools in the same order, even if the
    registry changes in between.
    """

    def __init__(self, snapshot: Mapping[str, Tool], permissions: Iterable[str] | None = None):
        self._snapshot = snapshot
        self._permissions = None if permissions is None else frozenset(permissions)

    def _permitted(self, tool: Tool) -> bool:
        if self._permissions is None or WILDCARD in self._permissions:
            return True
        return tool.name in self._permissions

    def __iter__(self) -> Iterator[Tool]:
        return (tool for tool in self._snapshot.values() if self._permitted(tool))

    def names(self) -> list[str]:
        return [tool.name for tool in self]


class ToolRegistry:
    """Single-writer registry of tools.

    Writers serialize on a lock, build a new mapping and publish it with one
    reference assignment. Readers only ever dereference the current
    snapshot, so they never wait on writers.
    """

    def __init__(self, allow_replace: bool = False):
        """Initialize an empty registry.

        Args:
            allow_replace: If True, registering an existing name replaces the
                old definition in place. If False, it raises DuplicateToolError.
        """
        self.allow_replace = allow_replace
        self._snapshot: Mapping[str, Tool] = MappingProxyType({})
        self._write_lock = threading.Lock()

    @classmethod
    def from_config(cls, config_path: str | None = None, allow_replace: bool = False) -> "ToolRegistry":
        """Build a registry from the static YAML tool config."""
        registry = cls(allow_replace=allow_replace)
        for tool in load_tool_registry(config_path).tools:
            registry.register(tool)
        return registry

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, name: str) -> bool:
        return name in self._snapshot

    def _publish(self, tools: dict[str, Tool]) -> None:
        self._snapshot = MappingProxyType(tools)

    def register(self, tool: Tool) -> None:
        """Add a tool.

        A replaced tool keeps its original registration position.

        Raises:
            DuplicateToolError: If the name exists and replacement is off.
        """
        with self._write_lock:
            if tool.name in self._snapshot and not self.allow_replace:
                raise DuplicateToolError(tool.name)
            tools = dict(self._snapshot)
            replaced = tool.name in tools
            tools[tool.name] = tool
            self._publish(tools)
        logger.info("tool_registered", tool_name=tool.name, replaced=replaced)

    def get(self, name: str) -> Tool:
        """Return the current definition of a tool, enabled or not.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        tool = self._snapshot.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def list(self, permissions: Iterable[str] | None = None) -> ToolListing:
        """List tools in registration order, optionally filtered by a permission set."""
        return ToolListing(self._snapshot, permissions)

    def set_enabled(self, name: str, enabled: bool) -> Tool:
        """Enable or disable a tool.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        with self._write_lock:
            current = self._snapshot.get(name)
            if current is None:
                raise ToolNotFoundError(name)
            updated = current.model_copy(update={"enabled": enabled})
            tools = dict(self._snapshot)
            tools[name] = updated
            self._publish(tools)
        logger.info("tool_enabled_changed", tool_name=name, enabled=enabled)
        return updated
