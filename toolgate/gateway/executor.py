"""Tool executors: the collaborators that actually run a tool."""

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import structlog

from toolgate.registry.models import Tool

from .exceptions import ExecutorError

logger = structlog.get_logger("gateway")

ToolHandler = Callable[..., Any]


def remaining_seconds(deadline: float) -> float:
    """Seconds left until a ``time.monotonic()`` deadline."""
    return max(0.0, deadline - time.monotonic())


class ToolExecutor(ABC):
    """Runs a tool with already-validated arguments."""

    @abstractmethod
    async def execute(
        self,
        tool: Tool,
        arguments: dict[str, Any],
        deadline: float,
        request_id: str | None = None,
        client_id: str | None = None,
    ) -> Any:
        """Execute ``tool`` and return its output.

        Args:
            tool: Tool definition from the registry snapshot.
            arguments: Validated input.
            deadline: Absolute ``time.monotonic()`` deadline.
            request_id: Correlation ID to propagate.
            client_id: Caller, for backends that audit on their side.

        Raises:
            ExecutorError: If the tool fails.
            ExecutionTimeoutError: If the tool cannot finish before the deadline.
        """


class LocalToolExecutor(ToolExecutor):
    """Runs tools implemented as in-process Python callables.

    Handlers receive the validated arguments as keyword arguments. Plain
    functions run in a worker thread so they cannot block the event loop.
    """

    def __init__(self, handlers: dict[str, ToolHandler] | None = None):
        self._handlers: dict[str, ToolHandler] = dict(handlers or {})

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._handlers

    def register(self, tool_name: str, handler: ToolHandler) -> None:
        self._handlers[tool_name] = handler

    def handler(self, tool_name: str) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of ``register``."""

        def decorator(func: ToolHandler) -> ToolHandler:
            self.register(tool_name, func)
            return func

        return decorator

    async def execute(
        self,
        tool: Tool,
        arguments: dict[str, Any],
        deadline: float,
        request_id: str | None = None,
        client_id: str | None = None,
    ) -> Any:
        func = self._handlers.get(tool.name)
        if func is None:
            raise ExecutorError(tool.name, f"No implementation registered for tool '{tool.name}'")

        try:
            if inspect.iscoroutinefunction(func):
                return await func(**arguments)
            return await asyncio.to_thread(func, **arguments)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "local_tool_failed",
                tool_name=tool.name,
                request_id=request_id,
                error=str(e),
            )
            raise ExecutorError(tool.name, f"Tool '{tool.name}' failed: {e}") from e


class RoutingToolExecutor(ToolExecutor):
    """Sends tools with a ``backend_url`` to the remote executor, the rest to the local one."""

    def __init__(self, local: ToolExecutor, remote: ToolExecutor | None = None):
        self.local = local
        self.remote = remote

    async def execute(
        self,
        tool: Tool,
        arguments: dict[str, Any],
        deadline: float,
        request_id: str | None = None,
        client_id: str | None = None,
    ) -> Any:
        if tool.backend_url and self.remote is not None:
            executor = self.remote
        else:
            executor = self.local
        return await executor.execute(
            tool,
            arguments,
            deadline,
            request_id=request_id,
            client_id=client_id,
        )
