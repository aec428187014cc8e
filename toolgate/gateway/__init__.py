"""Gateway module - tool invocation dispatch and execution."""

from .schemas import (
    InvocationRequest,
    InvocationResult,
    InvokeToolRequest,
    ErrorDetail,
    ExecutionMetadata,
    MCPRequest,
    MCPResponse,
    MCPErrorDetail,
    MCPToolCallParams,
)
from .exceptions import (
    GatewayError,
    ExecutorError,
    ExecutionTimeoutError,
    BackendUnavailableError,
    BackendError,
)
from .executor import ToolExecutor, LocalToolExecutor, RoutingToolExecutor
from .proxy import HttpToolExecutor
from .service import Dispatcher, Gateway, build_gateway


__all__ = [
    # Schemas
    "InvocationRequest",
    "InvocationResult",
    "InvokeToolRequest",
    "ErrorDetail",
    "ExecutionMetadata",
    "MCPRequest",
    "MCPResponse",
    "MCPErrorDetail",
    "MCPToolCallParams",
    # Exceptions
    "GatewayError",
    "ExecutorError",
    "ExecutionTimeoutError",
    "BackendUnavailableError",
    "BackendError",
    # Executors
    "ToolExecutor",
    "LocalToolExecutor",
    "RoutingToolExecutor",
    "HttpToolExecutor",
    # Service
    "Dispatcher",
    "Gateway",
    "build_gateway",
]
