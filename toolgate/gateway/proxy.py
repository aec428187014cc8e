"""HTTP executor that forwards tool calls to backend tool servers."""

from typing import Any

import httpx

from toolgate.registry.models import Tool

from .executor import ToolExecutor, remaining_seconds
from .exceptions import BackendError, BackendUnavailableError, ExecutionTimeoutError
from .schemas import MCPRequest, MCPResponse, MCPToolCallParams, generate_request_id


async def forward_to_backend(
    client: httpx.AsyncClient,
    tool_name: str,
    backend_url: str,
    mcp_request: MCPRequest,
    timeout: float,
    shared_secret: str,
    request_id: str,
    client_id: str | None = None,
) -> MCPResponse:
    """Forward a JSON-RPC request to a backend server.

    Args:
        client: Shared HTTP client.
        tool_name: Tool being invoked, for error reporting.
        backend_url: URL of the backend server.
        mcp_request: The JSON-RPC request to forward.
        timeout: Request timeout in seconds.
        shared_secret: Value of the X-Gateway-Auth header.
        request_id: Trace ID.
        client_id: Optional caller ID for backend-side audit.

    Returns:
        MCPResponse from the backend server.

    Raises:
        ExecutionTimeoutError: If backend doesn't respond in time.
        BackendUnavailableError: If backend connection fails.
        BackendError: If backend returns an HTTP error or an invalid body.
    """
    headers = {
        "Content-Type": "application/json",
        "X-Request-ID": request_id,
        "X-Gateway-Auth": shared_secret,
    }
    if client_id:
        headers["X-Client-ID"] = client_id

    try:
        response = await client.post(
            backend_url,
            json=mcp_request.model_dump(),
            headers=headers,
            timeout=timeout,
        )
    except httpx.TimeoutException:
        raise ExecutionTimeoutError(tool_name=tool_name, timeout_seconds=timeout)
    except httpx.ConnectError as e:
        raise BackendUnavailableError(tool_name, backend_url, reason=str(e))
    except httpx.RequestError as e:
        raise BackendUnavailableError(tool_name, backend_url, reason=f"Request failed: {e}")

    if response.status_code >= 400:
        raise BackendError(
            tool_name,
            backend_url,
            status_code=response.status_code,
            detail=response.text[:200]  # Truncate for safety
        )

    try:
        return MCPResponse.model_validate(response.json())
    except ValueError as e:
        raise BackendError(tool_name, backend_url, status_code=response.status_code, detail=f"invalid response: {e}")


class HttpToolExecutor(ToolExecutor):
    """Invokes tools over JSON-RPC ``tools/call`` at each tool's ``backend_url``."""

    def __init__(self, client: httpx.AsyncClient, shared_secret: str):
        """Initialize the executor.

        Args:
            client: Shared HTTP client (connection pooling).
            shared_secret: Secret sent to backends in X-Gateway-Auth.
        """
        self.client = client
        self.shared_secret = shared_secret

    async def execute(
        self,
        tool: Tool,
        arguments: dict[str, Any],
        deadline: float,
        request_id: str | None = None,
        client_id: str | None = None,
    ) -> Any:
        if not tool.backend_url:
            raise BackendError(tool.name, "<none>", status_code=500, detail="Tool has no backend URL")
        if not self.shared_secret:
            raise BackendError(
                tool.name,
                tool.backend_url,
                status_code=500,
                detail="Gateway shared secret not configured",
            )

        request_id = request_id or generate_request_id()
        timeout = remaining_seconds(deadline)
        if timeout <= 0:
            raise ExecutionTimeoutError(tool_name=tool.name, timeout_seconds=0)

        mcp_request = MCPRequest(
            method="tools/call",
            params=MCPToolCallParams(name=tool.name, arguments=arguments),
            id=request_id,
        )
        response = await forward_to_backend(
            client=self.client,
            tool_name=tool.name,
            backend_url=tool.backend_url,
            mcp_request=mcp_request,
            timeout=timeout,
            shared_secret=self.shared_secret,
            request_id=request_id,
            client_id=client_id,
        )

        if response.error is not None:
            raise BackendError(
                tool.name,
                tool.backend_url,
                status_code=response.error.code,
                detail=response.error.message,
            )
        return response.result
