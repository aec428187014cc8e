"""FastAPI router for tool invocation."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from toolgate.auth.dependencies import get_credential_from_header, get_request_source
from toolgate.auth.exceptions import ErrorKind
from toolgate.dependencies import get_gateway
from toolgate.ratelimit.exceptions import retry_after_header

from .schemas import InvocationRequest, InvocationResult, InvokeToolRequest, generate_request_id
from .service import Gateway


router = APIRouter(prefix="/mcp", tags=["gateway"])


def result_content(result: InvocationResult) -> dict[str, Any]:
    """Serialize a result with exactly one of ``output`` or ``error``."""
    content: dict[str, Any] = {
        "success": result.success,
        "metadata": result.metadata.model_dump(mode="json"),
    }
    if result.error is None:
        content["output"] = result.output
    else:
        content["error"] = result.error.model_dump(mode="json", exclude_none=True)
    return content


def result_response(result: InvocationResult) -> JSONResponse:
    headers = {"X-Request-ID": result.metadata.request_id}
    error = result.error
    if error is not None and error.kind == ErrorKind.rate_limited and error.retry_after is not None:
        headers["Retry-After"] = retry_after_header(error.retry_after)
    return JSONResponse(
        status_code=result.status_code,
        content=result_content(result),
        headers=headers,
    )


@router.post("/invoke", response_model=InvocationResult)
async def invoke_tool_endpoint(
    http_request: Request,
    body: InvokeToolRequest,
    credential: Annotated[str | None, Depends(get_credential_from_header)],
    gateway: Annotated[Gateway, Depends(get_gateway)],
    x_request_id: Annotated[str | None, Header(max_length=128)] = None,
) -> JSONResponse:
    """Invoke a tool.

    Authentication happens inside the dispatcher so that every outcome,
    including a bad credential, produces the same result envelope and an
    audit record.

    Args:
        body: Tool name, arguments and optional deadline.
        credential: Bearer credential, if any.
        x_request_id: Optional correlation ID (generated if not provided).

    Returns:
        JSON result envelope with the status mapped from the error kind.
    """
    request = InvocationRequest(
        tool_name=body.tool_name,
        arguments=body.arguments,
        credential=credential,
        request_id=x_request_id or body.request_id or generate_request_id(),
        timeout=body.timeout,
        source=get_request_source(http_request),
    )
    result = await gateway.invoke(request)
    return result_response(result)
