"""FastAPI dependencies for authentication."""

from typing import Annotated

from fastapi import Depends, Header, Request

from toolgate.dependencies import get_gateway
from toolgate.gateway.service import Gateway

from .exceptions import AuthorizationError
from .models import ClientIdentity


async def get_credential_from_header(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the bearer credential from the Authorization header.

    A missing or malformed header yields None; the auth gate then rejects it
    the same way as any other bad credential.

    Args:
        authorization: Authorization header value (format: 'Bearer <credential>').

    Returns:
        Credential string, or None.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def get_request_source(request: Request) -> str:
    """Caller address used to key the auth-failure budget."""
    return request.client.host if request.client else "unknown"


async def get_current_client(
    request: Request,
    credential: Annotated[str | None, Depends(get_credential_from_header)],
    gateway: Annotated[Gateway, Depends(get_gateway)],
) -> ClientIdentity:
    """Authenticate the caller through the gateway's auth gate.

    Raises:
        UnauthorizedError: If the credential is invalid.
        RateLimitExceededError: If the caller's source is throttled.
    """
    return await gateway.auth_gate.authenticate(credential, source=get_request_source(request))


def require_admin(client: ClientIdentity) -> ClientIdentity:
    """Verify client has admin role.

    Args:
        client: Authenticated client to check.

    Returns:
        The client if they are an admin.

    Raises:
        AuthorizationError: If client is not an admin.
    """
    if not client.is_admin:
        raise AuthorizationError(
            code="admin_required",
            message="Admin role required for this operation",
        )
    return client


async def get_admin_client(
    client: Annotated[ClientIdentity, Depends(get_current_client)],
) -> ClientIdentity:
    return require_admin(client)
