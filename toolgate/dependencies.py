"""Global dependencies for the application."""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from toolgate.gateway.service import Gateway


async def get_gateway(request: Request) -> "Gateway":
    """Dependency to get the gateway built at startup.

    The gateway (registry, limiter, auth gate, dispatcher and the shared HTTP
    client behind its executor) is created once in the ``main.py`` lifespan
    and shared by every request.
    """
    return request.app.state.gateway
