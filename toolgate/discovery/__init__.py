"""Discovery module - what a client may call."""

from .schemas import ToolDescriptor, ToolListResponse
from .service import DiscoveryService

__all__ = [
    "ToolDescriptor",
    "ToolListResponse",
    "DiscoveryService",
]
