"""Permission-filtered view of the tool registry."""

import structlog

from toolgate.auth.models import ClientIdentity
from toolgate.registry.models import Tool, fields_to_json_schema
from toolgate.registry.service import ToolRegistry
from toolgate.validation.validator import SchemaValidator

from .schemas import ToolDescriptor

logger = structlog.get_logger("discovery")


class DiscoveryService:
    """Lists the tools a client may invoke.

    Uses the same ``ClientIdentity.can_use_tool`` predicate as dispatch, so a
    tool is listed exactly when invoking it would pass the permission check.
    """

    def __init__(self, registry: ToolRegistry, validator: SchemaValidator):
        self.registry = registry
        self.validator = validator

    def describe(self, tool: Tool) -> ToolDescriptor:
        return ToolDescriptor(
            name=tool.name,
            description=tool.description,
            input_schema=fields_to_json_schema(
                tool.input_fields,
                closed=self.validator.is_closed(tool),
            ),
            output_schema=fields_to_json_schema(tool.output_fields, closed=False),
        )

    def discover(self, client: ClientIdentity) -> list[ToolDescriptor]:
        """Enabled, permitted tools in registration order.

        Args:
            client: Authenticated caller.

        Returns:
            Descriptors for every tool the caller may invoke right now.
        """
        descriptors = [
            self.describe(tool)
            for tool in self.registry.list()
            if tool.enabled and client.can_use_tool(tool.name)
        ]
        logger.debug("tools_discovered", client_id=client.client_id, count=len(descriptors))
        return descriptors
