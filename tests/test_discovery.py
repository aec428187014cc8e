"""Unit tests for tool discovery."""

import pytest

from toolgate.auth.exceptions import ErrorKind
from toolgate.auth.models import ClientIdentity
from toolgate.gateway.schemas import InvocationRequest
from toolgate.validation.validator import SchemaValidator
from toolgate.discovery.service import DiscoveryService

from conftest import SUPPORT_KEY, make_check_order_tool


class TestDiscoveryService:
    """Tests for DiscoveryService."""

    def test_admin_sees_everything_in_registration_order(self, gateway):
        admin = ClientIdentity(client_id="ops-admin", allowed_tools={"*"})

        names = [d.name for d in gateway.discovery.discover(admin)]

        assert names == ["check_order", "refund_order", "slow_tool", "broken_tool"]

    def test_filtered_by_permissions(self, gateway):
        client = ClientIdentity(client_id="support-bot", allowed_tools={"broken_tool", "check_order"})

        names = [d.name for d in gateway.discovery.discover(client)]

        assert names == ["check_order", "broken_tool"]

    def test_disabled_tools_hidden(self, gateway):
        admin = ClientIdentity(client_id="ops-admin", allowed_tools={"*"})
        gateway.registry.set_enabled("slow_tool", False)

        names = [d.name for d in gateway.discovery.discover(admin)]

        assert "slow_tool" not in names

    def test_no_permissions_sees_nothing(self, gateway):
        assert gateway.discovery.discover(ClientIdentity(client_id="nobody")) == []

    def test_descriptor_schemas(self):
        service = DiscoveryService(registry=None, validator=SchemaValidator(closed_by_default=True))

        descriptor = service.describe(make_check_order_tool())

        assert descriptor.input_schema["required"] == ["order_id"]
        assert descriptor.input_schema["additionalProperties"] is False
        assert descriptor.output_schema["additionalProperties"] is True
        assert set(descriptor.output_schema["properties"]) == {"order_id", "status"}

    def test_open_input_schema_follows_tool(self):
        service = DiscoveryService(registry=None, validator=SchemaValidator(closed_by_default=True))

        descriptor = service.describe(make_check_order_tool(allow_unknown_fields=True))

        assert descriptor.input_schema["additionalProperties"] is True

    @pytest.mark.asyncio
    async def test_unlisted_tools_are_forbidden(self, gateway):
        client = await gateway.auth_gate.authenticate(SUPPORT_KEY)
        listed = {d.name for d in gateway.discovery.discover(client)}

        for tool in gateway.registry.list():
            if tool.name in listed:
                continue
            result = await gateway.invoke(
                InvocationRequest(tool_name=tool.name, arguments={}, credential=SUPPORT_KEY)
            )
            assert result.error.kind == ErrorKind.forbidden
