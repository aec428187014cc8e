"""Unit tests for the tool registry module."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from toolgate.registry.config import ToolRegistryConfig, load_tool_registry
from toolgate.registry.exceptions import DuplicateToolError, ToolNotFoundError
from toolgate.registry.models import FieldSpec, FieldType, Tool, fields_to_json_schema
from toolgate.registry.service import ToolRegistry

from conftest import REPO_ROOT, make_check_order_tool


def tool(name: str, **kwargs) -> Tool:
    return Tool(name=name, description=f"{name} tool", **kwargs)


class TestToolModel:
    """Tests for the Tool and FieldSpec models."""

    def test_tool_repr(self):
        assert "check_order" in repr(make_check_order_tool())

    def test_cost_must_be_positive(self):
        with pytest.raises(ValidationError):
            tool("t", cost=0)

    def test_tool_is_immutable(self):
        t = tool("t")
        with pytest.raises(ValidationError):
            t.enabled = False

    def test_duplicate_field_names_rejected(self):
        with pytest.raises(ValidationError):
            tool("t", input_fields=[FieldSpec(name="a"), FieldSpec(name="a")])

    def test_invalid_bounds_rejected(self):
        with pytest.raises(ValidationError):
            FieldSpec(name="n", type=FieldType.integer, minimum=5, maximum=1)
        with pytest.raises(ValidationError):
            FieldSpec(name="s", pattern="(unclosed")

    def test_json_schema_projection(self):
        fields = [
            FieldSpec(name="order_id", required=True, min_length=1, description="Order"),
            FieldSpec(name="tags", type=FieldType.array, max_length=3),
            FieldSpec(name="limit", type=FieldType.integer, minimum=1, default=10),
        ]

        schema = fields_to_json_schema(fields, closed=True)

        assert schema["required"] == ["order_id"]
        assert schema["additionalProperties"] is False
        assert schema["properties"]["order_id"] == {
            "type": "string",
            "description": "Order",
            "minLength": 1,
        }
        assert schema["properties"]["tags"]["maxItems"] == 3
        assert schema["properties"]["limit"]["default"] == 10
        assert list(schema["properties"]) == ["order_id", "tags", "limit"]


class TestToolRegistry:
    """Tests for the copy-on-write registry."""

    def test_register_and_get(self):
        registry = ToolRegistry()
        registry.register(tool("a"))

        assert registry.get("a").name == "a"
        assert "a" in registry
        assert len(registry) == 1

    def test_get_unknown_raises(self):
        registry = ToolRegistry()

        with pytest.raises(ToolNotFoundError) as exc_info:
            registry.get("missing")
        assert exc_info.value.status_code == 404

    def test_duplicate_rejected_by_default(self):
        registry = ToolRegistry()
        registry.register(tool("a"))

        with pytest.raises(DuplicateToolError):
            registry.register(tool("a", cost=2))
        assert registry.get("a").cost == 1

    def test_replace_keeps_position(self):
        registry = ToolRegistry(allow_replace=True)
        for name in ("a", "b", "c"):
            registry.register(tool(name))

        registry.register(tool("a", cost=7))

        assert registry.list().names() == ["a", "b", "c"]
        assert registry.get("a").cost == 7

    def test_list_in_registration_order(self):
        registry = ToolRegistry()
        for name in ("zeta", "alpha", "mid"):
            registry.register(tool(name))

        assert registry.list().names() == ["zeta", "alpha", "mid"]

    def test_list_filtered_by_permissions(self):
        registry = ToolRegistry()
        for name in ("a", "b", "c"):
            registry.register(tool(name))

        assert registry.list({"c", "a", "unknown"}).names() == ["a", "c"]
        assert registry.list({"*"}).names() == ["a", "b", "c"]
        assert registry.list(set()).names() == []

    def test_listing_is_restartable_and_stable(self):
        registry = ToolRegistry()
        registry.register(tool("a"))
        listing = registry.list()

        registry.register(tool("b"))

        assert listing.names() == ["a"]
        assert listing.names() == ["a"]
        assert registry.list().names() == ["a", "b"]

    def test_set_enabled_swaps_in_new_copy(self):
        registry = ToolRegistry()
        registry.register(tool("a"))
        before = registry.get("a")

        updated = registry.set_enabled("a", False)

        assert before.enabled is True
        assert updated.enabled is False
        assert registry.get("a").enabled is False

    def test_set_enabled_unknown_raises(self):
        with pytest.raises(ToolNotFoundError):
            ToolRegistry().set_enabled("missing", True)

    def test_readers_never_see_partial_writes(self):
        registry = ToolRegistry()
        registry.register(tool("base"))
        barrier = threading.Barrier(5)

        def writer(i):
            barrier.wait()
            for n in range(50):
                registry.register(tool(f"w{i}_{n}"))

        def reader(_):
            barrier.wait()
            for _ in range(200):
                names = registry.list().names()
                assert names[0] == "base"
                assert len(names) == len(set(names))

        with ThreadPoolExecutor(max_workers=5) as pool:
            futures = [pool.submit(writer, i) for i in range(4)] + [pool.submit(reader, 0)]
            for future in futures:
                future.result()

        assert len(registry) == 201


class TestRegistryConfig:
    """Tests for YAML config loading."""

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError):
            ToolRegistryConfig(tools=[tool("a"), tool("a")])

    def test_missing_file_gives_empty_config(self, tmp_path):
        config = load_tool_registry(str(tmp_path / "nope.yaml"))

        assert config.tools == []

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "tools.yaml"
        path.write_text(
            "tools:\n"
            "  - name: check_order\n"
            "    description: Look up an order\n"
            "    input_fields:\n"
            "      - name: order_id\n"
            "        type: string\n"
            "        required: true\n"
        )

        registry = ToolRegistry.from_config(str(path))

        assert registry.get("check_order").input_fields[0].required is True

    def test_bundled_config_loads(self):
        config = load_tool_registry(str(REPO_ROOT / "config" / "tools.yaml"))

        assert [t.name for t in config.tools][:1] == ["check_order"]
