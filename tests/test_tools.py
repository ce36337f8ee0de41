"""
Unit tests for the function registry.

Run with: pytest tests/test_tools.py -v
"""

import pytest

from fncall_portability.exceptions import (
    ToolArgumentError,
    ToolNotFoundError,
    ToolRegistrationError,
)
from fncall_portability.tools import (
    FunctionTool,
    PAYMENT_STATUS_TOOL,
    ToolRegistry,
    default_registry,
)


def _echo_tool(name="echo"):
    return FunctionTool(
        name=name,
        description="Echo the arguments back",
        input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
        output_schema={"type": "object"},
        handler=lambda args: {"echo": args.get("text")},
    )


class TestDiscovery:
    """The registered function is discoverable before any backend call."""

    def test_payment_status_name_and_description(self, registry):
        assert registry.names() == ["paymentStatus"]
        tool = registry.get("paymentStatus")
        assert tool.name == "paymentStatus"
        assert tool.description == "Get the status of a payment transaction"

    def test_input_schema_declares_transaction_id(self):
        schema = PAYMENT_STATUS_TOOL.input_schema
        assert schema["properties"]["id"]["type"] == "string"
        assert schema["required"] == ["id"]

    def test_output_schema_declares_status_name(self):
        assert PAYMENT_STATUS_TOOL.output_schema["properties"]["name"]["type"] == "string"

    def test_contains_and_len(self, registry):
        assert "paymentStatus" in registry
        assert "unknown" not in registry
        assert len(registry) == 1

    def test_get_unknown_raises(self, registry):
        with pytest.raises(ToolNotFoundError) as exc_info:
            registry.get("refund")
        assert exc_info.value.name == "refund"


class TestRegistration:
    """Tests for register() and select()."""

    def test_duplicate_name_rejected(self, registry):
        with pytest.raises(ToolRegistrationError):
            registry.register(PAYMENT_STATUS_TOOL)

    def test_register_additional_tool(self, registry):
        registry.register(_echo_tool())
        assert registry.names() == ["paymentStatus", "echo"]

    def test_select_subset(self):
        registry = ToolRegistry([PAYMENT_STATUS_TOOL, _echo_tool()])
        selected = registry.select(["echo"])
        assert selected.names() == ["echo"]
        # The source registry is untouched
        assert len(registry) == 2

    def test_select_unknown_name_raises(self):
        with pytest.raises(ToolNotFoundError):
            default_registry(["paymentStatus", "refund"])

    def test_empty_registry_is_falsy(self):
        assert not ToolRegistry()


class TestInvoke:
    """Tests for invoke() and dispatch()."""

    @pytest.mark.parametrize("arguments,expected", [
        ('{"id": "001"}', {"name": "pending"}),
        ({"id": "002"}, {"name": "approved"}),
        ('{"id": "003"}', {"name": "rejected"}),
    ])
    def test_seeded_ids(self, registry, arguments, expected):
        assert registry.invoke("paymentStatus", arguments) == expected

    def test_unknown_id_returns_not_found(self, registry):
        result = registry.invoke("paymentStatus", {"id": "999"})
        assert result == {"id": "999", "error": "not_found"}

    def test_invalid_json_raises(self, registry):
        with pytest.raises(ToolArgumentError):
            registry.invoke("paymentStatus", '{"id": ')

    def test_missing_id_raises(self, registry):
        with pytest.raises(ToolArgumentError):
            registry.invoke("paymentStatus", "{}")

    def test_non_object_arguments_raise(self, registry):
        with pytest.raises(ToolArgumentError):
            registry.invoke("paymentStatus", '["001"]')

    def test_dispatch_returns_error_instead_of_raising(self, registry):
        result = registry.dispatch("paymentStatus", "not json")
        assert "error" in result
        assert "Invalid JSON" in result["error"]

    def test_dispatch_unknown_function(self, registry):
        assert registry.dispatch("refund", {}) == {"error": "Unknown function: refund"}


class TestProviderFormats:
    """Tests for the vendor-specific declarations."""

    def test_openai_format(self, registry):
        [tool] = registry.openai_tools()
        assert tool["type"] == "function"
        assert tool["function"]["name"] == "paymentStatus"
        assert tool["function"]["description"] == "Get the status of a payment transaction"
        assert tool["function"]["parameters"] == PAYMENT_STATUS_TOOL.input_schema

    def test_anthropic_format(self, registry):
        [tool] = registry.anthropic_tools()
        assert tool == {
            "name": "paymentStatus",
            "description": "Get the status of a payment transaction",
            "input_schema": PAYMENT_STATUS_TOOL.input_schema,
        }

    def test_vertex_format_uppercases_types(self, registry):
        [declaration] = registry.vertex_declarations()
        parameters = declaration["parameters"]
        assert declaration["name"] == "paymentStatus"
        assert parameters["type"] == "OBJECT"
        assert parameters["properties"]["id"]["type"] == "STRING"
        assert parameters["required"] == ["id"]
        assert "additionalProperties" not in parameters

    def test_vertex_conversion_leaves_source_schema_untouched(self, registry):
        registry.vertex_declarations()
        assert PAYMENT_STATUS_TOOL.input_schema["type"] == "object"
