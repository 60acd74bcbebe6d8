"""Tests for the tool catalog."""

import pytest

from kube_sherlock.errors import ToolNotFoundError
from kube_sherlock.tools.catalog import (
    DEFAULT_LOG_LINES,
    ParameterSpec,
    ToolCatalog,
    ToolDescriptor,
    build_default_catalog,
)


@pytest.fixture
def catalog():
    """Create the default catalog."""
    return build_default_catalog()


class TestDefaultCatalog:
    """Test cases for the built-in tools."""

    def test_five_tools(self, catalog):
        """Test the default catalog lists exactly the five cluster tools."""
        assert len(catalog) == 5
        assert set(catalog.names()) == {
            "get_pod_health",
            "get_deployment_status",
            "get_service_endpoints",
            "get_recent_events",
            "get_pod_logs",
        }

    def test_list_is_stable(self, catalog):
        """Test repeated listings return the same descriptors."""
        assert catalog.list_tools() == catalog.list_tools()

    def test_only_pod_logs_has_required_params(self, catalog):
        """Test only get_pod_logs has a required parameter."""
        for tool in catalog.list_tools():
            if tool.name == "get_pod_logs":
                assert tool.required == ("podName",)
            else:
                assert tool.required == ()

    def test_pod_logs_lines_is_number(self, catalog):
        """Test the lines parameter is numeric with a default."""
        lines = catalog.describe("get_pod_logs").parameter("lines")

        assert lines.type == "number"
        assert lines.default == DEFAULT_LOG_LINES

    def test_namespace_defaults(self, catalog):
        """Test every tool defaults the namespace."""
        for tool in catalog.list_tools():
            assert tool.parameter("namespace").default == "default"

    def test_describe_unknown(self, catalog):
        """Test describing an unknown tool raises."""
        with pytest.raises(ToolNotFoundError, match="Unknown tool: delete_everything"):
            catalog.describe("delete_everything")

    def test_contains(self, catalog):
        """Test membership checks by name."""
        assert "get_pod_health" in catalog
        assert "nope" not in catalog

    def test_input_schema(self, catalog):
        """Test the serialized descriptor shape."""
        data = catalog.describe("get_pod_logs").to_dict()

        assert data["name"] == "get_pod_logs"
        assert data["inputSchema"]["type"] == "object"
        assert data["inputSchema"]["required"] == ["podName"]
        assert data["inputSchema"]["properties"]["lines"]["type"] == "number"
        assert "description" in data["inputSchema"]["properties"]["podName"]


class TestCatalogConstruction:
    """Test cases for building catalogs."""

    def test_duplicate_tool_name(self):
        """Test duplicate tool names are rejected."""
        tool = ToolDescriptor("a", "first")

        with pytest.raises(ValueError, match="Duplicate tool name"):
            ToolCatalog([tool, ToolDescriptor("a", "second")])

    def test_duplicate_parameter(self):
        """Test a tool may not declare a parameter twice."""
        with pytest.raises(ValueError):
            ToolDescriptor("a", "desc", (
                ParameterSpec("x", "string", "one"),
                ParameterSpec("x", "string", "two"),
            ))

    def test_unsupported_parameter_type(self):
        """Test parameter types are limited to string and number."""
        with pytest.raises(ValueError, match="unsupported type"):
            ParameterSpec("flag", "boolean", "a flag")

    def test_catalog_is_read_only(self):
        """Test the backing mapping cannot be mutated."""
        catalog = ToolCatalog([ToolDescriptor("a", "desc")])

        with pytest.raises(TypeError):
            catalog._tools["b"] = ToolDescriptor("b", "desc")
