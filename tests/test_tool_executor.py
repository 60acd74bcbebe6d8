"""Tests for tool argument validation and execution."""

import json

import pytest
from unittest.mock import AsyncMock, Mock

from kube_sherlock.errors import ClusterAPIError, ToolValidationError
from kube_sherlock.tools.catalog import ParameterSpec, build_default_catalog
from kube_sherlock.tools.executor import (
    CLUSTER_UNAVAILABLE_MESSAGE,
    ToolExecutor,
    ToolHandler,
    ToolInvocation,
    ToolOutcome,
    build_default_handlers,
    coerce_argument,
    validate_arguments,
)


@pytest.fixture
def catalog():
    return build_default_catalog()


@pytest.fixture
def executor(catalog, mock_gatherer):
    """Create an executor backed by a mock gatherer."""
    return ToolExecutor(catalog, build_default_handlers(mock_gatherer))


class TestCoercion:
    """Test cases for argument coercion."""

    @pytest.fixture
    def number(self):
        return ParameterSpec("lines", "number", "line count")

    def test_int(self, number):
        assert coerce_argument(number, 50) == 50

    def test_float(self, number):
        """Test JSON floats such as 2.0 become ints."""
        assert coerce_argument(number, 2.0) == 2
        assert isinstance(coerce_argument(number, 2.0), int)

    def test_numeric_string(self, number):
        assert coerce_argument(number, " 25 ") == 25

    def test_non_numeric_string(self, number):
        with pytest.raises(ToolValidationError, match="must be a number"):
            coerce_argument(number, "lots")

    def test_boolean_rejected(self, number):
        """Test booleans are not treated as numbers."""
        with pytest.raises(ToolValidationError):
            coerce_argument(number, True)

    def test_non_finite_rejected(self, number):
        with pytest.raises(ToolValidationError, match="finite"):
            coerce_argument(number, float("inf"))

    @pytest.mark.parametrize("value", ["inf", "-Infinity", "1e999", "nan"])
    def test_non_finite_string_rejected(self, number, value):
        """Test numeric strings that parse to infinity or NaN are rejected."""
        with pytest.raises(ToolValidationError, match="finite"):
            coerce_argument(number, value)

    @pytest.mark.parametrize("value", [2 ** 63, -(2 ** 63) - 1, 1e30, "1e30"])
    def test_out_of_range_rejected(self, number, value):
        """Test values beyond 64 bits are rejected."""
        with pytest.raises(ToolValidationError, match="out of range"):
            coerce_argument(number, value)

    def test_int64_bounds_accepted(self, number):
        assert coerce_argument(number, 2 ** 63 - 1) == 2 ** 63 - 1
        assert coerce_argument(number, -(2 ** 63)) == -(2 ** 63)

    def test_string_parameter_rejects_number(self):
        spec = ParameterSpec("namespace", "string", "ns")

        with pytest.raises(ToolValidationError, match="must be a string"):
            coerce_argument(spec, 3)


class TestValidateArguments:
    """Test cases for validate_arguments."""

    def test_defaults_filled(self, catalog):
        """Test omitted optional parameters take their defaults."""
        resolved = validate_arguments(catalog.describe("get_pod_logs"), {"podName": "api-0"})

        assert resolved == {"namespace": "default", "podName": "api-0", "containerName": "", "lines": 100}

    def test_missing_required(self, catalog):
        """Test a missing required parameter names the parameter."""
        with pytest.raises(ToolValidationError, match="podName"):
            validate_arguments(catalog.describe("get_pod_logs"), {"namespace": "prod"})

    def test_empty_required(self, catalog):
        """Test an empty string does not satisfy a required parameter."""
        with pytest.raises(ToolValidationError, match="podName"):
            validate_arguments(catalog.describe("get_pod_logs"), {"podName": ""})

    def test_none_arguments(self, catalog):
        """Test a null arguments object is treated as empty."""
        resolved = validate_arguments(catalog.describe("get_pod_health"), None)

        assert resolved["namespace"] == "default"

    def test_unknown_keys_dropped(self, catalog):
        resolved = validate_arguments(catalog.describe("get_recent_events"), {"verbose": "yes"})

        assert "verbose" not in resolved


class TestToolExecutor:
    """Test cases for ToolExecutor.execute."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor, mock_gatherer):
        """Test an unknown tool yields an error outcome without touching the cluster."""
        outcome = await executor.execute(ToolInvocation("delete_namespace", {}))

        assert outcome.is_error
        assert "delete_namespace" in outcome.joined_text()
        mock_gatherer.gather.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_pod_name(self, executor, mock_gatherer):
        """Test get_pod_logs without podName is rejected before the cluster call."""
        outcome = await executor.execute(ToolInvocation("get_pod_logs", {"namespace": "prod"}))

        assert outcome.is_error
        assert "podName" in outcome.joined_text()
        mock_gatherer.get_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_pod_health(self, executor, mock_gatherer, gather_result):
        """Test pod health gathers pods with the label selector."""
        mock_gatherer.gather.return_value = gather_result(
            {"pods": {"items": [{"metadata": {"name": "web-1"}}]}}, namespace="prod"
        )

        outcome = await executor.execute(
            ToolInvocation("get_pod_health", {"namespace": "prod", "labelSelector": "app=web"})
        )

        assert not outcome.is_error
        text = outcome.joined_text()
        assert text.startswith("Pod health information for namespace 'prod':\n\n")
        assert json.loads(text.split("\n\n", 1)[1]) == {"items": [{"metadata": {"name": "web-1"}}]}
        mock_gatherer.gather.assert_awaited_once_with(
            ("pods",), namespace="prod", label_selector="app=web", field_selector=""
        )

    @pytest.mark.asyncio
    async def test_deployment_name_filter(self, executor, mock_gatherer, gather_result):
        """Test a deployment name narrows the listing by field selector."""
        mock_gatherer.gather.return_value = gather_result({"deployments": {"items": []}})

        outcome = await executor.execute(
            ToolInvocation("get_deployment_status", {"deploymentName": "api"})
        )

        assert outcome.joined_text().startswith("Deployment status for namespace 'default':")
        mock_gatherer.gather.assert_awaited_once_with(
            ("deployments",), namespace="default", label_selector="", field_selector="metadata.name=api"
        )

    @pytest.mark.asyncio
    async def test_recent_events_filter(self, executor, mock_gatherer, gather_result):
        mock_gatherer.gather.return_value = gather_result({"events": {"items": []}})

        await executor.execute(ToolInvocation("get_recent_events", {"resourceName": "api-0"}))

        assert mock_gatherer.gather.call_args.kwargs["field_selector"] == "involvedObject.name=api-0"

    @pytest.mark.asyncio
    async def test_service_endpoints(self, executor, mock_gatherer, gather_result):
        """Test service endpoints include both services and endpoints."""
        mock_gatherer.gather.return_value = gather_result(
            {"services": {"items": []}, "endpoints_error": "(403) Forbidden"}
        )

        outcome = await executor.execute(ToolInvocation("get_service_endpoints", {}))

        assert not outcome.is_error
        assert '"endpoints_error": "(403) Forbidden"' in outcome.joined_text()

    @pytest.mark.asyncio
    async def test_gather_failure(self, executor, mock_gatherer, gather_result):
        """Test a failed listing becomes an error outcome naming the namespace."""
        mock_gatherer.gather.return_value = gather_result(
            {"pods_error": "(403) pods is forbidden"}, namespace="kube-system"
        )

        outcome = await executor.execute(ToolInvocation("get_pod_health", {"namespace": "kube-system"}))

        assert outcome.is_error
        assert outcome.joined_text() == (
            "Error gathering pod health information in namespace 'kube-system': (403) pods is forbidden\n"
        )

    @pytest.mark.asyncio
    async def test_pod_logs(self, executor, mock_gatherer):
        """Test float line counts are coerced and reported in the header."""
        mock_gatherer.get_logs.return_value = "started\nready\n"

        outcome = await executor.execute(
            ToolInvocation("get_pod_logs", {"podName": "api-0", "namespace": "prod", "lines": 2.0})
        )

        assert not outcome.is_error
        assert outcome.joined_text().startswith("Logs for pod 'api-0' in namespace 'prod' (last 2 lines):")
        mock_gatherer.get_logs.assert_awaited_once_with("prod", "api-0", "", 2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lines", ["inf", "-Infinity", "1e999"])
    async def test_pod_logs_infinite_lines(self, executor, mock_gatherer, lines):
        """Test an infinite line count is an error outcome, not an exception."""
        outcome = await executor.execute(ToolInvocation("get_pod_logs", {"podName": "p", "lines": lines}))

        assert outcome.is_error
        assert "lines" in outcome.joined_text()
        mock_gatherer.get_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_pod_logs_all_lines(self, executor, mock_gatherer):
        outcome = await executor.execute(ToolInvocation("get_pod_logs", {"podName": "api-0", "lines": 0}))

        assert "(all lines)" in outcome.joined_text()

    @pytest.mark.asyncio
    async def test_pod_logs_failure(self, executor, mock_gatherer):
        """Test a log fetch failure is wrapped with the pod name."""
        mock_gatherer.get_logs.side_effect = ClusterAPIError("failed to get pod logs: (404) Not Found", 404)

        outcome = await executor.execute(ToolInvocation("get_pod_logs", {"podName": "gone"}))

        assert outcome.is_error
        assert "Error getting logs for pod 'gone' in namespace 'default'" in outcome.joined_text()

    @pytest.mark.asyncio
    async def test_cluster_unavailable(self, catalog):
        """Test every tool reports an unavailable cluster."""
        executor = ToolExecutor(catalog, build_default_handlers(None))

        for name in catalog.names():
            outcome = await executor.execute(ToolInvocation(name, {"podName": "x"}))
            assert outcome.is_error
            assert outcome.joined_text() == CLUSTER_UNAVAILABLE_MESSAGE + "\n"

    @pytest.mark.asyncio
    async def test_missing_handler(self, catalog):
        """Test a catalog tool without a handler reports an error."""
        outcome = await ToolExecutor(catalog, {}).execute(ToolInvocation("get_pod_health", {}))

        assert outcome.is_error
        assert "not implemented" in outcome.joined_text()

    @pytest.mark.asyncio
    async def test_handler_crash(self, catalog):
        """Test unexpected handler exceptions become error outcomes."""
        handler = Mock(spec=ToolHandler)
        handler.execute = AsyncMock(side_effect=RuntimeError("boom"))
        executor = ToolExecutor(catalog, {"get_pod_health": handler})

        outcome = await executor.execute(ToolInvocation("get_pod_health", {}))

        assert outcome.is_error
        assert "boom" in outcome.joined_text()


class TestToolHandler:
    """Test cases for the handler interface."""

    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            ToolHandler()

    @pytest.mark.asyncio
    async def test_subclass(self):
        class StaticHandler(ToolHandler):
            async def execute(self, arguments):
                return ToolOutcome.text("static")

        outcome = await StaticHandler().execute({})

        assert outcome.joined_text() == "static\n"


class TestToolOutcome:
    """Test cases for the result envelope."""

    def test_joined_text(self):
        outcome = ToolOutcome.text("a")

        assert outcome.joined_text() == "a\n"
        assert outcome.to_dict() == {"content": [{"type": "text", "text": "a"}], "isError": False}

    def test_error(self):
        assert ToolOutcome.error("bad").is_error
