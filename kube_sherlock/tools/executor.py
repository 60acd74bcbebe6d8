"""Tool execution: argument validation, handler dispatch and result envelopes."""

import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence
from dataclasses import dataclass, field

from kube_sherlock.errors import (
    ClusterAPIError,
    KubeSherlockError,
    ToolNotFoundError,
    ToolValidationError,
)
from kube_sherlock.sources.kubernetes import ResourceGatherer
from kube_sherlock.tools.catalog import (
    DEFAULT_LOG_LINES,
    DEFAULT_NAMESPACE,
    ParameterSpec,
    ToolCatalog,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)

CLUSTER_UNAVAILABLE_MESSAGE = "Kubernetes service not available. Please ensure cluster connectivity."

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class ToolInvocation:
    """A tool call requested by the model."""
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentBlock:
    text: str
    kind: str = "text"

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "text": self.text}


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool execution. Errors are content, not exceptions."""
    content: Sequence[ContentBlock]
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolOutcome":
        return cls(content=(ContentBlock(text),))

    @classmethod
    def error(cls, text: str) -> "ToolOutcome":
        return cls(content=(ContentBlock(text),), is_error=True)

    def joined_text(self) -> str:
        return "".join(block.text + "\n" for block in self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": [block.to_dict() for block in self.content], "isError": self.is_error}


def _to_int(spec: ParameterSpec, number: Any) -> int:
    if isinstance(number, float):
        if not math.isfinite(number):
            raise ToolValidationError(f"Parameter '{spec.name}' must be a finite number")
        number = int(number)
    if not INT64_MIN <= number <= INT64_MAX:
        raise ToolValidationError(f"Parameter '{spec.name}' is out of range")
    return number


def coerce_argument(spec: ParameterSpec, value: Any) -> Any:
    """Coerce a loosely typed model argument to the parameter's declared type.

    ``number`` parameters accept ints, floats (JSON numbers often arrive as
    ``2.0``) and numeric strings, and always yield an ``int`` that fits in
    64 bits. ``string`` parameters must already be strings.
    """
    if spec.type == "number":
        if isinstance(value, bool):
            raise ToolValidationError(f"Parameter '{spec.name}' must be a number, got a boolean")
        if isinstance(value, (int, float)):
            return _to_int(spec, value)
        if isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise ToolValidationError(f"Parameter '{spec.name}' must be a number, got '{value}'") from None
            return _to_int(spec, number)
        raise ToolValidationError(f"Parameter '{spec.name}' must be a number")

    if isinstance(value, str):
        return value
    raise ToolValidationError(f"Parameter '{spec.name}' must be a string")


def validate_arguments(descriptor: ToolDescriptor, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Check required parameters, coerce values and fill in defaults.

    Returns:
        A complete argument mapping with one entry per declared parameter
    """
    arguments = arguments or {}
    resolved: Dict[str, Any] = {}
    for spec in descriptor.parameters:
        value = arguments.get(spec.name)
        if value is None or value == "":
            if spec.required:
                raise ToolValidationError(f"Missing required parameter '{spec.name}' for tool {descriptor.name}")
            resolved[spec.name] = spec.default
            continue
        resolved[spec.name] = coerce_argument(spec, value)

    unknown = set(arguments) - set(resolved)
    if unknown:
        logger.debug(f"Ignoring undeclared arguments for {descriptor.name}: {sorted(unknown)}")
    return resolved


class ToolHandler(ABC):
    """Single-operation capability bound to one tool name.

    The executor's registry maps each catalog tool name to one handler and
    passes it fully validated arguments.
    """

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> ToolOutcome:
        ...


class GatherToolHandler(ToolHandler):
    """Lists one or more resource kinds and renders them as indented JSON.

    Args:
        gatherer: Resource gatherer, or None when no cluster is configured
        kinds: Kinds to gather; the first one is the primary kind
        subject: Human readable name of the operation, used in headers and errors
        filter_param: Optional argument whose value narrows the listing
        filter_template: Selector built from ``filter_param``
        filter_is_label: Whether the selector is a label selector (else a field selector)
    """

    def __init__(self,
                 gatherer: Optional[ResourceGatherer],
                 kinds: Sequence[str],
                 subject: str,
                 filter_param: str = "",
                 filter_template: str = "{}",
                 filter_is_label: bool = False):
        self.gatherer = gatherer
        self.kinds = tuple(kinds)
        self.subject = subject
        self.filter_param = filter_param
        self.filter_template = filter_template
        self.filter_is_label = filter_is_label

    async def execute(self, arguments: Dict[str, Any]) -> ToolOutcome:
        if self.gatherer is None:
            return ToolOutcome.error(CLUSTER_UNAVAILABLE_MESSAGE)

        namespace = arguments.get("namespace") or DEFAULT_NAMESPACE
        selector = ""
        if self.filter_param and arguments.get(self.filter_param):
            selector = self.filter_template.format(arguments[self.filter_param])

        result = await self.gatherer.gather(
            self.kinds,
            namespace=namespace,
            label_selector=selector if self.filter_is_label else "",
            field_selector="" if self.filter_is_label else selector,
        )

        errors = [result.error_for(kind) for kind in self.kinds]
        if all(errors):
            return ToolOutcome.error(
                f"Error gathering {self.subject} in namespace '{namespace}': {'; '.join(errors)}"
            )

        if len(self.kinds) == 1:
            payload = result.resources[self.kinds[0]]
        else:
            payload = result.resources
        data = json.dumps(payload, indent=2, default=str)
        header = f"{self.subject[0].upper()}{self.subject[1:]} for namespace '{namespace}':"
        return ToolOutcome.text(f"{header}\n\n{data}")


class PodLogsHandler(ToolHandler):
    """Retrieves the tail of a pod's log."""

    def __init__(self, gatherer: Optional[ResourceGatherer]):
        self.gatherer = gatherer

    async def execute(self, arguments: Dict[str, Any]) -> ToolOutcome:
        if self.gatherer is None:
            return ToolOutcome.error(CLUSTER_UNAVAILABLE_MESSAGE)

        namespace = arguments.get("namespace") or DEFAULT_NAMESPACE
        pod_name = arguments["podName"]
        lines = arguments.get("lines")
        if lines is None:
            lines = DEFAULT_LOG_LINES

        try:
            logs = await self.gatherer.get_logs(
                namespace, pod_name, arguments.get("containerName") or "", lines
            )
        except ClusterAPIError as e:
            return ToolOutcome.error(
                f"Error getting logs for pod '{pod_name}' in namespace '{namespace}': {e}"
            )

        scope = f"last {lines} lines" if lines > 0 else "all lines"
        return ToolOutcome.text(
            f"Logs for pod '{pod_name}' in namespace '{namespace}' ({scope}):\n\n{logs}"
        )


def build_default_handlers(gatherer: Optional[ResourceGatherer]) -> Dict[str, ToolHandler]:
    """Handlers for every tool in the default catalog."""
    return {
        "get_pod_health": GatherToolHandler(
            gatherer, ["pods"], "pod health information",
            filter_param="labelSelector", filter_is_label=True,
        ),
        "get_deployment_status": GatherToolHandler(
            gatherer, ["deployments"], "deployment status",
            filter_param="deploymentName", filter_template="metadata.name={}",
        ),
        "get_service_endpoints": GatherToolHandler(
            gatherer, ["services", "endpoints"], "service endpoints",
            filter_param="serviceName", filter_template="metadata.name={}",
        ),
        "get_recent_events": GatherToolHandler(
            gatherer, ["events"], "recent events",
            filter_param="resourceName", filter_template="involvedObject.name={}",
        ),
        "get_pod_logs": PodLogsHandler(gatherer),
    }


class ToolExecutor:
    """Runs catalog tools by name and wraps every result in a ToolOutcome."""

    def __init__(self, catalog: ToolCatalog, handlers: Mapping[str, ToolHandler]):
        self.catalog = catalog
        self.handlers = dict(handlers)

    async def execute(self, invocation: ToolInvocation) -> ToolOutcome:
        """Execute one tool invocation.

        Unknown tools, invalid arguments and cluster failures all come back
        as error outcomes; nothing but cancellation escapes this method.
        """
        try:
            descriptor = self.catalog.describe(invocation.tool_name)
        except ToolNotFoundError as e:
            logger.warning(str(e))
            return ToolOutcome.error(str(e))

        try:
            arguments = validate_arguments(descriptor, invocation.arguments)
        except ToolValidationError as e:
            logger.warning(f"Invalid arguments for {descriptor.name}: {e}")
            return ToolOutcome.error(str(e))

        handler = self.handlers.get(descriptor.name)
        if handler is None:
            return ToolOutcome.error(f"Tool {descriptor.name} is registered but not implemented")

        logger.info(f"Executing tool {descriptor.name} with arguments {arguments}")
        try:
            return await handler.execute(arguments)
        except KubeSherlockError as e:
            logger.error(f"Tool {descriptor.name} failed: {e}")
            return ToolOutcome.error(f"Error executing {descriptor.name}: {e}")
        except Exception as e:
            logger.exception(f"Tool {descriptor.name} raised an unexpected error")
            return ToolOutcome.error(f"Error executing {descriptor.name}: {e.__class__.__name__}: {e}")
