"""Static catalog of the cluster introspection tools advertised to the model."""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field

from kube_sherlock.errors import ToolNotFoundError

DEFAULT_NAMESPACE = "default"
DEFAULT_LOG_LINES = 100

PARAMETER_TYPES = ("string", "number")


@dataclass(frozen=True)
class ParameterSpec:
    """One named tool parameter."""
    name: str
    type: str
    description: str
    required: bool = False
    default: Any = None

    def __post_init__(self):
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Parameter '{self.name}' has unsupported type '{self.type}'")


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and parameter schema of one tool."""
    name: str
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()
    required: Tuple[str, ...] = field(init=False)

    def __post_init__(self):
        names = [p.name for p in self.parameters]
        if len(names) != len(set(names)):
            raise ValueError(f"Tool '{self.name}' declares a parameter twice")
        object.__setattr__(self, "required", tuple(p.name for p in self.parameters if p.required))

    def parameter(self, name: str) -> Optional[ParameterSpec]:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None

    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                p.name: {"type": p.type, "description": p.description}
                for p in self.parameters
            },
            "required": list(self.required),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ToolCatalog:
    """Read-only registry of tool descriptors keyed by name."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]):
        tools: Dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            tools[descriptor.name] = descriptor
        self._tools: Mapping[str, ToolDescriptor] = MappingProxyType(tools)

    def list_tools(self) -> List[ToolDescriptor]:
        """All descriptors; callers must not rely on the order."""
        return list(self._tools.values())

    def describe(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _namespace_param(description: str = "Kubernetes namespace to check (default: default)") -> ParameterSpec:
    return ParameterSpec("namespace", "string", description, default=DEFAULT_NAMESPACE)


DEFAULT_TOOLS: Tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="get_pod_health",
        description="Get the health status of pods in a namespace",
        parameters=(
            _namespace_param(),
            ParameterSpec("labelSelector", "string",
                          "Label selector to filter pods (optional)", default=""),
        ),
    ),
    ToolDescriptor(
        name="get_deployment_status",
        description="Get the status of deployments in a namespace",
        parameters=(
            _namespace_param(),
            ParameterSpec("deploymentName", "string",
                          "Specific deployment name (optional)", default=""),
        ),
    ),
    ToolDescriptor(
        name="get_service_endpoints",
        description="Get the endpoints and status of services in a namespace",
        parameters=(
            _namespace_param(),
            ParameterSpec("serviceName", "string",
                          "Specific service name (optional)", default=""),
        ),
    ),
    ToolDescriptor(
        name="get_recent_events",
        description="Get recent Kubernetes events in a namespace",
        parameters=(
            _namespace_param(),
            ParameterSpec("resourceName", "string",
                          "Filter events for specific resource (optional)", default=""),
        ),
    ),
    ToolDescriptor(
        name="get_pod_logs",
        description="Get logs from a specific pod",
        parameters=(
            _namespace_param("Kubernetes namespace (default: default)"),
            ParameterSpec("podName", "string", "Name of the pod to get logs from", required=True),
            ParameterSpec("containerName", "string", "Container name (optional)", default=""),
            ParameterSpec("lines", "number",
                          f"Number of lines to retrieve (default: {DEFAULT_LOG_LINES})",
                          default=DEFAULT_LOG_LINES),
        ),
    ),
)


def build_default_catalog() -> ToolCatalog:
    return ToolCatalog(DEFAULT_TOOLS)
