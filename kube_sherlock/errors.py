"""Exception types shared across kube-sherlock components."""


class KubeSherlockError(Exception):
    """Base class for all kube-sherlock errors."""


class RequestValidationError(KubeSherlockError):
    """Caller input is malformed, e.g. an empty query."""


class ModelUnavailableError(KubeSherlockError):
    """The model provider could not be reached or rejected the request."""


class ModelNoContentError(ModelUnavailableError):
    """The model provider answered but produced no content."""


class ModelResponseError(KubeSherlockError):
    """The model produced content that could not be interpreted."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class ToolNotFoundError(KubeSherlockError):
    """A tool name is not present in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolValidationError(KubeSherlockError):
    """Tool arguments do not satisfy the tool's parameter schema."""


class ResourceKindUnsupportedError(KubeSherlockError):
    """A gather request named a resource kind the gatherer cannot list."""

    def __init__(self, kind: str):
        super().__init__(f"unsupported resource type: {kind}")
        self.kind = kind


class ClusterAPIError(KubeSherlockError):
    """A call against the Kubernetes API failed."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class ClusterConnectionError(ClusterAPIError, ConnectionError):
    """The Kubernetes client could not be configured or the cluster is unreachable."""
