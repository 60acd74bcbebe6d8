"""Kubernetes resource gatherer with per-kind failure isolation and secret redaction."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple
from dataclasses import dataclass, field

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from kube_sherlock.errors import (
    ClusterAPIError,
    ClusterConnectionError,
    RequestValidationError,
    ResourceKindUnsupportedError,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

# kind -> (API group attribute on the gatherer, namespaced list method)
RESOURCE_LISTERS: Dict[str, Tuple[str, str]] = {
    "pods": ("v1", "list_namespaced_pod"),
    "services": ("v1", "list_namespaced_service"),
    "endpoints": ("v1", "list_namespaced_endpoints"),
    "configmaps": ("v1", "list_namespaced_config_map"),
    "secrets": ("v1", "list_namespaced_secret"),
    "events": ("v1", "list_namespaced_event"),
    "deployments": ("apps_v1", "list_namespaced_deployment"),
    "replicasets": ("apps_v1", "list_namespaced_replica_set"),
    "ingresses": ("networking_v1", "list_namespaced_ingress"),
}

# Payload fields cleared on every item of these kinds before they leave the gatherer.
REDACTED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "secrets": ("data", "stringData"),
}


@dataclass
class GatherMetadata:
    """Context recorded alongside every gather."""
    timestamp: str
    cluster_context: str
    namespace: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "timestamp": self.timestamp,
            "clusterContext": self.cluster_context,
            "namespace": self.namespace,
        }


@dataclass
class GatherResult:
    """Collections keyed by kind, or error strings keyed by ``<kind>_error``."""
    metadata: GatherMetadata
    resources: Dict[str, Any] = field(default_factory=dict)

    def error_for(self, kind: str) -> Optional[str]:
        return self.resources.get(f"{kind}_error")

    def to_dict(self) -> Dict[str, Any]:
        return {"resources": self.resources, "metadata": self.metadata.to_dict()}


def redact(kind: str, collection: Dict[str, Any]) -> Dict[str, Any]:
    """Clear secret-bearing fields on every item of a serialized collection.

    Applies to every kind listed in ``REDACTED_FIELDS``; other kinds pass
    through untouched.
    """
    fields = REDACTED_FIELDS.get(kind)
    if not fields:
        return collection
    for item in collection.get("items") or []:
        for name in fields:
            item[name] = {}
    return collection


def describe_api_error(error: Exception) -> str:
    """Turn a client exception into a single readable line."""
    if isinstance(error, ApiException):
        message = error.reason or "request failed"
        if error.body:
            try:
                body = json.loads(error.body)
                message = body.get("message") or message
            except (TypeError, ValueError, AttributeError):
                pass
        return f"({error.status}) {message}"
    return str(error) or error.__class__.__name__


class ResourceGatherer:
    """Lists Kubernetes resources kind by kind for troubleshooting context.

    Every requested kind is listed on its own, so a kind the caller is not
    allowed to read (or that the API fails to return) is reported under
    ``<kind>_error`` while the remaining kinds are still gathered.
    Secret payloads are always cleared before results are returned.
    """

    def __init__(self, kubeconfig_path: Optional[str] = None, context: Optional[str] = None):
        """Initialize the gatherer.

        Args:
            kubeconfig_path: Path to kubeconfig file (None for in-cluster config,
                falling back to the default kubeconfig)
            context: Kubernetes context to use (None for current context)
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self.context_name = context or ""
        self.api_client = None
        self.v1 = None
        self.apps_v1 = None
        self.networking_v1 = None

    def _load_config(self):
        if self.kubeconfig_path:
            config.load_kube_config(config_file=self.kubeconfig_path, context=self.context)
        else:
            try:
                config.load_incluster_config()
            except config.ConfigException:
                config.load_kube_config(context=self.context)

    async def initialize(self):
        """Load cluster credentials and create the API clients.

        Kubeconfig parsing runs in a worker thread; the context name is
        resolved here once and reused by every gather.
        """
        try:
            await asyncio.to_thread(self._load_config)

            self.api_client = client.ApiClient()
            self.v1 = client.CoreV1Api(self.api_client)
            self.apps_v1 = client.AppsV1Api(self.api_client)
            self.networking_v1 = client.NetworkingV1Api(self.api_client)

        except Exception as e:
            raise ClusterConnectionError(f"Failed to initialize Kubernetes client: {e}")

        self.context_name = await asyncio.to_thread(self._resolve_context_name)

    async def verify_connection(self):
        """Make one cheap API call to prove the cluster is reachable."""
        if self.v1 is None:
            await self.initialize()
        try:
            await asyncio.to_thread(self.v1.list_namespace, limit=1)
        except Exception as e:
            raise ClusterConnectionError(f"Failed to connect to cluster: {describe_api_error(e)}")
        logger.info("Successfully connected to Kubernetes cluster")

    def _resolve_context_name(self) -> str:
        """Configured context, else the active kubeconfig context."""
        if self.context:
            return self.context
        try:
            _, active_context = config.list_kube_config_contexts(config_file=self.kubeconfig_path)
            if active_context:
                return active_context.get("name", "")
        except Exception:
            logger.debug("No kubeconfig context available", exc_info=True)
        return "in-cluster"

    async def gather(self,
                     kinds: Iterable[str],
                     namespace: str = "",
                     label_selector: str = "",
                     field_selector: str = "") -> GatherResult:
        """Gather the requested resource kinds from one namespace.

        Args:
            kinds: Resource kind identifiers (e.g. "pods", "deployments")
            namespace: Namespace to list from; empty means "default"
            label_selector: Label selector; empty means unfiltered
            field_selector: Field selector; empty means unfiltered

        Returns:
            GatherResult with one entry per kind, either the serialized
            collection or an error string under ``<kind>_error``
        """
        if self.api_client is None:
            await self.initialize()

        namespace = namespace or DEFAULT_NAMESPACE
        kinds = list(dict.fromkeys(kinds))
        logger.info(f"Gathering {kinds} in namespace '{namespace}' "
                    f"(labels='{label_selector}', fields='{field_selector}')")

        list_options = {}
        if label_selector:
            list_options["label_selector"] = label_selector
        if field_selector:
            list_options["field_selector"] = field_selector

        resources: Dict[str, Any] = {}
        for kind in kinds:
            try:
                resources[kind] = await self._list_kind(kind, namespace, list_options)
            except ResourceKindUnsupportedError as e:
                logger.warning(f"Unsupported resource type: {kind}")
                resources[f"{kind}_error"] = str(e)
            except Exception as e:
                logger.error(f"Failed to list {kind}: {describe_api_error(e)}")
                resources[f"{kind}_error"] = describe_api_error(e)

        return GatherResult(
            resources=resources,
            metadata=GatherMetadata(
                timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                cluster_context=self.context_name or "in-cluster",
                namespace=namespace,
            ),
        )

    async def _list_kind(self, kind: str, namespace: str, list_options: Dict[str, str]) -> Dict[str, Any]:
        if kind not in RESOURCE_LISTERS:
            raise ResourceKindUnsupportedError(kind)
        group, method = RESOURCE_LISTERS[kind]
        lister = getattr(getattr(self, group), method)

        collection = await asyncio.to_thread(lister, namespace=namespace, **list_options)
        serialized = self.api_client.sanitize_for_serialization(collection)
        return redact(kind, serialized)

    async def get_logs(self,
                       namespace: str,
                       pod_name: str,
                       container_name: str = "",
                       line_limit: int = 0) -> str:
        """Fetch the log of one pod container.

        Args:
            namespace: Pod namespace; empty means "default"
            pod_name: Pod to read from (required)
            container_name: Container name; empty lets the API pick the only container
            line_limit: Tail this many lines when > 0, otherwise the whole log

        Returns:
            The concatenated log text

        Raises:
            ClusterAPIError: if the pod or container is missing or the stream fails
        """
        if not pod_name:
            raise RequestValidationError("pod name is required")
        if self.api_client is None:
            await self.initialize()

        namespace = namespace or DEFAULT_NAMESPACE
        options: Dict[str, Any] = {}
        if container_name:
            options["container"] = container_name
        if line_limit > 0:
            options["tail_lines"] = line_limit

        try:
            return await asyncio.to_thread(self._read_log_stream, pod_name, namespace, options)
        except Exception as e:
            status = e.status if isinstance(e, ApiException) else None
            raise ClusterAPIError(f"failed to get pod logs: {describe_api_error(e)}", status=status)

    def _read_log_stream(self, pod_name: str, namespace: str, options: Dict[str, Any]) -> str:
        response = self.v1.read_namespaced_pod_log(
            name=pod_name,
            namespace=namespace,
            _preload_content=False,
            **options,
        )
        try:
            chunks = [chunk for chunk in response.stream(2048)]
        finally:
            response.release_conn()
        return b"".join(chunks).decode("utf-8", errors="replace")
