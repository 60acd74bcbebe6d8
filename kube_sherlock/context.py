"""Process-wide wiring built once at start and handed to the API and CLI."""

import logging
from typing import Optional
from dataclasses import dataclass

from kube_sherlock.analysis import AnalysisService
from kube_sherlock.config import Settings
from kube_sherlock.errors import ClusterConnectionError
from kube_sherlock.llm import ModelClient, create_model_client
from kube_sherlock.orchestrator import QueryOrchestrator
from kube_sherlock.sources.kubernetes import ResourceGatherer
from kube_sherlock.tools.catalog import ToolCatalog, build_default_catalog
from kube_sherlock.tools.executor import ToolExecutor, build_default_handlers

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    model: ModelClient
    catalog: ToolCatalog
    executor: ToolExecutor
    orchestrator: QueryOrchestrator
    analysis: AnalysisService
    gatherer: Optional[ResourceGatherer] = None


def assemble_context(settings: Settings,
                     model: ModelClient,
                     gatherer: Optional[ResourceGatherer]) -> AppContext:
    """Wire the components around an existing model client and gatherer."""
    catalog = build_default_catalog()
    executor = ToolExecutor(catalog, build_default_handlers(gatherer))
    return AppContext(
        settings=settings,
        model=model,
        catalog=catalog,
        executor=executor,
        orchestrator=QueryOrchestrator(model, catalog, executor),
        analysis=AnalysisService(model),
        gatherer=gatherer,
    )


async def connect_gatherer(settings: Settings) -> Optional[ResourceGatherer]:
    """Connect to the cluster, or return None when it cannot be reached.

    The service keeps running without a cluster; tools then report that
    the cluster is unavailable.
    """
    gatherer = ResourceGatherer(kubeconfig_path=settings.kubeconfig_path, context=settings.kube_context)
    try:
        await gatherer.initialize()
        await gatherer.verify_connection()
    except ClusterConnectionError as e:
        logger.warning(f"Failed to initialize Kubernetes service: {e}")
        return None
    return gatherer


async def build_context(settings: Settings, connect_cluster: bool = True) -> AppContext:
    model = create_model_client(settings)
    gatherer = await connect_gatherer(settings) if connect_cluster else None
    return assemble_context(settings, model, gatherer)
