"""HTTP API for the kube-sherlock frontend."""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as BodyValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from kube_sherlock import errors
from kube_sherlock.context import AppContext

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TroubleshootRequest(_CamelModel):
    error_message: str = Field(alias="errorMessage")


class SuggestResourcesRequest(_CamelModel):
    error_description: str = Field(alias="errorDescription")


class SummarizeRequest(_CamelModel):
    resource_data: str = Field(alias="resourceData")


class GatherResourcesRequest(_CamelModel):
    resource_types: List[str] = Field(alias="resourceTypes", min_length=1)
    namespace: str = ""
    label_selector: str = Field(default="", alias="labelSelector")


class QueryRequest(_CamelModel):
    query: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(context: AppContext) -> FastAPI:
    """Build the FastAPI application around an assembled AppContext."""
    app = FastAPI(title="kube-sherlock", version="1.0")
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )

    @app.exception_handler(BodyValidationError)
    async def handle_body_error(request: Request, exc: BodyValidationError):
        logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
        return _error(400, "invalid request body")

    @app.exception_handler(errors.RequestValidationError)
    async def handle_validation_error(request: Request, exc: errors.RequestValidationError):
        logger.warning(f"Invalid request to {request.url.path}: {exc}")
        return _error(400, str(exc))

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "healthy", "service": "kube-sherlock"}

    @app.get("/api/tools")
    async def list_tools() -> Dict[str, Any]:
        return {"tools": [tool.to_dict() for tool in context.catalog.list_tools()]}

    @app.post("/api/troubleshoot")
    async def troubleshoot(req: TroubleshootRequest):
        logger.info(f"Processing troubleshoot request: {req.error_message}")
        try:
            result = await context.analysis.troubleshoot(req.error_message)
        except (errors.ModelUnavailableError, errors.ModelResponseError) as e:
            logger.error(f"Failed to troubleshoot error: {e}")
            return _error(500, "Failed to analyze error")
        return result.to_dict()

    @app.post("/api/suggest-resources")
    async def suggest_resources(req: SuggestResourcesRequest):
        logger.info(f"Processing suggest resources request: {req.error_description}")
        try:
            result = await context.analysis.suggest_resources(req.error_description)
        except (errors.ModelUnavailableError, errors.ModelResponseError) as e:
            logger.error(f"Failed to suggest resources: {e}")
            return _error(500, "Failed to suggest resources")
        return result.to_dict()

    @app.post("/api/summarize")
    async def summarize(req: SummarizeRequest):
        logger.info("Processing summarize request")
        try:
            summary = await context.analysis.summarize(req.resource_data)
        except (errors.ModelUnavailableError, errors.ModelResponseError) as e:
            logger.error(f"Failed to summarize resource data: {e}")
            return _error(500, "Failed to summarize data")
        return {"summary": summary}

    @app.post("/api/gather-resources")
    async def gather_resources(req: GatherResourcesRequest):
        if context.gatherer is None:
            logger.error("Kubernetes service not available")
            return _error(503, "Kubernetes service not configured")

        logger.info(f"Processing gather resources request: {req.resource_types} in '{req.namespace}'")
        try:
            result = await context.gatherer.gather(
                req.resource_types, namespace=req.namespace, label_selector=req.label_selector
            )
        except errors.ClusterAPIError as e:
            logger.error(f"Failed to gather resources: {e}")
            return _error(500, "Failed to gather resources")
        return result.to_dict()

    @app.post("/api/query")
    async def query(req: QueryRequest):
        logger.info(f"Processing query: {req.query}")
        try:
            response = await context.orchestrator.query(req.query)
        except errors.ModelUnavailableError as e:
            logger.error(f"Failed to process query: {e}")
            return _error(500, "Failed to process query")
        return response.to_dict()

    return app
