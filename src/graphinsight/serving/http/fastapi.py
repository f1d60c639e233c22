"""FastAPI server exposing graph analytics over the DuckDB knowledge graph."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from graphinsight.config.models import AnalyticsConfig
from graphinsight.serving.http.models import (
    AnalysisResponse,
    AnalyzeRequest,
    GraphData,
    InfluencersRequest,
    InfluencersResponse,
    ProblemDetail,
)
from graphinsight.services import errors
from graphinsight.services.analysis_service import AnalysisService
from graphinsight.services.wiring import ServiceResource, build_service_resource
from graphinsight.storage.gateway import DuckDBError, StorageGateway

LOG = logging.getLogger("graphinsight.serving.http.fastapi")

PROBLEM_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ProblemDetail},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ProblemDetail},
    status.HTTP_504_GATEWAY_TIMEOUT: {"model": ProblemDetail},
}


def load_api_config() -> AnalyticsConfig:
    """
    Load and validate server configuration from environment variables.

    Returns
    -------
    AnalyticsConfig
        Validated configuration for the FastAPI surface.
    """
    return AnalyticsConfig.from_env()


def problem_response(detail: errors.ProblemDetail) -> JSONResponse:
    """
    Convert a ProblemDetail payload into a JSON HTTP response.

    Parameters
    ----------
    detail:
        Problem detail instance to serialize.

    Returns
    -------
    JSONResponse
        Response with RFC 9457 payload.
    """
    status_code = detail.status or status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = detail.to_dict()
    payload.setdefault("status", status_code)
    return JSONResponse(status_code=status_code, content=payload)


def install_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for consistent Problem Details."""

    @app.exception_handler(errors.ProblemError)
    def _handle_problem_error(
        _request: Request,
        exc: errors.ProblemError,
    ) -> JSONResponse:
        detail = exc.problem_detail
        status_code = detail.status or status.HTTP_500_INTERNAL_SERVER_ERROR
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            errors.log_problem(LOG, detail)
        return problem_response(detail)

    @app.exception_handler(RequestValidationError)
    def _handle_validation_error(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        detail = errors.problem(
            "request.invalid",
            "Invalid request",
            "Request validation failed",
            status=status.HTTP_400_BAD_REQUEST,
            extras={"errors": jsonable_errors(exc)},
        )
        return problem_response(detail)

    @app.exception_handler(Exception)
    def _handle_unexpected(
        _request: Request,
        exc: Exception,
    ) -> JSONResponse:
        detail = errors.internal_error(exc)
        LOG.exception("Unhandled error while serving request")
        errors.log_problem(LOG, detail)
        return problem_response(detail)


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Reduce validation errors to their JSON-safe fields.

    Returns
    -------
    list[dict[str, Any]]
        Location, message and type for each validation error.
    """
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]


def install_logging_middleware(app: FastAPI) -> None:
    """Add structured logging for each request."""

    @app.middleware("http")
    async def _log_request(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        config: AnalyticsConfig | None = getattr(request.app.state, "config", None)
        mode = config.betweenness_mode if config is not None else "unknown"
        LOG.info(
            "Handled %s %s status=%s betweenness=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            mode,
            duration_ms,
        )
        return response


def get_app_config(request: Request) -> AnalyticsConfig:
    """
    Retrieve the validated application configuration from state.

    Returns
    -------
    AnalyticsConfig
        Loaded application configuration.

    Raises
    ------
    errors.StorageError
        If the configuration is missing.
    """
    config: AnalyticsConfig | None = getattr(request.app.state, "config", None)
    if config is not None:
        return config
    message = "Server configuration is not initialized"
    raise errors.StorageError(message)


def get_service(request: Request) -> AnalysisService:
    """
    Retrieve the shared analysis service from state.

    Returns
    -------
    AnalysisService
        Service used to satisfy API requests.

    Raises
    ------
    errors.StorageError
        If the service is missing.
    """
    service: AnalysisService | None = getattr(request.app.state, "service", None)
    if service is None:
        message = "Analysis service is not initialized"
        raise errors.StorageError(message)
    return service


def get_gateway(request: Request) -> StorageGateway | None:
    """
    Retrieve the gateway backing the service, when one is attached.

    Returns
    -------
    StorageGateway | None
        Gateway from application state.
    """
    return getattr(request.app.state, "gateway", None)


ConfigDep = Annotated[AnalyticsConfig, Depends(get_app_config)]
ServiceDep = Annotated[AnalysisService, Depends(get_service)]
GatewayDep = Annotated[StorageGateway | None, Depends(get_gateway)]


def _graph_data(payload: GraphData | None) -> dict[str, Any] | None:
    return payload.model_dump() if payload is not None else None


def build_graph_router() -> APIRouter:
    """
    Construct the router for graph analysis endpoints.

    Returns
    -------
    APIRouter
        Router exposing algorithm, influencer and summary endpoints.
    """
    router = APIRouter(prefix="/graph", responses=PROBLEM_RESPONSES)

    @router.post(
        "/algorithms",
        response_model=AnalysisResponse,
        summary="Run graph algorithms",
    )
    def run_algorithms(*, service: ServiceDep, body: AnalyzeRequest) -> dict[str, Any]:
        """
        Run centrality, community and path analysis.

        Returns
        -------
        dict[str, Any]
            Results keyed by algorithm plus graph totals.
        """
        result = service.analyze(
            algorithm_type=body.algorithm_type,
            graph_data=_graph_data(body.graph_data),
        )
        LOG.info("Returned algorithm results for %s", sorted(result["algorithm_results"]))
        return result

    @router.post(
        "/influencers",
        response_model=InfluencersResponse,
        summary="Identify key influencers",
    )
    def identify_influencers(*, service: ServiceDep, body: InfluencersRequest) -> dict[str, Any]:
        """
        Rank nodes by composite influence and persist the top-K.

        Returns
        -------
        dict[str, Any]
            Influencers, ranking summary and persistence report.
        """
        run = service.identify_influencers(
            graph_data=_graph_data(body.graph_data),
            top_k=body.top_k,
            identified_by=body.identified_by,
        )
        return run.to_response()

    @router.get("/summary", summary="Summarize the stored graph")
    def graph_summary(*, service: ServiceDep) -> dict[str, Any]:
        """
        Return whole-graph statistics for the stored snapshot.

        Returns
        -------
        dict[str, Any]
            Counts, hubs, isolated nodes and property clusters.
        """
        return service.summarize()

    return router


def build_health_router() -> APIRouter:
    """
    Construct the router for health and diagnostics endpoints.

    Returns
    -------
    APIRouter
        Router exposing health status endpoints.
    """
    router = APIRouter()

    @router.get("/health", summary="Health check for graphinsight API")
    def health(*, config: ConfigDep, gateway: GatewayDep) -> dict[str, object]:
        """
        Report server health and connectivity.

        Returns
        -------
        dict[str, object]
            Health payload with the active analysis limits.

        Raises
        ------
        errors.StorageError
            If the database connection fails its check.
        """
        if gateway is not None:
            try:
                with gateway.cursor() as cur:
                    cur.execute("SELECT 1;")
            except DuckDBError as exc:
                message = "Database connection failed health check."
                raise errors.StorageError(message) from exc
        return {
            "status": "ok",
            "read_only": config.read_only,
            "limits": {
                "top_k": config.top_k,
                "path_hub_count": config.path_hub_count,
                "max_paths": config.max_paths,
                "timeout_seconds": config.timeout_seconds,
                "max_workers": config.max_workers,
                "betweenness_mode": config.betweenness_mode,
            },
        }

    return router


def register_routes(app: FastAPI) -> None:
    """Wire all API routes onto the provided FastAPI application."""
    app.include_router(build_graph_router())
    app.include_router(build_health_router())


def create_app(
    *,
    config_loader: Callable[[], AnalyticsConfig] = load_api_config,
    service_factory: Callable[..., ServiceResource] = build_service_resource,
    gateway: StorageGateway | None = None,
) -> FastAPI:
    """
    Build the FastAPI application with configured lifecycle and routes.

    Parameters
    ----------
    config_loader:
        Factory for loading application configuration.
    service_factory:
        Factory that yields a service resource for the given configuration.
    gateway:
        Optional StorageGateway handed to the service factory.

    Returns
    -------
    FastAPI
        Configured FastAPI instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        config = config_loader()
        resource = service_factory(config, gateway=gateway)
        app.state.config = config
        app.state.service = resource.service
        app.state.gateway = resource.gateway
        try:
            await asyncio.sleep(0)
            yield
        finally:
            resource.close()

    app = FastAPI(
        title="graphinsight API",
        description="Centrality, communities, paths and influencer ranking over a knowledge graph.",
        version="0.1.0",
        lifespan=lifespan,
    )

    install_exception_handlers(app)
    install_logging_middleware(app)
    register_routes(app)
    return app


app = create_app()
