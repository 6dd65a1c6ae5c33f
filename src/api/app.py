# This file builds the FastAPI application and registers all API routers.
# It exists so startup behavior, middleware, and error handling are configured in one place.
# The app adds request IDs, timing headers, and optional request logging for operations visibility.
# Routers, handlers, and middleware are all attached inside create_app.

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import RequestResponseEndpoint

from src.api.api_config import ApiConfig, get_api_config
from src.api.db_access import DatabaseClient
from src.api.dependencies import get_config, get_database_client
from src.api.error_handlers import register_error_handlers
from src.api.routers.health import router as health_router
from src.api.routers.products import router as products_router
from src.common.logging import configure_logging

logger = logging.getLogger(__name__)

API_HTTP_REQUESTS_TOTAL = Counter(
    "api_http_requests_total",
    "Total number of HTTP requests processed by the API.",
    ["method", "path", "status_code"],
)
API_HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "api_http_request_duration_seconds",
    "API request duration in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
API_HTTP_INFLIGHT_REQUESTS = Gauge(
    "api_http_inflight_requests",
    "Number of API requests currently being processed.",
    ["method"],
)


def create_app() -> FastAPI:
    """Create configured FastAPI application instance."""

    configure_logging()
    config = get_api_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            app.state.db_connected_at_startup = _database_client().can_connect()
        except Exception:
            logger.warning("Database client could not be created at startup", exc_info=True)
            app.state.db_connected_at_startup = False
        logger.info(
            "Started %s %s (db_connected=%s, atomic_rating_updates=%s)",
            config.api_name,
            config.app_version,
            app.state.db_connected_at_startup,
            config.atomic_rating_updates,
        )
        yield

    app = FastAPI(
        lifespan=lifespan,
        title=config.api_name,
        description=(
            "Product catalog API: list products, look them up by id or category, "
            "and submit ratings that are folded into each product's running average."
        ),
        version=config.app_version,
        openapi_tags=[
            {"name": "health", "description": "Service liveness, readiness, and version metadata."},
            {"name": "products", "description": "Product catalog lookups and rating updates."},
        ],
    )

    def _database_client() -> DatabaseClient:
        factory = app.dependency_overrides.get(get_database_client, get_database_client)
        return factory()

    def _current_config() -> ApiConfig:
        return app.dependency_overrides.get(get_config, get_config)()

    product_routes = {id(route) for route in products_router.routes}

    def _route_label(request: Request) -> str:
        # Route templates keep product ids out of metric labels.
        route = request.scope.get("route")
        path = getattr(route, "path", None)
        if not path:
            return "unmatched"
        # Depending on the FastAPI release, the matched route is either the prefixed copy
        # made by include_router or the product router's own route without the prefix.
        if id(route) in product_routes and not path.startswith(f"{config.api_prefix}/"):
            return f"{config.api_prefix}{path}"
        return path

    async def _write_request_log(
        request: Request, *, table_name: str, status_code: int, duration_ms: float
    ) -> None:
        try:
            await run_in_threadpool(
                _database_client().log_request,
                table_name=table_name,
                request_id=request.state.request_id,
                path=request.url.path,
                method=request.method,
                status_code=status_code,
                duration_ms=duration_ms,
            )
        except Exception:
            logger.warning(
                "Request log write failed for request_id=%s", request.state.request_id, exc_info=True
            )

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_config = _current_config()

        method_label = request.method
        started = time.perf_counter()
        status_code = 500
        API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label).inc()
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            duration_ms = (time.perf_counter() - started) * 1000.0

            response.headers["x-request-id"] = request_id
            response.headers["x-response-time-ms"] = f"{duration_ms:.2f}"

            if request_config.enable_request_logging:
                await _write_request_log(
                    request,
                    table_name=request_config.request_log_table_name,
                    status_code=status_code,
                    duration_ms=duration_ms,
                )

            return response
        finally:
            duration_s = time.perf_counter() - started
            path_label = _route_label(request)
            API_HTTP_REQUESTS_TOTAL.labels(
                method=method_label,
                path=path_label,
                status_code=str(status_code),
            ).inc()
            API_HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method_label,
                path=path_label,
            ).observe(duration_s)
            API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label).dec()

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(products_router, prefix=config.api_prefix)

    return app


app = create_app()
