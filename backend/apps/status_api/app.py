"""FastAPI application wiring for the fleet status API."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.apps.status_api.middleware import (
    RateLimitMiddleware,
    RequestAccountingMiddleware,
    RequestIDMiddleware,
)
from backend.apps.status_api.perf.limits.rate_limiter import FixedWindowRateLimiter
from backend.apps.status_api.perf.metrics.reconciler import MetricsReconciler
from backend.apps.status_api.routers import (
    activity,
    admin,
    fleet,
    github,
    metrics,
    status,
    system,
    tools,
)
from backend.apps.status_api.schemas import InvalidBody
from backend.apps.status_api.services.fleet_health import FleetHealthUnavailable
from backend.core.error_handler import drain_background_tasks, setup_global_exception_handler
from backend.core.github import GitHubClient, GitHubSource
from backend.core.kv_store import KVStore, build_kv_store
from backend.core.logging import configure_logging
from backend.core.settings import Settings, get_settings

request_logger = logging.getLogger("fleet.status.requests")
logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "X-Admin-Token", "ADMIN_TOKEN"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: loop exception handler on start, drain and close on stop."""
    setup_global_exception_handler()
    settings: Settings = app.state.settings
    logger.info(
        "Starting fleet status API (env=%s, github token=%s)",
        settings.environment,
        "set" if settings.has_github_token else "missing",
    )
    try:
        yield
    finally:
        logger.info("Shutting down fleet status API...")
        await drain_background_tasks()
        if app.state.owns_store:
            try:
                await app.state.kv_store.close()
                logger.info("KV store closed")
            except Exception as exc:
                logger.error("Error closing KV store: %s", exc)


def _validation_fields(exc: RequestValidationError) -> str:
    fields: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return ", ".join(fields)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": f"Invalid body: {_validation_fields(exc)}"}, status_code=400)

    @app.exception_handler(InvalidBody)
    async def invalid_body(request: Request, exc: InvalidBody) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=400)

    @app.exception_handler(FleetHealthUnavailable)
    async def fleet_health_unavailable(request: Request, exc: FleetHealthUnavailable) -> JSONResponse:
        logger.error("Fleet health unavailable: %s", exc)
        return JSONResponse({"error": "Service Unavailable"}, status_code=503)


def create_app(
    *,
    settings: Optional[Settings] = None,
    kv_store: Optional[KVStore] = None,
    github_client: Optional[GitHubSource] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Fleet Status API",
        version=system.API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )
    store = kv_store if kv_store is not None else build_kv_store(settings)
    app.state.settings = settings
    app.state.kv_store = store
    app.state.owns_store = kv_store is None
    app.state.github = github_client if github_client is not None else GitHubClient(settings)
    app.state.metrics = MetricsReconciler(store)
    app.state.rate_limiter = FixedWindowRateLimiter(store, limit=settings.rate_limit_per_minute)

    register_exception_handlers(app)

    app.include_router(system.router)
    app.include_router(status.router)
    app.include_router(activity.router)
    app.include_router(fleet.router)
    app.include_router(tools.router)
    app.include_router(github.router)
    app.include_router(admin.router)
    app.include_router(metrics.router)

    # Added innermost first; accounting wraps the rate limit.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestAccountingMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = (time.perf_counter() - start) * 1000
            request_logger.exception(
                "HTTP %s %s failed",
                request.method,
                request.url.path,
                extra={"path": request.url.path, "method": request.method, "duration_ms": duration},
            )
            raise
        duration = (time.perf_counter() - start) * 1000
        request_logger.info(
            "HTTP %s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        expose_headers=["Retry-After", RequestIDMiddleware.HEADER_NAME],
    )
    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
