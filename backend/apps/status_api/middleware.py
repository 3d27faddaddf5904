"""HTTP middleware: request ids, request accounting and the public rate limit."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from backend.apps.status_api.perf.metrics import prometheus
from backend.apps.status_api.security import get_client_id
from backend.apps.status_api.services.request_log import append_request
from backend.core.logging import reset_request_id, set_request_id

logger = logging.getLogger(__name__)


def route_label(request: Request) -> str:
    """Route template once routing has run; unmatched paths share one label."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return "unmatched"


def path_prefix(path: str) -> str:
    """First path segment only; used before routing has resolved a template."""
    first = path.strip("/").split("/", 1)[0]
    return f"/{first}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add X-Request-ID header for request tracing and correlation."""

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME)
        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        token = set_request_id(request_id)
        try:
            response: Response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            reset_request_id(token)


class RequestAccountingMiddleware(BaseHTTPMiddleware):
    """Count every request (persisted counters, request log, Prometheus)."""

    async def dispatch(self, request: Request, call_next):
        state = request.app.state
        try:
            await state.metrics.record_request()
            await append_request(
                state.kv_store,
                method=request.method,
                pathname=request.url.path,
                query=f"?{request.url.query}" if request.url.query else "",
                ip=get_client_id(request, state.settings),
                user_agent=request.headers.get("user-agent"),
            )
        except Exception:
            logger.warning("Request accounting failed for %s", request.url.path, exc_info=True)

        prometheus.HTTP_INFLIGHT.inc()
        start = time.perf_counter()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            prometheus.HTTP_INFLIGHT.dec()
            prometheus.observe_http(
                route=route_label(request),
                method=request.method,
                status_code=status_code,
                duration_seconds=time.perf_counter() - start,
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit on public GET paths, keyed by client identity."""

    _exempt_paths = ("/", "/set-presence", "/openapi.json", "/docs")
    _exempt_prefixes = ("/metrics", "/admin")

    def is_limited(self, request: Request) -> bool:
        if request.method != "GET":
            return False
        path = request.url.path
        if path in self._exempt_paths:
            return False
        return not path.startswith(self._exempt_prefixes)

    async def dispatch(self, request: Request, call_next):
        state = request.app.state
        if not state.settings.rate_limit_enabled or not self.is_limited(request):
            return await call_next(request)

        client_id = get_client_id(request, state.settings)
        try:
            decision = await state.rate_limiter.allow(client_id)
        except Exception:
            logger.warning("Rate limiter unavailable; letting %s through", request.url.path, exc_info=True)
            return await call_next(request)

        if not decision.allowed:
            prometheus.record_rate_limited(path_prefix(request.url.path))
            return JSONResponse(
                {"error": "Too Many Requests"},
                status_code=429,
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )
        return await call_next(request)


__all__ = [
    "RateLimitMiddleware",
    "RequestAccountingMiddleware",
    "RequestIDMiddleware",
    "path_prefix",
    "route_label",
]
