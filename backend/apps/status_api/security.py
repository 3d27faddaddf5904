"""Client identity and admin authentication for the status API."""

from __future__ import annotations

import logging
import secrets
from typing import Awaitable, Callable, Optional

from fastapi import HTTPException, Request, status

from backend.core.audit import AuditContext, schedule_auth_failure
from backend.core.settings import Settings

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"
REFRESH_TOKEN_HEADER = "ADMIN_TOKEN"


def get_client_id(request: Request, settings: Settings) -> str:
    """
    Identify the caller for rate limiting and audit records.

    With TRUST_PROXY_HEADERS on, the first present of CF-Connecting-IP, the
    leftmost X-Forwarded-For address and X-Real-IP wins; otherwise (or when
    none is set) the socket peer is used, then "unknown".
    """
    if settings.trust_proxy_headers:
        cf_ip = (request.headers.get("cf-connecting-ip") or "").strip()
        if cf_ip:
            return cf_ip
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            client_ip = forwarded_for.split(",")[0].strip()
            if client_ip:
                return client_ip
        real_ip = (request.headers.get("x-real-ip") or "").strip()
        if real_ip:
            return real_ip
    return request.client.host if request and request.client else "unknown"


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")


def _bearer_matches(header: Optional[str], expected: str) -> bool:
    if not expected or not header:
        return False
    return secrets.compare_digest(header.strip().encode(), f"Bearer {expected}".encode())


async def require_admin_key(request: Request) -> None:
    """Ensure ``Authorization: Bearer <ADMIN_KEY>``; failures are audited in the background."""

    settings: Settings = request.app.state.settings
    ctx = AuditContext(
        path=request.url.path,
        ip_address=get_client_id(request, settings),
        user_agent=request.headers.get("user-agent"),
    )
    if _bearer_matches(request.headers.get("authorization"), settings.admin_key):
        return

    if not settings.admin_key:
        logger.error("ADMIN_KEY is not configured; refusing %s", request.url.path)
    schedule_auth_failure(request.app.state.kv_store, ctx)
    raise _unauthorized()


def require_admin_token(header_name: str, unavailable: str) -> Callable[[Request], Awaitable[None]]:
    """Dependency checking ADMIN_TOKEN in ``header_name``; 503 ``unavailable`` when unset."""

    async def dependency(request: Request) -> None:
        settings: Settings = request.app.state.settings
        expected = settings.admin_token.strip()
        if not expected:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=unavailable)
        provided = request.headers.get(header_name) or ""
        if not secrets.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Invalid admin token for %s", request.url.path)
            raise _unauthorized()

    return dependency


require_metrics_token = require_admin_token(ADMIN_TOKEN_HEADER, "metrics_unavailable")
require_refresh_token = require_admin_token(REFRESH_TOKEN_HEADER, "refresh_unavailable")


__all__ = [
    "ADMIN_TOKEN_HEADER",
    "REFRESH_TOKEN_HEADER",
    "get_client_id",
    "require_admin_key",
    "require_admin_token",
    "require_metrics_token",
    "require_refresh_token",
]
