from __future__ import annotations

import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Optional

from backend.core.error_handler import safe_background_task
from backend.core.kv_store import KVStore
from backend.core.time_utils import now_ms

logger = logging.getLogger(__name__)

AUTH_FAILURE_PREFIX = "auth_fail"
AUTH_FAILURE_TTL_SECONDS = 30 * 24 * 60 * 60


@dataclass
class AuditContext:
    """Context captured for audit records."""

    path: str = ""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


async def record_auth_failure(
    store: KVStore,
    ctx: AuditContext,
    *,
    now: Optional[int] = None,
) -> str:
    """Persist one failed authentication attempt and return its key."""

    timestamp = now_ms() if now is None else now
    key = f"{AUTH_FAILURE_PREFIX}:{timestamp}:{secrets.token_hex(4)}"
    record = asdict(ctx)
    record["timestamp"] = timestamp
    await store.put_json(key, record, ttl_seconds=AUTH_FAILURE_TTL_SECONDS)
    logger.warning(
        "Authentication failed for %s from %s",
        ctx.path,
        ctx.ip_address or "unknown",
    )
    return key


def schedule_auth_failure(store: KVStore, ctx: AuditContext) -> None:
    """Record an auth failure without delaying the 401 response."""
    safe_background_task("audit.auth_failure", record_auth_failure(store, ctx))


__all__ = [
    "AUTH_FAILURE_PREFIX",
    "AuditContext",
    "record_auth_failure",
    "schedule_auth_failure",
]
