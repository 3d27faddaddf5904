"""Rolling log of recent requests kept in the KV store."""

from __future__ import annotations

from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys
from backend.core.kv_store import KVStore
from backend.core.time_utils import now_ms

REQUEST_LOG_LIMIT = 100
REQUEST_LOG_TTL_SECONDS = 24 * 60 * 60


async def read_request_log(store: KVStore) -> list[Any]:
    entries = await store.get_json(keys.REQUEST_LOG, [])
    return entries if isinstance(entries, list) else []


async def append_request(
    store: KVStore,
    *,
    method: str,
    pathname: str,
    query: str,
    ip: str,
    user_agent: Optional[str],
    now: Optional[int] = None,
) -> None:
    entry: dict[str, Any] = {
        "timestamp": now_ms() if now is None else now,
        "method": method,
        "pathname": pathname,
        "query": query,
        "ip": ip,
    }
    if user_agent:
        entry["ua"] = user_agent
    entries = await read_request_log(store)
    entries.append(entry)
    await store.put_json(
        keys.REQUEST_LOG,
        entries[-REQUEST_LOG_LIMIT:],
        ttl_seconds=REQUEST_LOG_TTL_SECONDS,
    )


__all__ = ["REQUEST_LOG_LIMIT", "append_request", "read_request_log"]
