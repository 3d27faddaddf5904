"""Read-through cache with a stale shadow copy for upstream-backed datasets.

Lookup order for every dataset:
- primary key (short TTL)
- live upstream fetch, written to primary and stale keys on success
- stale key (long TTL), only when the fetch failed
- the dataset default

Reads never raise for upstream or store trouble. Malformed JSON in either
tier counts as a miss. A served stale copy is reported as ``cached=True``,
the same as a primary hit.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Literal, Optional, TypeVar

from backend.apps.status_api.perf.cache import keys
from backend.apps.status_api.perf.cache.policy import CachePolicy
from backend.apps.status_api.perf.metrics import prometheus
from backend.core.kv_store import KVStore
from backend.core.result import Result, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Source = Literal["primary", "upstream", "stale", "default"]


@dataclass(frozen=True)
class CacheLoad(Generic[T]):
    value: T
    cached: bool
    source: Source


def _identity(value: Any) -> Any:
    return value


async def read_tier(store: KVStore, key: str, parse: Callable[[Any], Optional[T]]) -> Optional[T]:
    """Read and parse one cache tier; missing, malformed or mis-shaped is None."""
    try:
        payload = await store.get_json(key)
    except Exception:
        logger.warning("Cache read failed for %s", key, exc_info=True)
        return None
    if payload is None:
        return None
    try:
        return parse(payload)
    except (TypeError, ValueError, KeyError):
        logger.debug("Cached payload under %s has an unexpected shape", key)
        return None


async def write_tiers(
    store: KVStore,
    key: str,
    payload: Any,
    *,
    policy: CachePolicy,
) -> None:
    """Best-effort write of the primary copy and, when enabled, the stale shadow."""
    try:
        await store.put_json(key, payload, ttl_seconds=policy.ttl_seconds)
        if policy.has_stale:
            await store.put_json(keys.stale(key), payload, ttl_seconds=policy.stale_seconds)
    except Exception:
        logger.warning("Cache write failed for %s", key, exc_info=True)


async def load(
    store: KVStore,
    key: str,
    *,
    policy: CachePolicy,
    fetch: Callable[[], Awaitable[Result[T, UpstreamError]]],
    parse: Callable[[Any], Optional[T]],
    default: Callable[[], T],
    serialize: Callable[[T], Any] = _identity,
    dataset: Optional[str] = None,
) -> CacheLoad[T]:
    """Load a dataset through primary → upstream → stale → default."""

    label = dataset or key
    primary = await read_tier(store, key, parse)
    if primary is not None:
        prometheus.record_cache_load(label, "hit")
        return CacheLoad(primary, True, "primary")

    try:
        result = await fetch()
    except Exception:
        # A raising fetch is treated exactly like a failed one.
        logger.warning("Upstream fetch for %s raised", label, exc_info=True)
        result = None

    if result is not None and result.is_success():
        value = result.unwrap()
        await write_tiers(store, key, serialize(value), policy=policy)
        prometheus.record_cache_load(label, "miss")
        return CacheLoad(value, False, "upstream")

    if result is not None:
        logger.warning("Upstream unavailable for %s: %s", label, result.error)

    if policy.has_stale:
        shadow = await read_tier(store, keys.stale(key), parse)
        if shadow is not None:
            prometheus.record_cache_load(label, "stale")
            return CacheLoad(shadow, True, "stale")

    prometheus.record_cache_load(label, "default")
    return CacheLoad(default(), False, "default")


async def invalidate(store: KVStore, key: str) -> list[str]:
    """Delete the primary and stale copies of a key; returns the deleted names."""
    removed = [key, keys.stale(key)]
    for name in removed:
        await store.delete(name)
    return removed


__all__ = ["CacheLoad", "invalidate", "load", "read_tier", "write_tiers"]
