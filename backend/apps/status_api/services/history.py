"""Persisted activity history (newest first, at most HISTORY_LIMIT entries)."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from backend.apps.status_api.perf.cache import keys
from backend.core.kv_store import KVStore
from backend.core.time_utils import now_ms
from backend.domain.activity.history import (
    HistoryEntry,
    normalize_entry,
    normalize_history,
    prepend,
    sort_newest_first,
)

logger = logging.getLogger(__name__)


async def load_history(store: KVStore, *, now: Optional[int] = None) -> list[HistoryEntry]:
    """Stored order, every entry reparsed; anything unreadable becomes an empty list."""
    current = now_ms() if now is None else now
    return normalize_history(await store.get_json(keys.HISTORY, []), now=current)


async def append_history(
    store: KVStore,
    items: Sequence[Any],
    *,
    now: Optional[int] = None,
) -> list[HistoryEntry]:
    """Prepend raw items (given newest first); item ``i`` falls back to ``now - i``.

    Returns the normalized entries that were added.
    """
    if not items:
        return []
    current = now_ms() if now is None else now
    added = [normalize_entry(item, current - index) for index, item in enumerate(items)]
    existing = await load_history(store, now=current)
    updated = prepend(existing, *added)
    await store.put_json(keys.HISTORY, [entry.to_dict() for entry in updated])
    logger.debug("History now holds %d entries", len(updated))
    return added


async def recent_history(store: KVStore, limit: int, *, now: Optional[int] = None) -> list[HistoryEntry]:
    """Every stored entry, newest first by timestamp, then cut to ``limit``."""
    entries = await load_history(store, now=now)
    return sort_newest_first(entries)[:limit]


__all__ = ["append_history", "load_history", "recent_history"]
