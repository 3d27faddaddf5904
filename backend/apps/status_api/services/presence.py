"""Presence writes (set-presence, heartbeat) and the read models built on them.

Online/offline is always decided from the ``last_seen`` key; the presence
record itself expires after its TTL and only carries state and message.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from backend.apps.status_api.perf.cache import keys
from backend.apps.status_api.services.history import append_history, recent_history
from backend.core.kv_store import KVStore
from backend.core.time_utils import iso_from_ms, now_ms, parse_epoch_ms, utc_now_iso
from backend.domain.activity.history import HISTORY_LIMIT
from backend.domain.activity.presence import (
    DEFAULT_PRESENCE_STATE,
    SIGNAL,
    PresenceRecord,
    count_active_agents,
    is_online,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENT = "monitoring workspace and building public signals"
STACK = ("FastAPI", "Python", "Redis")


# Writes -----------------------------------------------------------------


async def touch(store: KVStore, now: int) -> None:
    """Mark the agent as seen now; ``started`` is only set the first time."""
    await store.put(keys.LAST_SEEN, str(now))
    if parse_epoch_ms(await store.get(keys.STARTED)) is None:
        await store.put(keys.STARTED, str(now))


async def merge_team(store: KVStore, team: dict[str, Any]) -> dict[str, Any]:
    current = await store.get_json(keys.TEAM, {})
    merged = dict(current) if isinstance(current, dict) else {}
    merged.update(team)
    await store.put_json(keys.TEAM, merged)
    return merged


async def set_presence(
    store: KVStore,
    *,
    state: Optional[str],
    message: Optional[str],
    ttl_seconds: int,
    team: dict[str, Any],
    activity: dict[str, Any],
    tasks: Any = None,
    has_tasks: bool = False,
    now: Optional[int] = None,
) -> int:
    current = now_ms() if now is None else now
    if has_tasks:
        await store.put_json(keys.TASKS, tasks)
    await merge_team(store, team)
    await append_history(store, [activity], now=current)
    await touch(store, current)
    record = PresenceRecord(
        state=(state or "").strip() or DEFAULT_PRESENCE_STATE,
        timestamp=current,
        message=message,
    )
    await store.put_json(keys.PRESENCE, record.to_dict(), ttl_seconds=ttl_seconds)
    logger.info("Presence set to %s (ttl %ss)", record.state, ttl_seconds)
    return current


async def heartbeat(
    store: KVStore,
    *,
    history: Sequence[dict[str, Any]] = (),
    activity: Optional[dict[str, Any]] = None,
    now: Optional[int] = None,
) -> int:
    current = now_ms() if now is None else now
    items: list[dict[str, Any]] = list(history)
    if activity is not None:
        items.insert(0, activity)
    await append_history(store, items, now=current)
    await touch(store, current)
    return current


# Reads ------------------------------------------------------------------


async def read_last_seen(store: KVStore) -> Optional[int]:
    return parse_epoch_ms(await store.get(keys.LAST_SEEN))


async def read_started(store: KVStore) -> Optional[int]:
    return parse_epoch_ms(await store.get(keys.STARTED))


async def read_presence(store: KVStore) -> Optional[PresenceRecord]:
    return PresenceRecord.from_payload(await store.get_json(keys.PRESENCE))


async def read_team(store: KVStore) -> Any:
    team = await store.get_json(keys.TEAM, {})
    return team if isinstance(team, (dict, list)) else {}


def status_payload(last_seen: Optional[int], now: int) -> dict[str, Any]:
    if last_seen is None or not is_online(last_seen, now):
        return {"status": "offline"}
    return {
        "status": "operational",
        "timestamp": utc_now_iso(now),
        "signal": SIGNAL,
        "last_seen": iso_from_ms(last_seen),
    }


def uptime_payload(last_seen: Optional[int], now: int) -> dict[str, Any]:
    """Uptime is time since the last heartbeat; offline always reports zero."""
    if last_seen is None or not is_online(last_seen, now):
        return {"status": "offline", "uptime_ms": 0, "last_seen": None}
    return {
        "status": "operational",
        "uptime_ms": max(0, now - last_seen),
        "last_seen": iso_from_ms(last_seen),
    }


async def load_status(store: KVStore, *, now: Optional[int] = None) -> dict[str, Any]:
    current = now_ms() if now is None else now
    return status_payload(await read_last_seen(store), current)


async def load_uptime(store: KVStore, *, now: Optional[int] = None) -> dict[str, Any]:
    current = now_ms() if now is None else now
    return uptime_payload(await read_last_seen(store), current)


async def load_pulse(store: KVStore, *, now: Optional[int] = None) -> dict[str, Any]:
    current = now_ms() if now is None else now
    last_seen = await read_last_seen(store)
    presence = await read_presence(store)
    history = await recent_history(store, HISTORY_LIMIT, now=current)
    team = await read_team(store)
    online = last_seen is not None and is_online(last_seen, current)
    if online:
        status = presence.state if presence else DEFAULT_PRESENCE_STATE
    else:
        status = "offline"
    return {
        "ts": utc_now_iso(current),
        "status": status,
        "signal": SIGNAL,
        "last_seen": iso_from_ms(last_seen) if last_seen is not None else None,
        "agents_active": count_active_agents(team),
        "last_event_desc": history[0].desc if history else None,
    }


async def load_now(store: KVStore, *, now: Optional[int] = None) -> dict[str, Any]:
    """Full sync: presence, uptime, team and history in one document."""
    current = now_ms() if now is None else now
    presence = await read_presence(store)
    history = await recent_history(store, HISTORY_LIMIT, now=current)
    team = await read_team(store)

    started = await read_started(store)
    if started is None:
        started = current
        await store.put(keys.STARTED, str(started))

    last_seen = await read_last_seen(store)
    if last_seen is None and presence is not None and presence.timestamp is not None:
        last_seen = int(presence.timestamp)
    online = last_seen is not None and is_online(last_seen, current)
    shown_ms = last_seen if last_seen is not None else current

    if online:
        status = presence.state if presence else DEFAULT_PRESENCE_STATE
    else:
        status = "offline"
    return {
        "current": (presence.message if presence else None) or DEFAULT_CURRENT,
        "status": status,
        "signal": SIGNAL,
        "stack": list(STACK),
        "timestamp": shown_ms,
        "uptime": max(0, current - started),
        "agents_active": count_active_agents(team),
        "last_seen": iso_from_ms(shown_ms),
        "history": [entry.to_dict() for entry in history],
        "team": team,
    }


__all__ = [
    "heartbeat",
    "load_now",
    "load_pulse",
    "load_status",
    "load_uptime",
    "merge_team",
    "read_last_seen",
    "set_presence",
    "status_payload",
    "touch",
    "uptime_payload",
]
