"""Presence writes and the activity history."""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from backend.apps.status_api.dependencies import get_app_settings, get_store
from backend.apps.status_api.schemas import parse_activity, parse_heartbeat, parse_set_presence
from backend.apps.status_api.security import require_admin_key
from backend.apps.status_api.services import history as history_service
from backend.apps.status_api.services import presence
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.core.time_utils import iso_from_ms
from backend.domain.activity.history import parse_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["activity"])


async def read_json(request: Request) -> Any:
    """Request body as JSON; empty or malformed bodies read as None."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        logger.debug("Malformed JSON body on %s", request.url.path)
        return None


@router.get("/history")
async def history(
    limit: Optional[str] = Query(default=None),
    store: KVStore = Depends(get_store),
) -> dict[str, Any]:
    entries = await history_service.recent_history(store, parse_limit(limit))
    return {"history": [entry.to_dict() for entry in entries], "count": len(entries)}


@router.post("/set-presence", dependencies=[Depends(require_admin_key)])
async def set_presence(
    request: Request,
    store: KVStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    body = parse_set_presence(await read_json(request))
    timestamp = await presence.set_presence(
        store,
        state=body.state,
        message=body.message,
        ttl_seconds=body.ttl_seconds(settings.presence_ttl_seconds),
        team=body.team,
        activity=body.activity,
        tasks=body.tasks,
        has_tasks=body.has_tasks,
    )
    return {"success": True, "timestamp": timestamp}


@router.post("/heartbeat", dependencies=[Depends(require_admin_key)])
async def heartbeat(request: Request, store: KVStore = Depends(get_store)) -> dict[str, Any]:
    body = parse_heartbeat(await read_json(request))
    timestamp = await presence.heartbeat(store, history=body.history, activity=body.activity)
    return {
        "success": True,
        "timestamp": timestamp,
        "status": "operational",
        "last_seen": iso_from_ms(timestamp),
    }


@router.post("/admin/activity", dependencies=[Depends(require_admin_key)])
async def add_activity(request: Request, store: KVStore = Depends(get_store)) -> dict[str, Any]:
    body = parse_activity(await read_json(request))
    added = await history_service.append_history(store, [body.as_history_item()])
    return {"success": True, "entry": added[0].to_dict()}
