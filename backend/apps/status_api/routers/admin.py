"""Operator endpoints: cache refresh, stored tasks and the request log."""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.apps.status_api.dependencies import get_app_settings, get_store
from backend.apps.status_api.schemas import TaskIn, TaskRef
from backend.apps.status_api.security import require_admin_key, require_refresh_token
from backend.apps.status_api.services import admin as admin_service
from backend.apps.status_api.services.request_log import read_request_log
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso

router = APIRouter(prefix="/admin", tags=["admin"])

NO_STORE = {"Cache-Control": "no-store"}


@router.post("/refresh", dependencies=[Depends(require_refresh_token)])
async def refresh(
    store: KVStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    removed = await admin_service.refresh_caches(store, settings)
    return JSONResponse(
        {
            "success": True,
            "invalidated": len(removed),
            "keys": removed,
            "timestamp": utc_now_iso(),
        },
        headers=NO_STORE,
    )


@router.get("/tasks", dependencies=[Depends(require_admin_key)])
async def list_tasks(store: KVStore = Depends(get_store)) -> list[Any]:
    return await admin_service.list_tasks(store)


@router.post("/tasks", dependencies=[Depends(require_admin_key)])
async def create_task(task: TaskIn, store: KVStore = Depends(get_store)) -> dict[str, Any]:
    await admin_service.add_task(store, task.model_dump(exclude_unset=True))
    return {"success": True}


@router.put("/tasks", dependencies=[Depends(require_admin_key)])
async def update_task(task: TaskIn, store: KVStore = Depends(get_store)) -> dict[str, Any]:
    await admin_service.update_task(store, task.model_dump(exclude_unset=True))
    return {"success": True}


@router.delete("/tasks", dependencies=[Depends(require_admin_key)])
async def delete_task(ref: TaskRef, store: KVStore = Depends(get_store)) -> dict[str, Any]:
    await admin_service.delete_task(store, ref.id)
    return {"success": True}


@router.get("/requests", dependencies=[Depends(require_admin_key)])
async def recent_requests(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    entries = await read_request_log(store)
    return {"requests": entries, "count": len(entries)}
