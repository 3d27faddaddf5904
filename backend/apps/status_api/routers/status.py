"""Presence read models: status, uptime, full sync and pulse."""

from typing import Any

from fastapi import APIRouter, Depends

from backend.apps.status_api.dependencies import get_store
from backend.apps.status_api.services import presence
from backend.core.kv_store import KVStore

router = APIRouter(tags=["status"])


@router.get("/status")
async def status(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    return await presence.load_status(store)


@router.get("/health")
async def health(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    return await presence.load_status(store)


@router.get("/status/uptime")
async def uptime(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    return await presence.load_uptime(store)


@router.get("/now")
async def now(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    return await presence.load_now(store)


@router.get("/pulse")
async def pulse(store: KVStore = Depends(get_store)) -> dict[str, Any]:
    return await presence.load_pulse(store)
