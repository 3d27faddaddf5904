"""Registry-derived fleet views."""

from typing import Any

from fastapi import APIRouter, Depends

from backend.apps.status_api.dependencies import get_app_settings, get_github, get_store
from backend.apps.status_api.services.fleet_health import load_fleet_health
from backend.apps.status_api.services.fleet_score import load_fleet_score
from backend.apps.status_api.services.fleet_trend import load_fleet_trend
from backend.apps.status_api.services.registry import build_fleet_summary, load_registry
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso

router = APIRouter(prefix="/fleet", tags=["fleet"])


@router.get("/summary")
async def fleet_summary(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    registry = await load_registry(store, github, settings)
    return build_fleet_summary(registry.value, generated_at=utc_now_iso())


@router.get("/health")
async def fleet_health(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    snapshot = await load_fleet_health(store, github, settings)
    return snapshot.to_dict()


@router.get("/trend")
async def fleet_trend(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    return await load_fleet_trend(store, github, settings)


@router.get("/score")
async def fleet_score(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    return await load_fleet_score(store, github, settings)
