"""Tool registry browsing, showcase projects and per-repo open tasks."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.apps.status_api.dependencies import get_app_settings, get_github, get_store
from backend.apps.status_api.services.registry import build_projects, load_registry
from backend.apps.status_api.services.repo_tasks import load_fleet_tasks
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso
from backend.domain.fleet.registry import find_entry, search_entries

router = APIRouter(tags=["tools"])


@router.get("/tools")
async def list_tools(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    registry = await load_registry(store, github, settings)
    return {
        "tools": [entry.to_dict() for entry in registry.value],
        "count": len(registry.value),
        "cached": registry.cached,
        "timestamp": utc_now_iso(),
    }


@router.get("/tools/search")
async def search_tools(
    q: Optional[str] = Query(default=None),
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    query = (q or "").strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing query parameter: q")
    registry = await load_registry(store, github, settings)
    matches = search_entries(registry.value, query)
    return {
        "query": query,
        "count": len(matches),
        "tools": [entry.to_dict() for entry in matches],
        "cached": registry.cached,
        "timestamp": utc_now_iso(),
    }


@router.get("/tools/{repo:path}")
async def get_tool(
    repo: str,
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    registry = await load_registry(store, github, settings)
    match = find_entry(registry.value, repo)
    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tool Not Found")
    return {"tool": match.to_dict(), "cached": registry.cached, "timestamp": utc_now_iso()}


@router.get("/projects")
async def projects(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    registry = await load_registry(store, github, settings)
    return {"projects": build_projects(registry.value), "source": "registry", "cached": True}


@router.get("/tasks")
async def repo_tasks(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    return await load_fleet_tasks(store, github, settings)
