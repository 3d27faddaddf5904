"""Account-level GitHub feeds."""

from typing import Any

from fastapi import APIRouter, Depends

from backend.apps.status_api.dependencies import get_app_settings, get_github, get_store
from backend.apps.status_api.services.github_activity import (
    load_changelog,
    load_github_events,
    load_github_stats,
)
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso

router = APIRouter(tags=["github"])


@router.get("/github/stats")
async def github_stats(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
) -> dict[str, Any]:
    return await load_github_stats(store, github)


@router.get("/github/events")
async def github_events(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
) -> dict[str, Any]:
    return {"events": await load_github_events(store, github)}


@router.get("/changelog")
async def changelog(
    store: KVStore = Depends(get_store),
    github: GitHubSource = Depends(get_github),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    if not github.has_token:
        return {"commits": [], "error": "no token", "timestamp": utc_now_iso()}
    loaded = await load_changelog(store, github, settings)
    return {
        "commits": [entry.to_dict() for entry in loaded.value],
        "cached": loaded.cached,
        "timestamp": utc_now_iso(),
    }
