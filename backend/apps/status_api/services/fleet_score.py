from __future__ import annotations

from typing import Any, Optional

from backend.apps.status_api.services.fleet_health import load_fleet_health
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.domain.fleet.score import compute_fleet_score


async def load_fleet_score(
    store: KVStore,
    github: GitHubSource,
    settings: Settings,
    *,
    now: Optional[int] = None,
) -> dict[str, Any]:
    """Score derived from the health snapshot; raises FleetHealthUnavailable like it."""
    snapshot = await load_fleet_health(store, github, settings, now=now)
    return compute_fleet_score(snapshot).to_dict()


__all__ = ["load_fleet_score"]
