"""Per-repo CI trend over the last few workflow runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.apps.status_api.perf.cache.policy import CI_TREND_POLICY
from backend.apps.status_api.services.registry import load_registry
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.result import Result, Success, UpstreamError
from backend.core.settings import Settings
from backend.core.time_utils import iso_from_ms, now_ms
from backend.domain.fleet.models import RegistryEntry, TrendRecord, WorkflowRun
from backend.domain.fleet.trend import TREND_WINDOW, normalize_conclusions, trend_direction

logger = logging.getLogger(__name__)


async def fetch_conclusions(github: GitHubSource, repo: str) -> Result[list[str], UpstreamError]:
    result = await github.get_json(f"/repos/{repo}/actions/runs", params={"per_page": TREND_WINDOW})
    if result.is_failure():
        return result
    body = result.unwrap()
    runs = body.get("workflow_runs") if isinstance(body, dict) else None
    if not isinstance(runs, list):
        return Success([])
    parsed = (WorkflowRun.from_payload(run) for run in runs[:TREND_WINDOW])
    return Success([run.effective_conclusion() for run in parsed if run is not None])


async def load_conclusions(store: KVStore, github: GitHubSource, repo: str) -> list[str]:
    """Newest-first conclusions (at most five); no credential means no data."""
    if not github.has_token:
        return []
    loaded = await readthrough.load(
        store,
        keys.ci_trend(repo),
        policy=CI_TREND_POLICY,
        fetch=lambda: fetch_conclusions(github, repo),
        parse=normalize_conclusions,
        default=list,
        dataset="ci_trend",
    )
    return loaded.value


async def build_trend_record(store: KVStore, github: GitHubSource, entry: RegistryEntry) -> TrendRecord:
    conclusions = await load_conclusions(store, github, entry.repo)
    return TrendRecord(
        repo=entry.repo,
        criticality=entry.criticality,
        last5=conclusions,
        direction=trend_direction(conclusions),
    )


async def load_fleet_trend(
    store: KVStore,
    github: GitHubSource,
    settings: Settings,
    *,
    now: Optional[int] = None,
) -> dict[str, Any]:
    registry = await load_registry(store, github, settings)
    records = await asyncio.gather(*(build_trend_record(store, github, entry) for entry in registry.value))
    records = sorted(records, key=lambda record: record.repo)
    return {
        "generatedAt": iso_from_ms(now_ms() if now is None else now),
        "totalRepos": len(records),
        "repos": [record.to_dict() for record in records],
    }


__all__ = ["build_trend_record", "fetch_conclusions", "load_conclusions", "load_fleet_trend"]
