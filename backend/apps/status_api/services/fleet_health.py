"""Fleet-wide CI health snapshot.

The snapshot is recomputed at most every FLEET_HEALTH_POLICY.ttl_seconds.
When recomputation fails part-way the last snapshot is served whatever its
age; with no snapshot anywhere the caller gets FleetHealthUnavailable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.apps.status_api.perf.cache.policy import CI_RUN_POLICY, FLEET_HEALTH_POLICY
from backend.apps.status_api.perf.metrics import prometheus
from backend.apps.status_api.services.registry import load_registry
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.result import UpstreamError
from backend.core.settings import Settings
from backend.core.time_utils import iso_from_ms, now_ms
from backend.domain.fleet.health import aggregate_status, build_repo_health
from backend.domain.fleet.models import FleetHealthSnapshot, RegistryEntry, WorkflowRun

logger = logging.getLogger(__name__)

RunLookup = Callable[[str], Awaitable[Optional[WorkflowRun]]]


class FleetHealthUnavailable(RuntimeError):
    """No health snapshot can be computed or recovered."""


class RunLookupError(RuntimeError):
    def __init__(self, repo: str, error: UpstreamError) -> None:
        super().__init__(f"latest run lookup failed for {repo}: {error}")
        self.repo = repo
        self.error = error


async def load_latest_run(store: KVStore, github: GitHubSource, repo: str) -> Optional[WorkflowRun]:
    """Most recent workflow run for a repo, cached per repo without a stale copy.

    Raises RunLookupError when the upstream call fails.
    """
    key = keys.ci_run(repo)
    cached = await readthrough.read_tier(store, key, WorkflowRun.from_payload)
    if cached is not None:
        return cached
    if not github.has_token:
        return None

    result = await github.get_json(f"/repos/{repo}/actions/runs", params={"per_page": 1})
    if result.is_failure():
        raise RunLookupError(repo, result.error)

    body = result.unwrap()
    runs = body.get("workflow_runs") if isinstance(body, dict) else None
    if not isinstance(runs, list) or not runs:
        run = WorkflowRun.empty()
    else:
        run = WorkflowRun.from_payload(runs[0])
        if run is None:
            return None
    await readthrough.write_tiers(store, key, run.to_dict(), policy=CI_RUN_POLICY)
    return run


async def aggregate(
    entries: list[RegistryEntry],
    run_lookup: RunLookup,
    *,
    has_token: bool,
    now: Optional[int] = None,
) -> FleetHealthSnapshot:
    """Look up every repo concurrently and fold the conclusions into one verdict."""
    runs = await asyncio.gather(*(run_lookup(entry.repo) for entry in entries))
    repos = [build_repo_health(entry, run, has_token=has_token) for entry, run in zip(entries, runs)]
    return FleetHealthSnapshot(
        status=aggregate_status(repo.conclusion for repo in repos),
        repos=repos,
        checked_at=iso_from_ms(now_ms() if now is None else now),
    )


async def load_fleet_health(
    store: KVStore,
    github: GitHubSource,
    settings: Settings,
    *,
    now: Optional[int] = None,
) -> FleetHealthSnapshot:
    current = now_ms() if now is None else now
    cached = await readthrough.read_tier(store, keys.FLEET_HEALTH, FleetHealthSnapshot.from_dict)
    if cached is not None and cached.is_fresh(current, FLEET_HEALTH_POLICY.ttl_seconds):
        return cached

    try:
        registry = await load_registry(store, github, settings)
        snapshot = await aggregate(
            registry.value,
            lambda repo: load_latest_run(store, github, repo),
            has_token=github.has_token,
            now=current,
        )
    except RunLookupError as exc:
        logger.warning("Fleet health refresh failed: %s", exc)
        fallback = cached or await readthrough.read_tier(
            store, keys.stale(keys.FLEET_HEALTH), FleetHealthSnapshot.from_dict
        )
        if fallback is not None:
            prometheus.record_cache_load("fleet_health", "stale")
            return fallback
        prometheus.FLEET_HEALTH_UNAVAILABLE_TOTAL.inc()
        raise FleetHealthUnavailable(str(exc)) from exc

    await readthrough.write_tiers(store, keys.FLEET_HEALTH, snapshot.to_dict(), policy=FLEET_HEALTH_POLICY)
    prometheus.record_cache_load("fleet_health", "miss")
    return snapshot


__all__ = [
    "FleetHealthUnavailable",
    "RunLookupError",
    "aggregate",
    "load_fleet_health",
    "load_latest_run",
]
