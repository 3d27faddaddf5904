"""Tool registry loading and the read models built on it."""

from __future__ import annotations

import logging
from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.apps.status_api.perf.cache.policy import REGISTRY_POLICY
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.result import Failure, Result, Success, UpstreamError
from backend.core.settings import Settings
from backend.core.time_utils import today_iso
from backend.domain.fleet.models import CRITICALITIES, TIERS, RegistryEntry
from backend.domain.fleet.registry import decode_contents, extract_registry_entries

logger = logging.getLogger(__name__)

REGISTRY_FILE = "registry.json"


def registry_path(settings: Settings) -> str:
    return f"/repos/{settings.github_owner}/{settings.registry_repo}/contents/{REGISTRY_FILE}"


async def fetch_registry(github: GitHubSource, settings: Settings) -> Result[list[RegistryEntry], UpstreamError]:
    result = await github.get_json(registry_path(settings))
    if result.is_failure():
        return result
    meta = result.unwrap()
    content = meta.get("content") if isinstance(meta, dict) else None
    if not isinstance(content, str) or not content:
        return Failure(UpstreamError("github", f"{REGISTRY_FILE} has no content"))
    try:
        payload = decode_contents(content)
    except ValueError as exc:
        return Failure(UpstreamError("github", f"{REGISTRY_FILE} is not valid JSON: {exc}"))
    return Success(extract_registry_entries(payload))


def _parse_cached(payload: Any) -> Optional[list[RegistryEntry]]:
    if not isinstance(payload, list):
        return None
    return extract_registry_entries(payload)


def _serialize(entries: list[RegistryEntry]) -> list[dict[str, str]]:
    return [entry.to_dict() for entry in entries]


async def load_registry(
    store: KVStore,
    github: GitHubSource,
    settings: Settings,
) -> readthrough.CacheLoad[list[RegistryEntry]]:
    return await readthrough.load(
        store,
        keys.REGISTRY,
        policy=REGISTRY_POLICY,
        fetch=lambda: fetch_registry(github, settings),
        parse=_parse_cached,
        default=list,
        serialize=_serialize,
        dataset="registry",
    )


def build_fleet_summary(entries: list[RegistryEntry], *, generated_at: str) -> dict[str, Any]:
    repos = sorted(entries, key=lambda entry: entry.repo)
    tiers: dict[str, list[str]] = {tier: [] for tier in TIERS}
    by_criticality: dict[str, list[str]] = {level: [] for level in CRITICALITIES}
    for entry in repos:
        tiers[entry.tier].append(entry.repo)
        by_criticality[entry.criticality].append(entry.repo)
    return {
        "generatedAt": generated_at,
        "totalRepos": len(repos),
        "repos": [{"repo": e.repo, "criticality": e.criticality, "tier": e.tier} for e in repos],
        "tiers": tiers,
        "byCriticality": by_criticality,
        "source": "registry",
    }


def build_projects(entries: list[RegistryEntry], *, now: Optional[int] = None) -> list[dict[str, str]]:
    """Showcase projects: core-tier or critical registry entries."""
    today = today_iso(now)
    return [
        {
            "name": entry.name,
            "description": entry.description,
            "url": f"https://github.com/{entry.repo}",
            "status": "active",
            "last_updated": today,
        }
        for entry in entries
        if entry.tier == "core" or entry.criticality == "critical"
    ]


__all__ = [
    "build_fleet_summary",
    "build_projects",
    "fetch_registry",
    "load_registry",
    "registry_path",
]
