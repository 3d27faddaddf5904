"""Account-level GitHub feeds: stats, public events and the commit changelog."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.apps.status_api.perf.cache.policy import (
    CHANGELOG_POLICY,
    GITHUB_EVENTS_POLICY,
    GITHUB_STATS_POLICY,
)
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.result import Failure, Result, Success, UpstreamError
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso
from backend.domain.activity.feed import (
    CHANGELOG_LIMIT,
    ChangelogEntry,
    build_github_stats,
    normalize_changelog,
    normalize_events,
    parse_cached_events,
)

logger = logging.getLogger(__name__)

EVENTS_PAGE_SIZE = 30
STATS_FIELDS = ("repoCount", "totalStars", "lastPushedAt", "lastPushedRepo", "cachedAt")


# Stats ------------------------------------------------------------------


async def fetch_github_stats(github: GitHubSource) -> Result[dict[str, Any], UpstreamError]:
    owner = github.owner
    user_result, repos_result = await asyncio.gather(
        github.get_json(f"/users/{owner}"),
        github.get_json(f"/users/{owner}/repos", params={"per_page": 100, "type": "owner"}),
    )
    if user_result.is_failure() and repos_result.is_failure():
        return repos_result
    return Success(
        build_github_stats(
            user_result.unwrap_or(None),
            repos_result.unwrap_or([]),
            now_iso=utc_now_iso(),
        )
    )


def _parse_stats(payload: Any) -> Optional[dict[str, Any]]:
    if not isinstance(payload, dict) or not all(field in payload for field in STATS_FIELDS):
        return None
    if not isinstance(payload["repoCount"], int) or not isinstance(payload["totalStars"], int):
        return None
    return {field: payload[field] for field in STATS_FIELDS}


def _empty_stats() -> dict[str, Any]:
    return build_github_stats(None, [], now_iso=utc_now_iso())


async def load_github_stats(store: KVStore, github: GitHubSource) -> dict[str, Any]:
    loaded = await readthrough.load(
        store,
        keys.GITHUB_STATS,
        policy=GITHUB_STATS_POLICY,
        fetch=lambda: fetch_github_stats(github),
        parse=_parse_stats,
        default=_empty_stats,
        dataset="github_stats",
    )
    return loaded.value


# Events -----------------------------------------------------------------


async def fetch_github_events(github: GitHubSource) -> Result[list[dict[str, str]], UpstreamError]:
    result = await github.get_json(f"/users/{github.owner}/events", params={"per_page": EVENTS_PAGE_SIZE})
    return result.map(lambda body: normalize_events(body, owner=github.owner))


async def load_github_events(store: KVStore, github: GitHubSource) -> list[dict[str, str]]:
    loaded = await readthrough.load(
        store,
        keys.GITHUB_EVENTS,
        policy=GITHUB_EVENTS_POLICY,
        fetch=lambda: fetch_github_events(github),
        parse=parse_cached_events,
        default=list,
        dataset="github_events",
    )
    return loaded.value


# Changelog --------------------------------------------------------------


async def fetch_changelog(github: GitHubSource, repo: str) -> Result[list[ChangelogEntry], UpstreamError]:
    result = await github.get_json(f"/repos/{repo}/commits", params={"per_page": CHANGELOG_LIMIT})
    if result.is_failure():
        return result
    entries = normalize_changelog(result.unwrap(), now_iso=utc_now_iso())
    if entries is None:
        return Failure(UpstreamError("github", "commit list is not an array"))
    return Success(entries)


async def load_changelog(
    store: KVStore,
    github: GitHubSource,
    settings: Settings,
) -> readthrough.CacheLoad[list[ChangelogEntry]]:
    repo = settings.changelog_repo
    return await readthrough.load(
        store,
        keys.changelog(repo),
        policy=CHANGELOG_POLICY,
        fetch=lambda: fetch_changelog(github, repo),
        parse=lambda payload: normalize_changelog(payload, now_iso=utc_now_iso()),
        default=list,
        serialize=lambda entries: [entry.to_dict() for entry in entries],
        dataset="changelog",
    )


__all__ = [
    "fetch_changelog",
    "fetch_github_events",
    "fetch_github_stats",
    "load_changelog",
    "load_github_events",
    "load_github_stats",
]
