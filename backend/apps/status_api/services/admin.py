"""Operator actions: cache invalidation and the stored task list."""

from __future__ import annotations

import logging
from typing import Any

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.core.kv_store import KVStore
from backend.core.settings import Settings
from backend.domain.fleet.models import RegistryEntry
from backend.domain.fleet.registry import extract_registry_entries

logger = logging.getLogger(__name__)

DATASET_KEYS = (
    keys.REGISTRY,
    keys.FLEET_HEALTH,
    keys.GITHUB_STATS,
    keys.GITHUB_EVENTS,
)


def _registry_tier(payload: Any) -> list[RegistryEntry]:
    return extract_registry_entries(payload) if isinstance(payload, list) else []


async def _known_repos(store: KVStore) -> set[str]:
    """Repos named by whichever registry copies are still stored."""
    repos: set[str] = set()
    for key in (keys.REGISTRY, keys.stale(keys.REGISTRY)):
        entries = await readthrough.read_tier(store, key, _registry_tier) or []
        repos.update(entry.repo for entry in entries)
    return repos


async def collect_cache_keys(store: KVStore, settings: Settings) -> list[str]:
    base = set(DATASET_KEYS)
    base.add(keys.changelog(settings.changelog_repo))
    for repo in await _known_repos(store):
        base.update((keys.ci_run(repo), keys.ci_trend(repo), keys.repo_tasks(repo)))
    return sorted(base)


async def refresh_caches(store: KVStore, settings: Settings) -> list[str]:
    """Delete primary and stale copies of every cached dataset; returns sorted key names."""
    removed: set[str] = set()
    for key in await collect_cache_keys(store, settings):
        removed.update(await readthrough.invalidate(store, key))
    names = sorted(removed)
    logger.info("Invalidated %d cache keys", len(names))
    return names


# Task list --------------------------------------------------------------


async def list_tasks(store: KVStore) -> list[Any]:
    tasks = await store.get_json(keys.TASKS, [])
    return tasks if isinstance(tasks, list) else []


async def add_task(store: KVStore, task: dict[str, Any]) -> list[Any]:
    tasks = await list_tasks(store)
    tasks.append(task)
    await store.put_json(keys.TASKS, tasks)
    return tasks


async def update_task(store: KVStore, task: dict[str, Any]) -> list[Any]:
    """Shallow-merge ``task`` into every stored task with the same ``id``."""
    task_id = task.get("id")
    tasks = [
        {**item, **task} if isinstance(item, dict) and item.get("id") == task_id else item
        for item in await list_tasks(store)
    ]
    await store.put_json(keys.TASKS, tasks)
    return tasks


async def delete_task(store: KVStore, task_id: Any) -> list[Any]:
    tasks = [
        item
        for item in await list_tasks(store)
        if not (isinstance(item, dict) and item.get("id") == task_id)
    ]
    await store.put_json(keys.TASKS, tasks)
    return tasks


__all__ = [
    "DATASET_KEYS",
    "add_task",
    "collect_cache_keys",
    "delete_task",
    "list_tasks",
    "refresh_caches",
    "update_task",
]
