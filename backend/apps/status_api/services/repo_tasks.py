"""Open tasks read from each registry repo's TASKS.md."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys, readthrough
from backend.apps.status_api.perf.cache.policy import REPO_TASKS_POLICY
from backend.apps.status_api.services.registry import load_registry
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.result import Failure, Result, Success, UpstreamError
from backend.core.settings import Settings
from backend.domain.activity.tasks import RepoTask, parse_open_tasks
from backend.domain.fleet.registry import decode_text_contents

logger = logging.getLogger(__name__)

TASKS_FILE = "TASKS.md"


def tasks_path(repo: str, owner: str) -> str:
    name = repo.split("/", 1)[1] if "/" in repo else repo
    return f"/repos/{owner}/{name}/contents/{TASKS_FILE}"


async def fetch_repo_tasks(github: GitHubSource, repo: str) -> Result[list[RepoTask], UpstreamError]:
    result = await github.get_json(tasks_path(repo, github.owner))
    if result.is_failure():
        return result
    meta = result.unwrap()
    content = meta.get("content") if isinstance(meta, dict) else None
    if not isinstance(content, str) or not content:
        return Failure(UpstreamError("github", f"{repo} has no {TASKS_FILE}"))
    try:
        markdown = decode_text_contents(content)
    except ValueError as exc:
        return Failure(UpstreamError("github", f"{repo}/{TASKS_FILE} could not be decoded: {exc}"))
    return Success(parse_open_tasks(markdown))


def _parse_cached(payload: Any) -> Optional[list[RepoTask]]:
    if not isinstance(payload, list):
        return None
    tasks: list[RepoTask] = []
    for item in payload:
        if not isinstance(item, dict):
            return None
        priority, text = item.get("priority"), item.get("text")
        if not isinstance(priority, str) or not isinstance(text, str):
            return None
        tasks.append(RepoTask(priority=priority, text=text, done=bool(item.get("done", False))))
    return tasks


async def load_repo_tasks(store: KVStore, github: GitHubSource, repo: str) -> list[RepoTask]:
    loaded = await readthrough.load(
        store,
        keys.repo_tasks(repo),
        policy=REPO_TASKS_POLICY,
        fetch=lambda: fetch_repo_tasks(github, repo),
        parse=_parse_cached,
        default=list,
        serialize=lambda tasks: [task.to_dict() for task in tasks],
        dataset="repo_tasks",
    )
    return loaded.value


async def load_fleet_tasks(store: KVStore, github: GitHubSource, settings: Settings) -> list[dict[str, Any]]:
    registry = await load_registry(store, github, settings)
    repos = [entry.repo for entry in registry.value]
    per_repo = await asyncio.gather(*(load_repo_tasks(store, github, repo) for repo in repos))
    return [
        {"repo": repo, "tasks": [task.to_dict() for task in tasks]}
        for repo, tasks in zip(repos, per_repo)
    ]


__all__ = ["fetch_repo_tasks", "load_fleet_tasks", "load_repo_tasks", "tasks_path"]
