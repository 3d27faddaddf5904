"""Store key builders.

Rules:
- Bump the ``:vN`` suffix when a cached shape changes incompatibly.
- Repo names are used verbatim (owner/name) so invalidation can rebuild keys.
"""

from __future__ import annotations

STALE_SUFFIX = ":stale"

# Upstream-backed datasets
REGISTRY = "registry:v1"
FLEET_HEALTH = "fleet:health:v1"
GITHUB_STATS = "github:stats:v1"
GITHUB_EVENTS = "github:events:v1"

# Mutable state written by the API itself
PRESENCE = "presence"
HISTORY = "history"
TEAM = "team"
TASKS = "tasks"
LAST_SEEN = "last_seen"
STARTED = "started"
METRICS = "metrics:v1"
REQUEST_LOG = "request_log"
RATE_LIMIT_PREFIX = "rate_limit:ip:"


def stale(key: str) -> str:
    return f"{key}{STALE_SUFFIX}"


def changelog(repo: str) -> str:
    return f"changelog:{repo}:v1"


def ci_run(repo: str) -> str:
    return f"ci:{repo}:v1"


def ci_trend(repo: str) -> str:
    return f"ci:trend:{repo}:v1"


def repo_tasks(repo: str) -> str:
    return f"tasks:{repo}:v1"


def rate_limit(client_id: str) -> str:
    return f"{RATE_LIMIT_PREFIX}{client_id}"
