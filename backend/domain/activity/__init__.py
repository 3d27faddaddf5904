"""Presence, activity history and GitHub activity feeds."""

from .history import HISTORY_LIMIT, HistoryEntry, normalize_entry, parse_limit
from .presence import PresenceRecord, count_active_agents, is_online
from .tasks import RepoTask, parse_open_tasks

__all__ = [
    "HISTORY_LIMIT",
    "HistoryEntry",
    "PresenceRecord",
    "RepoTask",
    "count_active_agents",
    "is_online",
    "normalize_entry",
    "parse_limit",
    "parse_open_tasks",
]
