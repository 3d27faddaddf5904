"""Read models and mutations behind the status API routers."""

from .fleet_health import FleetHealthUnavailable, load_fleet_health
from .fleet_score import load_fleet_score
from .fleet_trend import load_fleet_trend
from .github_activity import load_changelog, load_github_events, load_github_stats
from .registry import build_fleet_summary, build_projects, load_registry
from .repo_tasks import load_fleet_tasks

__all__ = [
    "FleetHealthUnavailable",
    "build_fleet_summary",
    "build_projects",
    "load_changelog",
    "load_fleet_health",
    "load_fleet_score",
    "load_fleet_trend",
    "load_fleet_tasks",
    "load_github_events",
    "load_github_stats",
    "load_registry",
]
