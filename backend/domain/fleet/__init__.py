"""Tool registry and fleet CI health domain."""

from .health import aggregate_status, build_repo_health, severity_for
from .models import (
    FleetHealthSnapshot,
    FleetRepoHealth,
    RegistryEntry,
    Severity,
    TrendRecord,
    WorkflowRun,
)
from .registry import extract_registry_entries
from .score import compute_fleet_score
from .trend import trend_direction

__all__ = [
    "FleetHealthSnapshot",
    "FleetRepoHealth",
    "RegistryEntry",
    "Severity",
    "TrendRecord",
    "WorkflowRun",
    "aggregate_status",
    "build_repo_health",
    "compute_fleet_score",
    "extract_registry_entries",
    "severity_for",
    "trend_direction",
]
