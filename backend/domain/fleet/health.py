"""CI conclusion → severity mapping and the fleet-wide fold."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import FleetRepoHealth, RegistryEntry, Severity, WorkflowRun

FAILURE_CONCLUSIONS = frozenset(
    {"failure", "cancelled", "timed_out", "action_required", "startup_failure", "stale"}
)
UNKNOWN_CONCLUSIONS = frozenset({"unknown", "null"})


def severity_for(conclusion: Optional[str]) -> Severity:
    if conclusion is None:
        return Severity.UNKNOWN
    normalized = conclusion.strip().lower()
    if normalized == "success":
        return Severity.GREEN
    if not normalized or normalized in UNKNOWN_CONCLUSIONS:
        return Severity.UNKNOWN
    if normalized in FAILURE_CONCLUSIONS:
        return Severity.RED
    return Severity.YELLOW


def aggregate_status(conclusions: Iterable[Optional[str]]) -> Severity:
    """Worst severity across conclusions; stops at the first RED."""
    worst = Severity.UNKNOWN
    for conclusion in conclusions:
        severity = severity_for(conclusion)
        if severity is Severity.RED:
            return Severity.RED
        if severity > worst:
            worst = severity
    return worst


def build_repo_health(
    entry: RegistryEntry,
    run: Optional[WorkflowRun],
    *,
    has_token: bool,
) -> FleetRepoHealth:
    if not has_token:
        conclusion = "unknown"
    elif run is None:
        conclusion = "unknown"
    else:
        conclusion = run.effective_conclusion()
    return FleetRepoHealth(
        repo=entry.repo,
        criticality=entry.criticality,
        last_run=run.updated_at if run else None,
        conclusion=conclusion,
    )


__all__ = ["FAILURE_CONCLUSIONS", "aggregate_status", "build_repo_health", "severity_for"]
