"""Weighted 0-100 health score for the fleet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .health import severity_for
from .models import FleetHealthSnapshot, Severity

CRITICALITY_WEIGHTS = {"critical": 3, "high": 2, "medium": 1}
SEVERITY_POINTS = {Severity.GREEN: 100, Severity.YELLOW: 50, Severity.RED: 0}
GRADE_THRESHOLDS = ((90, "A"), (75, "B"), (50, "C"), (25, "D"))


@dataclass(frozen=True)
class FleetScore:
    score: Optional[int]
    grade: str
    status: str
    scored_repos: int
    total_repos: int
    breakdown: dict[str, int]
    checked_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade,
            "status": self.status,
            "scoredRepos": self.scored_repos,
            "totalRepos": self.total_repos,
            "breakdown": dict(self.breakdown),
            "checkedAt": self.checked_at,
        }


def grade_for(score: Optional[int]) -> str:
    if score is None:
        return "N/A"
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def compute_fleet_score(snapshot: FleetHealthSnapshot) -> FleetScore:
    """Criticality-weighted mean of per-repo points; UNKNOWN repos are not scored."""
    breakdown = {severity.name: 0 for severity in sorted(Severity, reverse=True)}
    weighted = 0
    total_weight = 0
    for repo in snapshot.repos:
        severity = severity_for(repo.conclusion)
        breakdown[severity.name] += 1
        if severity is Severity.UNKNOWN:
            continue
        weight = CRITICALITY_WEIGHTS.get(repo.criticality, 1)
        weighted += weight * SEVERITY_POINTS[severity]
        total_weight += weight

    score = round(weighted / total_weight) if total_weight else None
    return FleetScore(
        score=score,
        grade=grade_for(score),
        status=snapshot.status.name,
        scored_repos=len(snapshot.repos) - breakdown[Severity.UNKNOWN.name],
        total_repos=len(snapshot.repos),
        breakdown=breakdown,
        checked_at=snapshot.checked_at,
    )


__all__ = ["CRITICALITY_WEIGHTS", "FleetScore", "compute_fleet_score", "grade_for"]
