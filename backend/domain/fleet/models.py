"""Value types for the tool registry and fleet CI state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Literal, Optional

from backend.core.time_utils import parse_iso_ms

CRITICALITIES = ("critical", "high", "medium")
TIERS = ("ops", "infra", "core", "quality", "policy", "template")

Direction = Literal["up", "down", "flat", "unknown"]

# Run states GitHub reports while a workflow has no conclusion yet.
PENDING_RUN_STATES = frozenset({"queued", "in_progress", "waiting", "pending", "requested"})


class Severity(IntEnum):
    """Fleet health verdict; higher is worse."""

    UNKNOWN = 0
    GREEN = 1
    YELLOW = 2
    RED = 3


@dataclass(frozen=True)
class RegistryEntry:
    repo: str
    criticality: str
    tier: str
    description: str

    @property
    def name(self) -> str:
        return self.repo.split("/", 1)[1] if "/" in self.repo else self.repo

    def to_dict(self) -> dict[str, str]:
        return {
            "repo": self.repo,
            "criticality": self.criticality,
            "tier": self.tier,
            "description": self.description,
        }


@dataclass(frozen=True)
class WorkflowRun:
    conclusion: Optional[str]
    status: Optional[str]
    name: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["WorkflowRun"]:
        """Parse a GitHub workflow run (or a cached copy of one)."""
        if not isinstance(payload, dict):
            return None

        def _clean(value: Any, *, lower: bool = False) -> Optional[str]:
            if not isinstance(value, str):
                return None
            value = value.strip()
            return value.lower() if lower else value

        updated = payload.get("updated_at", payload.get("updatedAt"))
        return cls(
            conclusion=_clean(payload.get("conclusion"), lower=True),
            status=_clean(payload.get("status"), lower=True),
            name=_clean(payload.get("name")),
            updated_at=updated if isinstance(updated, str) and updated else None,
        )

    @classmethod
    def empty(cls) -> "WorkflowRun":
        return cls(conclusion=None, status=None, name=None, updated_at=None)

    def effective_conclusion(self) -> str:
        if self.conclusion:
            return self.conclusion
        if self.status in PENDING_RUN_STATES:
            return self.status
        return "null"

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "conclusion": self.conclusion,
            "status": self.status,
            "name": self.name,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class FleetRepoHealth:
    repo: str
    criticality: str
    last_run: Optional[str]
    conclusion: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "criticality": self.criticality,
            "lastRun": self.last_run,
            "conclusion": self.conclusion,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["FleetRepoHealth"]:
        if not isinstance(payload, dict):
            return None
        repo = payload.get("repo")
        criticality = payload.get("criticality")
        conclusion = payload.get("conclusion")
        last_run = payload.get("lastRun")
        if not isinstance(repo, str) or criticality not in CRITICALITIES or not isinstance(conclusion, str):
            return None
        if last_run is not None and not isinstance(last_run, str):
            return None
        return cls(repo=repo, criticality=criticality, last_run=last_run, conclusion=conclusion)


@dataclass(frozen=True)
class FleetHealthSnapshot:
    status: Severity
    repos: list[FleetRepoHealth] = field(default_factory=list)
    checked_at: str = ""

    def checked_at_ms(self) -> Optional[int]:
        return parse_iso_ms(self.checked_at)

    def is_fresh(self, now: int, ttl_seconds: int) -> bool:
        checked = self.checked_at_ms()
        if checked is None:
            return False
        return now - checked < ttl_seconds * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.name,
            "repos": [repo.to_dict() for repo in self.repos],
            "checkedAt": self.checked_at,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["FleetHealthSnapshot"]:
        """Rebuild a cached snapshot; any shape drift makes it unusable."""
        if not isinstance(payload, dict):
            return None
        status = payload.get("status")
        checked_at = payload.get("checkedAt")
        raw_repos = payload.get("repos")
        if status not in Severity.__members__ or not isinstance(checked_at, str):
            return None
        if not isinstance(raw_repos, list):
            return None
        repos = [FleetRepoHealth.from_dict(item) for item in raw_repos]
        if any(repo is None for repo in repos):
            return None
        return cls(status=Severity[status], repos=repos, checked_at=checked_at)


@dataclass(frozen=True)
class TrendRecord:
    repo: str
    criticality: str
    last5: list[str]
    direction: Direction

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "criticality": self.criticality,
            "last5": list(self.last5),
            "direction": self.direction,
        }


__all__ = [
    "CRITICALITIES",
    "Direction",
    "FleetHealthSnapshot",
    "FleetRepoHealth",
    "RegistryEntry",
    "Severity",
    "TIERS",
    "TrendRecord",
    "WorkflowRun",
]
