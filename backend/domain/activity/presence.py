"""Presence records and the online/offline detector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from backend.core.time_utils import finite_number

OFFLINE_THRESHOLD_MS = 10 * 60 * 1000
DEFAULT_PRESENCE_STATE = "active"
SIGNAL = "⚡"


def is_online(last_seen: Optional[float], now: int) -> bool:
    """Online iff a finite last-seen timestamp is at most ten minutes old."""
    if last_seen is None:
        return False
    value = finite_number(last_seen)
    if value is None:
        return False
    return now - value <= OFFLINE_THRESHOLD_MS


@dataclass(frozen=True)
class PresenceRecord:
    state: str
    timestamp: Optional[float]
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["PresenceRecord"]:
        if not isinstance(payload, dict):
            return None
        state = payload.get("state")
        message = payload.get("message")
        return cls(
            state=state if isinstance(state, str) and state else DEFAULT_PRESENCE_STATE,
            timestamp=finite_number(payload.get("timestamp")),
            message=message if isinstance(message, str) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"state": self.state, "timestamp": self.timestamp}
        if self.message is not None:
            payload["message"] = self.message
        return payload


def count_active_agents(team: Any) -> int:
    if isinstance(team, list):
        return sum(1 for member in team if isinstance(member, dict) and member.get("status") == "active")
    if isinstance(team, dict):
        return sum(
            1
            for member in team.values()
            if member == "active" or (isinstance(member, dict) and member.get("status") == "active")
        )
    return 0


__all__ = [
    "DEFAULT_PRESENCE_STATE",
    "OFFLINE_THRESHOLD_MS",
    "PresenceRecord",
    "SIGNAL",
    "count_active_agents",
    "is_online",
]
