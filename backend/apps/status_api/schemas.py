"""Request bodies for the mutation endpoints.

Bodies are read as raw JSON and parsed here so every rejection carries the
same ``{"error": "Invalid body..."}`` message regardless of what was wrong.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from backend.core.time_utils import finite_number

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

PRESENCE_FIELDS = ("presence", "team", "activity")


class InvalidBody(ValueError):
    """A mutation body that cannot be accepted; the message is returned verbatim."""

    def __init__(self, message: str = "Invalid body") -> None:
        super().__init__(message)
        self.message = message


class PresenceState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    state: Optional[str] = None
    message: Optional[str] = None
    ttl: Any = None


class SetPresenceIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    presence: Union[PresenceState, str]
    team: dict[str, Any]
    activity: dict[str, Any]
    tasks: Any = None
    ttl: Any = None

    @property
    def has_tasks(self) -> bool:
        return "tasks" in self.model_fields_set

    @property
    def state(self) -> Optional[str]:
        if isinstance(self.presence, str):
            return self.presence
        return self.presence.state

    @property
    def message(self) -> Optional[str]:
        return None if isinstance(self.presence, str) else self.presence.message

    def ttl_seconds(self, default: int) -> int:
        raw = self.ttl if isinstance(self.presence, str) else (self.presence.ttl or self.ttl)
        ttl = finite_number(raw)
        if ttl is None or ttl <= 0:
            return default
        return int(ttl)


class HeartbeatIn(BaseModel):
    history: list[dict[str, Any]] = Field(default_factory=list)
    activity: Optional[dict[str, Any]] = None


class ActivityIn(BaseModel):
    desc: NonEmptyStr
    type: NonEmptyStr

    def as_history_item(self) -> dict[str, str]:
        return {"desc": self.desc, "type": self.type}


class TaskIn(BaseModel):
    """Stored tasks are free-form objects; only ``id`` has a meaning."""

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None


class TaskRef(BaseModel):
    id: Union[int, str]


def _missing_presence_fields(payload: dict[str, Any]) -> list[str]:
    missing: list[str] = []
    presence = payload.get("presence")
    if isinstance(presence, str):
        if not presence.strip():
            missing.append("presence")
    elif not isinstance(presence, dict):
        missing.append("presence")

    team = payload.get("team")
    if not isinstance(team, dict) or not team:
        missing.append("team")

    activity = payload.get("activity")
    desc = activity.get("desc") if isinstance(activity, dict) else None
    if not isinstance(desc, str) or not desc.strip():
        missing.append("activity")
    return missing


def _presence_error(fields: list[str]) -> InvalidBody:
    return InvalidBody(
        "Invalid body: required non-empty presence, team, and activity "
        f"({', '.join(fields)})"
    )


def parse_set_presence(payload: Any) -> SetPresenceIn:
    if not isinstance(payload, dict):
        raise _presence_error(list(PRESENCE_FIELDS))
    missing = _missing_presence_fields(payload)
    if missing:
        raise _presence_error(missing)
    try:
        return SetPresenceIn.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise _presence_error(fields or list(PRESENCE_FIELDS)) from exc


def parse_heartbeat(payload: Any) -> HeartbeatIn:
    """An absent body is a plain ping."""
    if payload is None:
        return HeartbeatIn()
    if not isinstance(payload, dict):
        raise InvalidBody()
    history = payload.get("history")
    if history is not None:
        if not isinstance(history, list):
            raise InvalidBody("Invalid body: history must be an array")
        if any(not isinstance(item, dict) for item in history):
            raise InvalidBody("Invalid body: history entries must be objects")
    activity = payload.get("activity")
    if activity is not None and not isinstance(activity, dict):
        raise InvalidBody("Invalid body: activity must be an object")
    return HeartbeatIn(history=history or [], activity=activity)


def parse_activity(payload: Any) -> ActivityIn:
    if not isinstance(payload, dict):
        raise InvalidBody()
    try:
        return ActivityIn.model_validate(payload)
    except ValidationError as exc:
        raise InvalidBody() from exc


__all__ = [
    "ActivityIn",
    "HeartbeatIn",
    "InvalidBody",
    "SetPresenceIn",
    "TaskIn",
    "TaskRef",
    "parse_activity",
    "parse_heartbeat",
    "parse_set_presence",
]
