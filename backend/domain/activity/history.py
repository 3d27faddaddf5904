"""Activity history entries and the capped, newest-first buffer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from backend.core.time_utils import finite_number

HISTORY_LIMIT = 20

Timestamp = Union[int, float]


def derive_hash(timestamp: Timestamp) -> str:
    """Short, deterministic id: last 8 hex digits of the floored timestamp."""
    return format(math.floor(timestamp), "x")[-8:]


def _as_timestamp(value: float) -> Timestamp:
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: Timestamp
    desc: str
    type: str
    hash: str

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "desc": self.desc, "type": self.type, "hash": self.hash}


def normalize_entry(value: Any, fallback_timestamp: Timestamp) -> HistoryEntry:
    """Coerce any stored or submitted value into a HistoryEntry."""
    if not isinstance(value, dict):
        return HistoryEntry(
            timestamp=fallback_timestamp,
            desc="activity",
            type="event",
            hash=derive_hash(fallback_timestamp),
        )

    number = finite_number(value.get("timestamp"))
    timestamp = _as_timestamp(number) if number is not None else fallback_timestamp

    desc = value.get("desc")
    if not isinstance(desc, str):
        message = value.get("message")
        desc = message if isinstance(message, str) else "activity"

    entry_type = value.get("type")
    if not isinstance(entry_type, str):
        entry_type = "event"

    entry_hash = value.get("hash")
    if not isinstance(entry_hash, str) or not entry_hash:
        entry_hash = derive_hash(timestamp)

    return HistoryEntry(timestamp=timestamp, desc=desc, type=entry_type, hash=entry_hash)


def normalize_history(raw: Any, *, now: int) -> list[HistoryEntry]:
    """Reparse every persisted item; entries without a usable timestamp get ``now - index``.

    Uncapped; callers sort by timestamp before truncating.
    """
    if not isinstance(raw, list):
        return []
    return [normalize_entry(item, now - index) for index, item in enumerate(raw)]


def prepend(existing: Iterable[HistoryEntry], *entries: HistoryEntry) -> list[HistoryEntry]:
    """Put ``entries`` (already newest first) in front and keep the newest HISTORY_LIMIT."""
    combined = list(entries) + list(existing)
    return combined[:HISTORY_LIMIT]


def sort_newest_first(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    # sorted() is stable, so equal timestamps keep stored order.
    return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)


def parse_limit(raw: Optional[str]) -> int:
    """Parse a ``limit`` query value into 1..HISTORY_LIMIT (default HISTORY_LIMIT)."""
    if raw is None:
        return HISTORY_LIMIT
    try:
        number = float(raw.strip())
    except ValueError:
        return HISTORY_LIMIT
    if not math.isfinite(number):
        return HISTORY_LIMIT
    limit = math.floor(number)
    if limit < 1:
        return HISTORY_LIMIT
    return min(limit, HISTORY_LIMIT)


__all__ = [
    "HISTORY_LIMIT",
    "HistoryEntry",
    "derive_hash",
    "normalize_entry",
    "normalize_history",
    "parse_limit",
    "prepend",
    "sort_newest_first",
]
