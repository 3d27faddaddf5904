"""Direction of recent CI outcomes for a single repo."""

from __future__ import annotations

import math
from typing import Any, Sequence

from .health import FAILURE_CONCLUSIONS
from .models import Direction

TREND_WINDOW = 5


def trend_score(conclusion: str) -> int:
    normalized = conclusion.strip().lower()
    if normalized == "success":
        return 2
    if normalized in {"neutral", "skipped"}:
        return 1
    if normalized in FAILURE_CONCLUSIONS:
        return 0
    return 1


def _mean(values: Sequence[int]) -> float:
    return sum(values) / len(values)


def trend_direction(conclusions: Sequence[str]) -> Direction:
    """Direction for conclusions ordered newest first."""
    if not conclusions:
        return "unknown"
    if len(conclusions) == 1:
        return "flat"

    scores = [trend_score(item) for item in conclusions]
    newest, oldest = scores[0], scores[-1]
    if newest > oldest:
        return "up"
    if newest < oldest:
        return "down"

    split = math.ceil(len(scores) / 2)
    recent, earlier = _mean(scores[:split]), _mean(scores[split:])
    if recent > earlier:
        return "up"
    if recent < earlier:
        return "down"
    return "flat"


def normalize_conclusions(payload: Any) -> list[str] | None:
    """Parse a cached conclusion list; None when the payload is not a list."""
    if not isinstance(payload, list):
        return None
    cleaned = [item.strip().lower() for item in payload[:TREND_WINDOW] if isinstance(item, str)]
    return [item for item in cleaned if item]


__all__ = ["TREND_WINDOW", "normalize_conclusions", "trend_direction", "trend_score"]
