from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Any, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def iso_from_ms(value: float) -> str:
    """Render epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso(now: Optional[int] = None) -> str:
    return iso_from_ms(now_ms() if now is None else now)


def today_iso(now: Optional[int] = None) -> str:
    return utc_now_iso(now)[:10]


def parse_iso_ms(value: Any) -> Optional[int]:
    """Parse an ISO-8601 timestamp into epoch milliseconds, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def finite_number(value: Any) -> Optional[float]:
    """Return value as a float when it is a finite real number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def parse_epoch_ms(raw: Optional[str]) -> Optional[int]:
    """Parse a stored epoch-ms string; anything non-finite is None."""
    if raw is None:
        return None
    try:
        number = float(raw.strip())
    except (AttributeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


__all__ = [
    "finite_number",
    "iso_from_ms",
    "now_ms",
    "parse_epoch_ms",
    "parse_iso_ms",
    "today_iso",
    "utc_now_iso",
]
