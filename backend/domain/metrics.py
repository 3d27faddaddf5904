"""Request counters reconciled by element-wise maximum."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional


def to_counter(value: Any) -> int:
    """Non-negative integer from any JSON value; junk reads as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(math.floor(value))


@dataclass
class MetricsState:
    requests_total: int = 0
    kv_hits: int = 0
    kv_misses: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["MetricsState"]:
        if not isinstance(payload, dict):
            return None
        return cls(
            requests_total=to_counter(payload.get("requests_total")),
            kv_hits=to_counter(payload.get("kv_hits")),
            kv_misses=to_counter(payload.get("kv_misses")),
        )

    def merged(self, other: Optional["MetricsState"]) -> "MetricsState":
        """Element-wise maximum; never sums and never lowers a counter."""
        if other is None:
            return self.copy()
        return MetricsState(
            requests_total=max(self.requests_total, other.requests_total),
            kv_hits=max(self.kv_hits, other.kv_hits),
            kv_misses=max(self.kv_misses, other.kv_misses),
        )

    def copy(self) -> "MetricsState":
        return MetricsState(self.requests_total, self.kv_hits, self.kv_misses)

    def to_dict(self) -> dict[str, int]:
        return {
            "requests_total": self.requests_total,
            "kv_hits": self.kv_hits,
            "kv_misses": self.kv_misses,
        }


__all__ = ["MetricsState", "to_counter"]
