"""Fixed-window request limiter for public read paths.

One window per client identity lives in the KV store as
``{"count": n, "resetAt": epoch_ms}``. The window is fixed, not sliding: a
client can get up to 2N-1 requests through across a window boundary.
Concurrent requests from one client race on the same key (last write wins).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from backend.apps.status_api.perf.cache import keys
from backend.core.kv_store import KVStore
from backend.core.time_utils import finite_number, now_ms

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
WINDOW_MS = WINDOW_SECONDS * 1000


@dataclass(frozen=True)
class RateLimitWindow:
    count: int
    reset_at: int

    def to_dict(self) -> dict[str, int]:
        return {"count": self.count, "resetAt": self.reset_at}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int
    remaining: int


def parse_window(payload: Any, now: int) -> Optional[RateLimitWindow]:
    """Return the stored window while it is valid, else None."""
    if not isinstance(payload, dict):
        return None
    count = finite_number(payload.get("count"))
    reset_at = finite_number(payload.get("resetAt"))
    if count is None or reset_at is None or count < 0:
        return None
    if reset_at <= now:
        return None
    return RateLimitWindow(count=int(count), reset_at=int(reset_at))


class FixedWindowRateLimiter:
    """Allow at most ``limit`` requests per client per WINDOW_SECONDS."""

    def __init__(self, store: KVStore, *, limit: int) -> None:
        self._store = store
        self.limit = max(1, int(limit))

    async def allow(self, client_id: str, *, now: Optional[int] = None) -> RateLimitDecision:
        current = now_ms() if now is None else now
        key = keys.rate_limit(client_id)
        window = parse_window(await self._store.get_json(key), current)
        if window is None:
            window = RateLimitWindow(count=0, reset_at=current + WINDOW_MS)

        if window.count >= self.limit:
            # Re-persist unchanged so the window still ends at the same reset time.
            await self._store.put_json(key, window.to_dict(), ttl_seconds=WINDOW_SECONDS)
            retry_after = max(1, math.ceil((window.reset_at - current) / 1000))
            logger.info("Rate limit exceeded for %s; retry in %ss", client_id, retry_after)
            return RateLimitDecision(allowed=False, retry_after_seconds=retry_after, remaining=0)

        updated = RateLimitWindow(count=window.count + 1, reset_at=window.reset_at)
        await self._store.put_json(key, updated.to_dict(), ttl_seconds=WINDOW_SECONDS)
        return RateLimitDecision(
            allowed=True,
            retry_after_seconds=0,
            remaining=self.limit - updated.count,
        )


__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitWindow",
    "WINDOW_SECONDS",
    "parse_window",
]
