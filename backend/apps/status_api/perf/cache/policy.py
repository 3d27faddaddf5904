"""Cache policy definitions for upstream-backed datasets.

TTL/stale settings live here so services stay consistent and easy to tune.
"""

from __future__ import annotations

from dataclasses import dataclass

DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class CachePolicy:
    """Cache policy for one dataset.

    Attributes:
        ttl_seconds: Lifetime of the primary copy.
        stale_seconds: Lifetime of the stale shadow copy (0 disables it).
    """

    ttl_seconds: int
    stale_seconds: int = 0

    @property
    def has_stale(self) -> bool:
        return self.stale_seconds > 0


STALE_SHADOW_SECONDS = 7 * DAY_SECONDS

REGISTRY_POLICY = CachePolicy(ttl_seconds=3600, stale_seconds=STALE_SHADOW_SECONDS)
FLEET_HEALTH_POLICY = CachePolicy(ttl_seconds=300, stale_seconds=STALE_SHADOW_SECONDS)
# Latest-run lookups feed the health aggregate, which keeps its own shadow.
CI_RUN_POLICY = CachePolicy(ttl_seconds=600)
CI_TREND_POLICY = CachePolicy(ttl_seconds=600, stale_seconds=STALE_SHADOW_SECONDS)
REPO_TASKS_POLICY = CachePolicy(ttl_seconds=600, stale_seconds=STALE_SHADOW_SECONDS)
CHANGELOG_POLICY = CachePolicy(ttl_seconds=600, stale_seconds=STALE_SHADOW_SECONDS)
GITHUB_STATS_POLICY = CachePolicy(ttl_seconds=3600, stale_seconds=STALE_SHADOW_SECONDS)
GITHUB_EVENTS_POLICY = CachePolicy(ttl_seconds=900, stale_seconds=STALE_SHADOW_SECONDS)
