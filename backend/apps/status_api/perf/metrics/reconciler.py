"""Best-effort global request counters.

Each process keeps its own MetricsState (lost on restart). On every request
the persisted copy is read, advanced, and merged with the local copy by
element-wise maximum before being written back. Concurrent writers can
undercount; counters never go down.
"""

from __future__ import annotations

import logging
import time

from backend.apps.status_api.perf.cache import keys
from backend.apps.status_api.perf.metrics import prometheus
from backend.core.kv_store import KVStore
from backend.domain.metrics import MetricsState

logger = logging.getLogger(__name__)


class MetricsReconciler:
    def __init__(self, store: KVStore) -> None:
        self._store = store
        self.local = MetricsState()
        self.started_monotonic = time.monotonic()

    def uptime_ms(self) -> int:
        return max(0, int((time.monotonic() - self.started_monotonic) * 1000))

    async def record_request(self) -> MetricsState:
        """Count one request; store failures only bump the local miss counter."""
        self.local.requests_total += 1
        try:
            persisted = MetricsState.from_payload(await self._store.get_json(keys.METRICS))
            hit = persisted is not None
            if hit:
                self.local.kv_hits += 1
            else:
                self.local.kv_misses += 1
                persisted = MetricsState()
            advanced = MetricsState(
                requests_total=persisted.requests_total + 1,
                kv_hits=persisted.kv_hits + (1 if hit else 0),
                kv_misses=persisted.kv_misses + (0 if hit else 1),
            )
            merged = self.local.merged(advanced)
            self.local = merged.copy()
            await self._store.put_json(keys.METRICS, merged.to_dict())
        except Exception:
            self.local.kv_misses += 1
            prometheus.METRICS_RECONCILE_FAILURES_TOTAL.inc()
            logger.warning("Persisted metrics update failed", exc_info=True)
        return self.local.copy()

    async def snapshot(self) -> MetricsState:
        """Local counters merged with whatever is persisted."""
        try:
            persisted = MetricsState.from_payload(await self._store.get_json(keys.METRICS))
        except Exception:
            logger.warning("Persisted metrics read failed", exc_info=True)
            return self.local.copy()
        return self.local.merged(persisted)


__all__ = ["MetricsReconciler"]
