import pytest

from backend.apps.status_api.perf.cache import keys
from backend.apps.status_api.perf.metrics.reconciler import MetricsReconciler
from backend.core.kv_store import InMemoryKVStore, RedisKVStore, build_kv_store
from backend.core.redis_factory import parse_redis_target
from backend.domain.metrics import MetricsState, to_counter


class _Clock:
    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value


class _BrokenStore(InMemoryKVStore):
    async def get(self, key):
        raise RuntimeError("store down")

    async def put(self, key, value, *, ttl_seconds=None):
        raise RuntimeError("store down")


@pytest.mark.asyncio
async def test_in_memory_store_expires_keys():
    clock = _Clock()
    store = InMemoryKVStore(clock=clock)
    await store.put("a", "1", ttl_seconds=10)
    await store.put("b", "2")
    assert store.ttl_of("a") == 10
    clock.value += 9
    assert await store.get("a") == "1"
    clock.value += 1
    assert await store.get("a") is None
    assert await store.get("b") == "2"
    assert store.keys() == ["b"]


@pytest.mark.asyncio
async def test_get_json_treats_malformed_payload_as_missing():
    store = InMemoryKVStore()
    await store.put("k", "{oops")
    assert await store.get_json("k") is None
    assert await store.get_json("k", []) == []
    await store.put_json("k", {"ok": "ünïcode"})
    assert await store.get_json("k") == {"ok": "ünïcode"}


@pytest.mark.asyncio
async def test_redis_store_namespaces_and_expires(fake_redis):
    store = RedisKVStore(fake_redis, namespace="fleet")
    await store.put_json("history", [1, 2], ttl_seconds=30)
    assert await store.get_json("history") == [1, 2]
    assert await fake_redis.get("fleet:history") == "[1, 2]"
    assert 0 < await fake_redis.ttl("fleet:history") <= 30
    await store.delete("history")
    assert await store.get("history") is None
    assert await store.ping() is True


def test_build_kv_store_without_redis_url_is_in_memory(settings):
    assert isinstance(build_kv_store(settings), InMemoryKVStore)


@pytest.mark.parametrize("value,expected", [(3.7, 3), (-1, 0), (True, 0), ("5", 0), (float("inf"), 0), (None, 0)])
def test_to_counter(value, expected):
    assert to_counter(value) == expected


def test_metrics_merge_is_elementwise_max():
    local = MetricsState(requests_total=5, kv_hits=1, kv_misses=9)
    merged = local.merged(MetricsState(requests_total=3, kv_hits=4, kv_misses=2))
    assert merged.to_dict() == {"requests_total": 5, "kv_hits": 4, "kv_misses": 9}
    assert local.merged(None) == local


@pytest.mark.asyncio
async def test_reconciler_counts_requests_monotonically():
    store = InMemoryKVStore()
    reconciler = MetricsReconciler(store)
    first = await reconciler.record_request()
    assert first.requests_total == 1
    assert first.kv_misses == 1
    second = await reconciler.record_request()
    assert second.requests_total == 2
    assert second.kv_hits == 1
    assert await store.get_json(keys.METRICS) == second.to_dict()

    # a lower persisted copy never lowers the counters
    await store.put_json(keys.METRICS, {"requests_total": 0, "kv_hits": 0, "kv_misses": 0})
    snapshot = await reconciler.snapshot()
    assert snapshot.requests_total == 2


@pytest.mark.asyncio
async def test_reconciler_survives_store_failures():
    reconciler = MetricsReconciler(_BrokenStore())
    state = await reconciler.record_request()
    assert state.requests_total == 1
    assert state.kv_misses == 1
    assert (await reconciler.snapshot()).requests_total == 1
    assert reconciler.uptime_ms() >= 0


def test_redis_target_masks_password():
    target = parse_redis_target("redis://:s3cret@cache.internal:6380/2")
    assert target.password == "s3cret"
    assert target.masked == "redis://cache.internal:6380/2"
    assert parse_redis_target("redis://localhost").db == 0
