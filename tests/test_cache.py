import json

import pytest
import redis

from course_recommendation.data.cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from course_recommendation.errors import CacheError
from course_recommendation.service.cache import (
    RecommendationCache,
    deserialize_candidates,
    serialize_candidates,
)
from course_recommendation.service.pipeline import RecommendationService


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class BrokenCacheStore(CacheStore):
    """Every operation named in `failing` raises CacheError."""

    def __init__(self, failing=("get", "set_with_ttl", "delete")):
        self.failing = set(failing)
        self.inner = InMemoryCacheStore()

    def _maybe_fail(self, op):
        if op in self.failing:
            raise CacheError(f"{op} unavailable")

    def get(self, key):
        self._maybe_fail("get")
        return self.inner.get(key)

    def set_with_ttl(self, key, value, ttl_seconds):
        self._maybe_fail("set_with_ttl")
        self.inner.set_with_ttl(key, value, ttl_seconds)

    def delete(self, key):
        self._maybe_fail("delete")
        self.inner.delete(key)


class FakeRedis:
    """The slice of redis.Redis used by RedisCacheStore."""

    def __init__(self, error=None):
        self.data = {}
        self.ttls = {}
        self.error = error

    def _check(self):
        if self.error is not None:
            raise self.error

    def get(self, key):
        self._check()
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self._check()
        self.data.pop(key, None)


# ------------------------------------------------------
# InMemoryCacheStore
# ------------------------------------------------------
def test_in_memory_entry_expires_after_ttl():
    clock = FakeClock()
    store = InMemoryCacheStore(clock=clock)
    store.set_with_ttl("k", "v", 60)

    clock.now += 59
    assert store.get("k") == "v"
    clock.now += 1
    assert store.get("k") is None
    assert len(store) == 0


def test_in_memory_delete_is_idempotent():
    store = InMemoryCacheStore()
    store.set_with_ttl("k", "v", 60)
    store.delete("k")
    store.delete("k")

    assert store.get("k") is None


# ------------------------------------------------------
# RedisCacheStore
# ------------------------------------------------------
def test_redis_store_uses_setex():
    client = FakeRedis()
    store = RedisCacheStore(client=client)

    store.set_with_ttl("recommendations:user:u1", "[]", 3600)

    assert client.ttls["recommendations:user:u1"] == 3600
    assert store.get("recommendations:user:u1") == "[]"
    store.delete("recommendations:user:u1")
    assert store.get("recommendations:user:u1") is None


def test_redis_store_decodes_bytes():
    client = FakeRedis()
    client.data["k"] = b"payload"

    assert RedisCacheStore(client=client).get("k") == "payload"


@pytest.mark.parametrize("op,args", [("get", ("k",)), ("set_with_ttl", ("k", "v", 10)), ("delete", ("k",))])
def test_redis_errors_become_cache_errors(op, args):
    store = RedisCacheStore(client=FakeRedis(error=redis.ConnectionError("refused")))

    with pytest.raises(CacheError):
        getattr(store, op)(*args)


# ------------------------------------------------------
# RecommendationCache
# ------------------------------------------------------
def test_get_or_compute_hits_after_first_miss():
    cache = RecommendationCache(InMemoryCacheStore())
    calls = []

    def compute():
        calls.append(1)
        return {"a": 1}

    assert cache.get_or_compute("k", 60, compute) == {"a": 1}
    assert cache.get_or_compute("k", 60, compute) == {"a": 1}
    assert len(calls) == 1


def test_should_cache_false_skips_write():
    store = InMemoryCacheStore()
    cache = RecommendationCache(store)

    cache.get_or_compute("k", 60, lambda: [1], should_cache=lambda value: False)

    assert store.get("k") is None


def test_undecodable_payload_is_recomputed():
    store = InMemoryCacheStore()
    store.set_with_ttl("k", "{not json", 60)
    cache = RecommendationCache(store)

    assert cache.get_or_compute("k", 60, lambda: [1, 2]) == [1, 2]
    assert json.loads(store.get("k")) == [1, 2]


def test_cache_read_and_write_failures_are_not_fatal():
    cache = RecommendationCache(BrokenCacheStore())

    assert cache.get_or_compute("k", 60, lambda: "fresh") == "fresh"
    cache.clear_user("u1")


def test_scored_candidates_survive_the_cache(service):
    ranking = service.get_personalized_recommendations("u-learner", limit=3)

    restored = deserialize_candidates(serialize_candidates(ranking))

    assert [r.to_dict() for r in restored] == [r.to_dict() for r in ranking]


def test_personalized_survives_broken_cache(catalog):
    svc = RecommendationService(catalog, BrokenCacheStore())

    first = svc.get_personalized_recommendations("u-learner", limit=3)
    second = svc.get_personalized_recommendations("u-learner", limit=3)

    assert [r.course.id for r in first] == [r.course.id for r in second]
    assert svc.compute_count == 2


def test_personalized_write_failure_still_returns(catalog):
    svc = RecommendationService(catalog, BrokenCacheStore(failing=("set_with_ttl",)))

    results = svc.get_personalized_recommendations("u-learner", limit=3)

    assert [r.course.id for r in results][:1] == ["crs-ml"]
