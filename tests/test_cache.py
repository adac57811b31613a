"""Tests for the in-process cache backend and the job listing cache."""

import time

from pydantic import TypeAdapter

from autocontent.cache import USER_JOBS, USER_JOB_STATISTICS, JobCache, MemoryCache, get_cache

_INT = TypeAdapter(int)
_LIST = TypeAdapter(list[str])


def test_memory_cache_set_get_delete():
    cache = MemoryCache()
    cache.set("k", {"a": 1}, ttl=60)
    assert cache.get("k") == {"a": 1}
    cache.delete("k")
    assert cache.get("k") is None


def test_memory_cache_entries_expire():
    cache = MemoryCache()
    cache.set("k", "v", ttl=0)
    assert cache.get("k") is None


def test_orphaned_entries_are_purged_once_their_ttl_passes(settings, monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(time, "monotonic", lambda: clock[0])
    backend = MemoryCache()
    cache = JobCache(backend, settings)
    for i in range(200):
        cache.get_or_load(USER_JOBS, "u1", "page0", lambda: [str(i)], _LIST)
        cache.invalidate_user("u1")
    # 200 unreachable listings plus the generation counter
    assert len(backend) == 201

    clock[0] += 10 * 24 * 3600
    assert cache.get_or_load(USER_JOBS, "u1", "page0", lambda: ["fresh"], _LIST) == ["fresh"]
    assert len(backend) == 2
    assert backend.get("autocontent:gen:uu1") == 200


def test_memory_cache_incr_starts_at_one():
    cache = MemoryCache()
    assert cache.incr("counter") == 1
    assert cache.incr("counter") == 2
    assert cache.get("counter") == 2


def test_get_cache_defaults_to_memory_without_redis_url():
    assert isinstance(get_cache(), MemoryCache)


def test_key_contains_cache_owner_and_generation(settings):
    cache = JobCache(MemoryCache(), settings)
    assert cache.key(USER_JOBS, "u1", "abc") == "autocontent:user_jobs:uu1:v0:abc"
    cache.invalidate_user("u1")
    assert cache.key(USER_JOBS, "u1", "abc") == "autocontent:user_jobs:uu1:v1:abc"
    assert cache.key(USER_JOBS, "u2", "abc") == "autocontent:user_jobs:uu2:v0:abc"


def test_get_or_load_reads_through_once(settings):
    cache = JobCache(MemoryCache(), settings)
    calls = []

    def loader():
        calls.append(1)
        return 42

    assert cache.get_or_load(USER_JOB_STATISTICS, "u1", "all", loader, _INT) == 42
    assert cache.get_or_load(USER_JOB_STATISTICS, "u1", "all", loader, _INT) == 42
    assert len(calls) == 1


def test_invalidate_user_forces_reload_for_that_user_only(settings):
    cache = JobCache(MemoryCache(), settings)
    values = iter([["a"], ["b"], ["c"]])
    load = lambda: next(values)  # noqa: E731

    assert cache.get_or_load(USER_JOBS, "u1", "x", load, _LIST) == ["a"]
    assert cache.get_or_load(USER_JOBS, "u2", "x", load, _LIST) == ["b"]
    cache.invalidate_user("u1")
    assert cache.get_or_load(USER_JOBS, "u1", "x", load, _LIST) == ["c"]
    assert cache.get_or_load(USER_JOBS, "u2", "x", load, _LIST) == ["b"]


class BrokenBackend:
    def get(self, key):
        raise ConnectionError("cache down")

    def set(self, key, value, ttl):
        raise ConnectionError("cache down")

    def delete(self, key):
        raise ConnectionError("cache down")

    def incr(self, key):
        raise ConnectionError("cache down")


def test_backend_failures_fall_through_to_loader(settings):
    cache = JobCache(BrokenBackend(), settings)
    assert cache.get_or_load(USER_JOBS, "u1", "x", lambda: 7, _INT) == 7
    cache.invalidate_user("u1")


def test_ttl_per_cache_comes_from_settings(settings):
    cache = JobCache(MemoryCache(), settings)
    assert cache.ttl[USER_JOBS] == settings.ac_cache_ttl_jobs_seconds
    assert cache.ttl[USER_JOB_STATISTICS] == settings.ac_cache_ttl_stats_seconds
