"""Cache backends and the job listing cache.

Entries expire by TTL only. Per-user invalidation bumps a generation counter
that is part of every key for that user, so stale entries are never read again
and simply age out.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Protocol, TypeVar

from pydantic import TypeAdapter

from autocontent.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "autocontent"


class CacheBackend(Protocol):
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any, ttl: int) -> None: ...
    def delete(self, key: str) -> None: ...
    def incr(self, key: str) -> int: ...


# ---------------------------------------------------------------------------
# In-process backend
# ---------------------------------------------------------------------------

class MemoryCache:
    """Dict-backed cache. Values are stored as JSON text.

    Expired entries are dropped when read, and writes sweep the whole dict at
    most once per ``purge_interval`` seconds so keys that are never read again
    still go away.
    """

    def __init__(self, purge_interval: float = 60.0):
        self._data: dict[str, tuple[float | None, str]] = {}
        self._lock = threading.Lock()
        self._purge_interval = purge_interval
        self._next_purge = 0.0

    def __len__(self) -> int:
        return len(self._data)

    def _purge_expired(self, now: float) -> None:
        stale = [k for k, (expires_at, _) in self._data.items() if expires_at is not None and now >= expires_at]
        for key in stale:
            del self._data[key]
        self._next_purge = now + self._purge_interval

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._data[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> None:
        raw = json.dumps(value, default=str)
        with self._lock:
            now = time.monotonic()
            if now >= self._next_purge:
                self._purge_expired(now)
            self._data[key] = (now + ttl, raw)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def incr(self, key: str) -> int:
        with self._lock:
            _, raw = self._data.get(key, (None, "0"))
            value = int(json.loads(raw)) + 1
            self._data[key] = (None, json.dumps(value))
            return value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------

class RedisCache:
    """Redis-backed cache; values are JSON encoded and written with SETEX."""

    def __init__(self, redis_url: str):
        from redis import Redis

        self._redis = Redis.from_url(redis_url)
        self._redis.ping()

    def get(self, key: str) -> Any | None:
        raw = self._redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._redis.setex(key, ttl, json.dumps(value, default=str))

    def delete(self, key: str) -> None:
        self._redis.delete(key)

    def incr(self, key: str) -> int:
        return int(self._redis.incr(key))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    """Return singleton cache backend (Redis if configured, else in-process)."""
    global _cache
    if _cache is not None:
        return _cache
    settings = get_settings()
    if settings.ac_redis_url:
        try:
            _cache = RedisCache(settings.ac_redis_url)
            logger.info("Using Redis cache")
        except Exception as e:
            logger.warning("Redis cache failed (%s), falling back to in-process cache", e)
            _cache = MemoryCache()
    else:
        _cache = MemoryCache()
        logger.info("Using in-process cache")
    return _cache


# ---------------------------------------------------------------------------
# Job listing cache
# ---------------------------------------------------------------------------

USER_JOBS = "user_jobs"
SEARCH_RESULTS = "search_results"
USER_JOB_STATISTICS = "user_job_statistics"
USER_CONTENT_TYPES = "user_content_types"
ACTIVE_JOB_COUNT = "active_job_count"
JOB_DETAILS = "job_details"
HOURLY_JOB_STATS = "hourly_job_stats"

_GLOBAL_OWNER = "global"


class JobCache:
    """Key composition, read-through loading and per-user invalidation."""

    def __init__(self, backend: CacheBackend, settings: Settings):
        self._backend = backend
        self.ttl = {
            USER_JOBS: settings.ac_cache_ttl_jobs_seconds,
            SEARCH_RESULTS: settings.ac_cache_ttl_search_seconds,
            USER_JOB_STATISTICS: settings.ac_cache_ttl_stats_seconds,
            USER_CONTENT_TYPES: settings.ac_cache_ttl_stats_seconds,
            ACTIVE_JOB_COUNT: settings.ac_cache_ttl_realtime_seconds,
            JOB_DETAILS: settings.ac_cache_ttl_jobs_seconds,
            HOURLY_JOB_STATS: settings.ac_cache_ttl_stats_seconds,
        }

    @staticmethod
    def _generation_key(owner: str) -> str:
        return f"{KEY_PREFIX}:gen:u{owner}"

    def _generation(self, owner: str) -> int:
        value = self._backend.get(self._generation_key(owner))
        return int(value) if value is not None else 0

    def key(self, cache_name: str, owner: str, suffix: str) -> str:
        generation = self._generation(owner)
        return f"{KEY_PREFIX}:{cache_name}:u{owner}:v{generation}:{suffix}"

    def get_or_load(
        self,
        cache_name: str,
        owner: str | None,
        suffix: str,
        loader: Callable[[], T],
        adapter: TypeAdapter[T],
    ) -> T:
        """Return the cached value or call ``loader`` and cache its result.

        Backend failures are logged and treated as a miss.
        """
        owner = owner or _GLOBAL_OWNER
        key = None
        try:
            key = self.key(cache_name, owner, suffix)
            raw = self._backend.get(key)
            if raw is not None:
                return adapter.validate_python(raw)
        except Exception as e:
            logger.warning("Cache read failed for %s (%s)", cache_name, e)

        value = loader()
        if key is not None:
            try:
                self._backend.set(key, adapter.dump_python(value, mode="json"), self.ttl[cache_name])
            except Exception as e:
                logger.warning("Cache write failed for %s (%s)", cache_name, e)
        return value

    def invalidate_user(self, user_id: str) -> None:
        """Drop every cached view for this user."""
        try:
            generation = self._backend.incr(self._generation_key(user_id))
            logger.debug("Invalidated caches for user %s (generation %d)", user_id, generation)
        except Exception as e:
            logger.warning("Cache invalidation failed for user %s (%s)", user_id, e)


def get_job_cache() -> JobCache:
    return JobCache(get_cache(), get_settings())
