"""
Content-addressed result cache.

EvaluationCache wraps any client exposing ``get(key)`` and
``setex(key, ttl, value)``: a ``redis.Redis`` in production, the
process-local MemoryStore otherwise. The cache is an optimisation only:
every store or (de)serialisation failure degrades to a miss on read and
a no-op on write.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import redis

from core.config import Settings, get_settings
from core.errors import CacheError
from core.types import EvaluationResult

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def setex(self, key: str, time: int, value: str) -> Any: ...


class MemoryStore:
    """Dict-backed store with per-key expiry. Not shared across processes."""

    def __init__(self, *, clock=time.monotonic) -> None:
        self._data: dict[str, tuple[float, str]] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    def setex(self, key: str, time: int, value: str) -> bool:
        self._data[key] = (self._clock() + time, value)
        return True

    def dbsize(self) -> int:
        now = self._clock()
        return sum(1 for expires_at, _ in self._data.values() if expires_at > now)


def create_cache_client(settings: Settings | None = None) -> Optional[KeyValueStore]:
    """
    Build the store selected by CACHE_BACKEND.

    ``redis`` needs REDIS_URL; ``memory`` is per-process; ``none`` disables caching.
    """
    settings = settings or get_settings()
    backend = settings.cache_backend

    if backend == "none":
        logger.info("Result cache disabled")
        return None
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        if not settings.redis_url:
            logger.warning("CACHE_BACKEND=redis but REDIS_URL is empty; caching disabled")
            return None
        return redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    raise ValueError(f"Unknown CACHE_BACKEND: {backend!r}")


class EvaluationCache:
    """get / set-with-TTL of EvaluationResult payloads. Fails open."""

    def __init__(self, client: Optional[KeyValueStore]) -> None:
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def get(self, key: str) -> Optional[EvaluationResult]:
        if self._client is None:
            return None
        try:
            result = self._read(key)
        except CacheError as exc:
            logger.warning("Cache read failed key=%s error=%s", key, exc)
            return None
        if result is None:
            logger.info("Cache MISS key=%s", key)
        else:
            logger.info("Cache HIT key=%s", key)
        return result

    def set(self, key: str, value: EvaluationResult, ttl_seconds: int) -> None:
        if self._client is None:
            return
        try:
            self._write(key, value, ttl_seconds)
        except CacheError as exc:
            logger.warning("Cache write failed key=%s error=%s", key, exc)
            return
        logger.info("Cached key=%s ttl_seconds=%s", key, ttl_seconds)

    def stats(self) -> dict[str, Any]:
        if self._client is None:
            return {"enabled": False, "backend": None, "keys": None}
        backend = "redis" if isinstance(self._client, redis.Redis) else type(self._client).__name__
        keys: Optional[int] = None
        try:
            dbsize = getattr(self._client, "dbsize", None)
            if dbsize is not None:
                keys = int(dbsize())
        except (redis.RedisError, OSError) as exc:
            logger.warning("Cache stats failed error=%s", exc)
        return {"enabled": True, "backend": backend, "keys": keys}

    # ── internals ─────────────────────────────────────────────────

    def _read(self, key: str) -> Optional[EvaluationResult]:
        try:
            raw = self._client.get(key)
        except (redis.RedisError, OSError) as exc:
            raise CacheError(f"store get failed: {exc}") from exc
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            entry = json.loads(raw)
            payload = entry["payload"] if isinstance(entry, dict) else None
            if not isinstance(payload, dict):
                raise CacheError("corrupt cache entry: payload is not an object")
            return EvaluationResult.from_dict(payload)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CacheError(f"corrupt cache entry: {exc}") from exc

    def _write(self, key: str, value: EvaluationResult, ttl_seconds: int) -> None:
        entry = {
            "key": key,
            "payload": value.to_dict(),
            "cached_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            raw = json.dumps(entry, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"payload not serialisable: {exc}") from exc
        try:
            self._client.setex(key, int(ttl_seconds), raw)
        except (redis.RedisError, OSError) as exc:
            raise CacheError(f"store setex failed: {exc}") from exc
