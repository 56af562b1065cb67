import json
import logging

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings

logger = logging.getLogger(__name__)

# Session.info key holding the paths a transaction has made stale.
PENDING_PATHS = "cache_pending_paths"


def view_key(path: str, *parts) -> str:
    """Build a cache key for a rendered view of *path*, e.g. ``view:/learn:list:1:20:all``."""
    return ":".join(["view", path, *(str(p) for p in parts)])


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Views derived from a route are stored under ``view:<path>:...`` so a
    whole route can be marked stale with one ``invalidate_path`` call after
    a mutation.

    All public methods are safe to call even when Redis is unavailable:
    read operations return None and write operations are silently skipped,
    so the application degrades gracefully without raising exceptions to
    callers.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0
        self._invalidations: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        Serialisation errors and Redis failures are logged but never
        propagated.
        """
        if not self._redis:
            return
        try:
            serialised = json.dumps(value, default=str)
            await self._redis.set(key, serialised, ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching *pattern* using SCAN (avoids blocking KEYS).

        Returns the number of keys removed.
        """
        if not self._redis:
            return 0
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
            return len(keys)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)
            return 0

    # ------------------------------------------------------------------
    # Route invalidation
    # ------------------------------------------------------------------

    async def invalidate_path(self, path: str) -> None:
        """Mark every cached view of *path* stale."""
        self._invalidations += 1
        await self.delete_pattern(view_key(path, "*"))

    def invalidate_on_commit(self, session: AsyncSession, path: str) -> None:
        """
        Queue *path* for invalidation once *session* commits.

        Deleting the views before the commit would let a concurrent read
        re-cache the rows as they were.
        """
        session.info.setdefault(PENDING_PATHS, set()).add(path)

    async def flush_pending(self, session: AsyncSession) -> None:
        """Invalidate every path queued on *session*.  Call after commit."""
        for path in sorted(session.info.pop(PENDING_PATHS, ())):
            await self.invalidate_path(path)

    def discard_pending(self, session: AsyncSession) -> None:
        """Forget the paths queued on *session*.  Call after rollback."""
        session.info.pop(PENDING_PATHS, None)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for metrics endpoints."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "invalidations": self._invalidations,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
