"""Redis hash gateway for Cask containers.

Each container's entries live in one Redis hash named by its cache
identifier. The gateway exposes the four primitives the container needs
(list fields, multi-get, multi-set, multi-delete) and consults the shared
reachability signal before every call.

Reads degrade to an empty result on failure; writes and deletes raise
``CacheIOError``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from cask.cache.keys import CacheKeys
from cask.cache.reachability import CONNECTION_ERRORS, Reachability
from cask.codec import DELETE, FlatEntries
from cask.config import settings
from cask.errors import CacheIOError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Module-level connection pool and its reachability signal
_redis_client: Redis | None = None
_reachability = Reachability()


def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,  # Hash fields and values are strings
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
    return _redis_client


def get_reachability() -> Reachability:
    """Return the reachability signal shared by the process-wide client."""
    return _reachability


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisHashCache:
    """Field-level operations on a container's Redis hash."""

    def __init__(self, client: Redis, reachability: Reachability):
        self.client = client
        self.reachability = reachability

    @property
    def available(self) -> bool:
        return not self.reachability.unreachable

    def _on_error(self, error: RedisError) -> None:
        if isinstance(error, CONNECTION_ERRORS):
            self.reachability.mark_unreachable(error)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_keys(self, cache_id: str, prefix: str | None = None) -> list[str]:
        """List field paths in the hash, optionally limited to ``prefix``.

        ``prefix`` matches itself and its dotted descendants only, so
        ``profile`` does not match ``profiles``.
        """
        if not self.available:
            return []
        try:
            keys = await cast(Awaitable[list[str]], self.client.hkeys(cache_id))
        except RedisError as e:
            self._on_error(e)
            logger.warning(f"Failed to list cache keys for {cache_id}: {e}")
            return []
        return [key for key in keys if CacheKeys.matches(key, prefix)]

    async def multi_get(self, cache_id: str, paths: list[str]) -> dict[str, str | None]:
        """Get raw string values for ``paths``; missing fields map to None."""
        if not self.available or not paths:
            return {}
        try:
            values = await cast(
                Awaitable[list[str | None]], self.client.hmget(cache_id, paths)
            )
        except RedisError as e:
            self._on_error(e)
            logger.warning(f"Failed to read cache fields for {cache_id}: {e}")
            return {}
        return dict(zip(paths, values))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def multi_set(self, cache_id: str, entries: FlatEntries) -> None:
        """Write encoded entries; ``DELETE`` entries are removed instead."""
        if not self.available:
            return
        to_set = {path: value for path, value in entries.items() if value is not DELETE}
        to_delete = [path for path, value in entries.items() if value is DELETE]
        if not to_set and not to_delete:
            return
        try:
            async with self.client.pipeline(transaction=False) as pipe:
                if to_set:
                    pipe.hset(cache_id, mapping=to_set)  # type: ignore[arg-type]
                if to_delete:
                    pipe.hdel(cache_id, *to_delete)
                await pipe.execute()
        except RedisError as e:
            self._on_error(e)
            raise CacheIOError("set", cache_id, str(e)) from e

    async def multi_delete(self, cache_id: str, paths: Iterable[str]) -> None:
        """Delete ``paths`` from the hash in one call."""
        if not self.available:
            return
        fields = list(paths)
        if not fields:
            return
        try:
            await cast(Awaitable[int], self.client.hdel(cache_id, *fields))
        except RedisError as e:
            self._on_error(e)
            raise CacheIOError("delete", cache_id, str(e)) from e

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except RedisError:
            return False


def get_hash_cache() -> RedisHashCache:
    """Gateway over the process-wide client and reachability signal."""
    return RedisHashCache(get_redis(), get_reachability())
