"""Write-through, read-through caching container.

A ``CaskContainer`` is the facade for one logical record. Reads try the
Redis hash first and fall back to the durable document, refilling the cache
on the way out. Writes clear the cached subtree, then update cache and
store concurrently.

Example:
    container = CaskContainer({"user": "42"}, get_document_store)

    await container.set_item("profile", {"name": "Ada", "langs": ["en"]})
    await container.get_item("profile.name")   # "Ada"
    await container.delete_item("profile")

When the provider returns no store, the container keeps its data in a
local fallback map for its own lifetime. When Redis is unreachable, cache
steps are skipped and every operation goes to the durable store.

Concurrent operations on the same container are not serialized: two
``set_item`` calls on one key interleave and the last write wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from cask.cache.keys import CacheKeys, random_token
from cask.cache.redis import RedisHashCache, get_hash_cache
from cask.codec import JsonValue, coerce, flatten, unflatten
from cask.observability.logging import LogContext
from cask.persistence.documents import DocumentProvider, get_document_store
from cask.persistence.gateway import StoreGateway
from cask.persistence.tables import canonical_selector

logger = logging.getLogger(__name__)


class CacheIdState(str, Enum):
    """Lifecycle of a container's cache identifier."""

    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


def is_cache_hit(value: Any) -> bool:
    """Decide whether a decoded cache read counts as a hit.

    Follows JavaScript truthiness: ``{}``, ``0``, ``False`` and ``""`` are
    misses and send the read to the durable store, while any list is a hit.
    """
    if isinstance(value, list):
        return True
    return bool(value)


class CaskContainer:
    """Cache/store facade for the document found by ``selector``."""

    def __init__(
        self,
        selector: dict[str, Any],
        provider: DocumentProvider = get_document_store,
        cache: RedisHashCache | None = None,
        token_factory: Callable[[], str] = random_token,
    ):
        self.selector = selector
        self.cache = cache if cache is not None else get_hash_cache()
        self.store = StoreGateway(provider)
        self._token_factory = token_factory
        self._fallback: dict[str, Any] = {}
        self._cache_id: str | None = None
        self._state = CacheIdState.UNASSIGNED
        self._assign_lock = asyncio.Lock()

    @property
    def cache_id(self) -> str | None:
        return self._cache_id

    @property
    def cache_id_state(self) -> CacheIdState:
        return self._state

    def _require_cache_id(self) -> str:
        if self._cache_id is None:
            raise RuntimeError("cache identifier used before ensure_cache_id()")
        return self._cache_id

    def _log_context(self, cache_id: str) -> LogContext:
        return LogContext(cache_id=cache_id, selector=canonical_selector(self.selector).decode())

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def ensure_cache_id(self) -> str:
        """Assign the cache identifier on first use; later calls are no-ops."""
        if self._state is CacheIdState.ASSIGNED:
            return self._require_cache_id()
        async with self._assign_lock:
            if self._state is CacheIdState.UNASSIGNED:
                document = await self.store.find_or_create(self.selector)
                if document is not None:
                    self._cache_id = CacheKeys.for_document(document.id)
                else:
                    self._cache_id = CacheKeys.for_token(self._token_factory)
                self._state = CacheIdState.ASSIGNED
                logger.debug(f"Assigned cache identifier {self._cache_id}")
        return self._require_cache_id()

    async def get_item(self, key: str) -> Any:
        """Fetch ``key``, from the cache if present, else from the store."""
        cache_id = await self.ensure_cache_id()
        with self._log_context(cache_id):
            cached = await self._get_cached(key)
            if is_cache_hit(cached):
                return cached

            logger.debug(f"Cache miss for {key}")
            stored = await self._get_stored(key)
            if stored is not None:
                await self._push_to_cache(key, stored)
            return stored

    async def set_item(self, key: str, value: JsonValue) -> None:
        """Store ``value`` under ``key`` in both the cache and the store."""
        cache_id = await self.ensure_cache_id()
        with self._log_context(cache_id):
            # Clear the old subtree first so a smaller value leaves no stale fields
            await self.delete_recursive(key)
            await asyncio.gather(
                self._push_to_cache(key, value),
                self._set_stored(key, value),
            )

    async def delete_item(self, key: str) -> None:
        """Remove ``key`` and everything beneath it from both layers."""
        cache_id = await self.ensure_cache_id()
        with self._log_context(cache_id):
            await asyncio.gather(
                self.delete_recursive(key),
                self._delete_stored(key),
            )

    async def delete_recursive(self, *prefixes: str) -> None:
        """Delete every cached field at or below any of ``prefixes``."""
        cache_id = self._require_cache_id()
        if not self.cache.available:
            return
        listings = await asyncio.gather(
            *(self.cache.list_keys(cache_id, prefix) for prefix in prefixes)
        )
        paths = dict.fromkeys(path for listing in listings for path in listing)
        await self.cache.multi_delete(cache_id, paths)

    # -------------------------------------------------------------------------
    # Cache side
    # -------------------------------------------------------------------------

    async def _get_cached(self, key: str) -> Any:
        cache_id = self._require_cache_id()
        paths = await self.cache.list_keys(cache_id, key) or [key]
        raw = await self.cache.multi_get(cache_id, paths)
        entries = {path: coerce(value) for path, value in raw.items() if value is not None}
        if not entries:
            return None
        return unflatten(entries, key)

    async def _push_to_cache(self, key: str, value: JsonValue) -> None:
        await self.cache.multi_set(self._require_cache_id(), flatten(key, value))

    # -------------------------------------------------------------------------
    # Store side
    # -------------------------------------------------------------------------

    async def _get_stored(self, key: str) -> Any:
        document = await self.store.find_or_create(self.selector)
        if document is not None:
            return await self.store.get_field(document, key)
        return self._fallback.get(key)

    async def _set_stored(self, key: str, value: JsonValue) -> None:
        document = await self.store.find_or_create(self.selector)
        if document is not None:
            await self.store.set_field(document, key, value)
            return
        self._fallback[key] = value

    async def _delete_stored(self, key: str) -> None:
        document = await self.store.find_or_create(self.selector)
        if document is not None:
            await self.store.set_field(document, key, None)
            return
        self._fallback.pop(key, None)

    def __repr__(self) -> str:
        return f"CaskContainer(selector={self.selector!r}, cache_id={self._cache_id!r})"
