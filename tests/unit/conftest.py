"""Shared fixtures for unit tests.

Provides in-memory doubles for the two backing stores:
- FakeRedis: the Redis hash commands used by RedisHashCache
- InMemoryDocumentStore: a DocumentStore keeping documents in a dict
"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cask.cache.reachability import Reachability
from cask.cache.redis import RedisHashCache
from cask.container import CaskContainer
from cask.persistence.documents import Document, DocumentStore
from cask.persistence.tables import selector_hash


class FakePipeline:
    """Buffered pipeline over FakeRedis."""

    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.commands.clear()

    def hset(self, name: str, mapping: dict[str, str]) -> FakePipeline:
        self.commands.append(("hset", (name,), {"mapping": mapping}))
        return self

    def hdel(self, name: str, *keys: str) -> FakePipeline:
        self.commands.append(("hdel", (name, *keys), {}))
        return self

    async def execute(self) -> list[Any]:
        self.redis.calls.append("pipeline")
        results = []
        for command, args, kwargs in self.commands:
            results.append(await getattr(self.redis, command)(*args, **kwargs))
        return results


class FakeRedis:
    """In-memory stand-in for the async Redis hash commands."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.calls: list[str] = []
        self.down = False

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def hkeys(self, name: str) -> list[str]:
        self._check("hkeys")
        return list(self.hashes.get(name, {}))

    async def hmget(self, name: str, keys: list[str]) -> list[str | None]:
        self._check("hmget")
        fields = self.hashes.get(name, {})
        return [fields.get(key) for key in keys]

    async def hset(self, name: str, mapping: dict[str, str]) -> int:
        self._check("hset")
        fields = self.hashes.setdefault(name, {})
        added = len(set(mapping) - set(fields))
        fields.update(mapping)
        return added

    async def hdel(self, name: str, *keys: str) -> int:
        self._check("hdel")
        fields = self.hashes.get(name, {})
        removed = 0
        for key in keys:
            if fields.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self) -> bool:
        self._check("ping")
        return True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)


class InMemoryDocumentStore(DocumentStore):
    """Document store keeping one JSON document per selector."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.save_count = 0

    async def find_one(self, selector: dict[str, Any]) -> Document | None:
        row = self.rows.get(selector_hash(selector))
        if row is None:
            return None
        return Document(self, row["id"], row["selector"], copy.deepcopy(row["doc"]))

    async def save(self, document: Document) -> None:
        self.save_count += 1
        key = selector_hash(document.selector)
        row = self.rows.get(key)
        if row is None or row["id"] != document.id:
            stored = copy.deepcopy(document.doc)
        else:
            stored = document.merge_into(row["doc"])
        self.rows[key] = {"id": document.id, "selector": document.selector, "doc": stored}
        document.doc = copy.deepcopy(stored)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def reachability() -> Reachability:
    return Reachability()


@pytest.fixture
def hash_cache(fake_redis: FakeRedis, reachability: Reachability) -> RedisHashCache:
    return RedisHashCache(fake_redis, reachability)  # type: ignore[arg-type]


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def container(
    hash_cache: RedisHashCache, document_store: InMemoryDocumentStore
) -> CaskContainer:
    """Container backed by the fake cache and the in-memory document store."""
    return CaskContainer({"user": "42"}, lambda: document_store, cache=hash_cache)


@pytest.fixture
def fallback_container(hash_cache: RedisHashCache) -> CaskContainer:
    """Container whose provider has no durable store."""
    return CaskContainer({"user": "42"}, lambda: None, cache=hash_cache)
