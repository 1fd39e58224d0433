"""Durable documents and the stores that hold them.

A ``Document`` is an in-memory handle on one stored JSON document. Field
access uses dotted paths (``storage.profile.name``). Changed paths are
recorded with ``mark_modified()`` and written back with ``save()``: the
store applies only those paths to the current stored document, so
concurrent writers touching different fields do not overwrite each other.

``DocumentStore`` is the handle a container's document provider returns.
``SqlDocumentStore`` keeps documents in the ``cask_documents`` table.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from cask.codec import PATH_SEPARATOR
from cask.config import settings
from cask.errors import StoreIOError
from cask.persistence.db import get_session_factory, session_context
from cask.persistence.tables import DocumentTable, selector_hash

logger = logging.getLogger(__name__)


def get_path(doc: dict[str, Any], path: str) -> Any:
    """Return a copy of the value at ``path`` in ``doc``, or None if absent."""
    node: Any = doc
    for segment in path.split(PATH_SEPARATOR):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return copy.deepcopy(node)


def set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    """Write ``value`` at ``path`` in ``doc``; None removes the field."""
    *parents, leaf = path.split(PATH_SEPARATOR)
    node = doc
    for segment in parents:
        child = node.get(segment)
        if not isinstance(child, dict):
            if value is None:
                return
            child = {}
            node[segment] = child
        node = child
    if value is None:
        node.pop(leaf, None)
    else:
        node[leaf] = copy.deepcopy(value)


class Document:
    """A stored JSON document addressed by dotted field paths."""

    def __init__(
        self,
        store: DocumentStore,
        id: str,
        selector: dict[str, Any],
        doc: dict[str, Any] | None = None,
    ):
        self.store = store
        self.id = id
        self.selector = selector
        self.doc: dict[str, Any] = doc if doc is not None else {}
        self.modified_paths: set[str] = set()

    def get(self, path: str) -> Any:
        return get_path(self.doc, path)

    def set(self, path: str, value: Any) -> None:
        set_path(self.doc, path, value)

    def mark_modified(self, path: str) -> None:
        self.modified_paths.add(path)

    def merge_into(self, current: dict[str, Any]) -> dict[str, Any]:
        """Apply this handle's modified paths to ``current``, the stored document.

        Returns a new document; ``current`` is left untouched.
        """
        merged = copy.deepcopy(current)
        for path in sorted(self.modified_paths, key=len):
            set_path(merged, path, get_path(self.doc, path))
        return merged

    async def save(self) -> None:
        await self.store.save(self)
        self.modified_paths.clear()

    def __repr__(self) -> str:
        return f"Document(id={self.id!r}, selector={self.selector!r})"


class DocumentStore(ABC):
    """Abstract durable store of container documents."""

    @abstractmethod
    async def find_one(self, selector: dict[str, Any]) -> Document | None:
        """Return the document created for ``selector``, if any."""
        ...

    def create(self, selector: dict[str, Any]) -> Document:
        """Build a new, unsaved document for ``selector``."""
        return Document(self, str(uuid4()), dict(selector))

    @abstractmethod
    async def save(self, document: Document) -> None:
        """Insert ``document``, or apply its modified paths to the stored copy.

        After saving, ``document.doc`` reflects the stored document.
        """
        ...


class SqlDocumentStore(DocumentStore):
    """Document store over the ``cask_documents`` table.

    Updates lock the row (``SELECT ... FOR UPDATE`` where the database
    supports it) and merge the modified paths into the freshly read
    document. Saves of one document within this process are serialized.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def find_one(self, selector: dict[str, Any]) -> Document | None:
        stmt = select(DocumentTable).where(DocumentTable.selector_hash == selector_hash(selector))
        try:
            async with session_context(self.session_factory) as session:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreIOError("find", str(e)) from e
        if row is None:
            return None
        return Document(self, row.id, row.selector, row.doc)

    async def save(self, document: Document) -> None:
        async with self._locks[document.id]:
            try:
                async with session_context(self.session_factory) as session:
                    row = await session.get(DocumentTable, document.id, with_for_update=True)
                    if row is None:
                        stored = copy.deepcopy(document.doc)
                        session.add(
                            DocumentTable(
                                id=document.id,
                                selector=document.selector,
                                selector_hash=selector_hash(document.selector),
                                doc=stored,
                            )
                        )
                        logger.debug(f"Created document {document.id}")
                    else:
                        stored = document.merge_into(row.doc)
                        row.doc = stored
                        flag_modified(row, "doc")
            except SQLAlchemyError as e:
                raise StoreIOError("save", str(e)) from e
        document.doc = copy.deepcopy(stored)


DocumentProvider = Callable[[], DocumentStore | None]

_store: SqlDocumentStore | None = None


def get_document_store() -> DocumentStore | None:
    """Default document provider: a singleton store, or None if unconfigured."""
    global _store
    if not settings.database_url:
        return None
    if _store is None:
        _store = SqlDocumentStore()
    return _store
