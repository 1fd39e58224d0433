"""Store gateway: field-level access to a container's durable document.

Every field path is addressed under the ``storage`` root of the document.
"""

from __future__ import annotations

from typing import Any

from cask.cache.keys import CacheKeys
from cask.persistence.documents import Document, DocumentProvider


class StoreGateway:
    """Reads and writes container fields on the document found by a selector."""

    def __init__(self, provider: DocumentProvider):
        self.provider = provider

    async def find_or_create(self, selector: dict[str, Any]) -> Document | None:
        """Fetch the document for ``selector``, creating and initializing it if needed.

        Returns None when the provider has no store configured.
        """
        store = self.provider()
        if store is None:
            return None

        document = await store.find_one(selector)
        changes = False
        if document is None:
            document = store.create(selector)
            changes = True
        if document.get(CacheKeys.ROOT) is None:
            document.set(CacheKeys.ROOT, {})
            document.mark_modified(CacheKeys.ROOT)
            changes = True
        if changes:
            await document.save()
        return document

    async def get_field(self, document: Document, path: str) -> Any:
        return document.get(CacheKeys.adapt(path))

    async def set_field(self, document: Document, path: str, value: Any) -> None:
        """Write ``path`` and persist; None clears the field."""
        adapted = CacheKeys.adapt(path)
        document.set(adapted, value)
        document.mark_modified(adapted)
        await document.save()
