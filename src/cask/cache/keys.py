"""Cache key schema for Cask.

Every container owns one Redis hash, named by its cache identifier:

    {root}.{document_id}    when a durable document backs the container
    {root}.{random_token}   when the container runs on its fallback map

Fields inside the hash are dotted field paths without the root namespace;
the hash name already isolates the container. The durable store addresses
the same paths with the root namespace prepended.
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

from cask.codec import PATH_SEPARATOR, join_path


def random_token() -> str:
    return str(uuid4())


class CacheKeys:
    """Cache identifier and field path generator."""

    ROOT = "storage"

    @classmethod
    def adapt(cls, key: str) -> str:
        """Field path of ``key`` inside the durable document."""
        return join_path(cls.ROOT, key)

    @classmethod
    def for_document(cls, document_id: str) -> str:
        """Cache identifier derived from a durable document's identity."""
        return join_path(cls.ROOT, str(document_id))

    @classmethod
    def for_token(cls, token_factory: Callable[[], str] = random_token) -> str:
        """Cache identifier for a container without a durable document."""
        return join_path(cls.ROOT, token_factory())

    @classmethod
    def matches(cls, path: str, prefix: str | None) -> bool:
        """True if ``path`` is ``prefix`` itself or one of its descendants."""
        if not prefix:
            return True
        return path == prefix or path.startswith(prefix + PATH_SEPARATOR)
