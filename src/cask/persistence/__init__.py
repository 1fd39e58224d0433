"""Persistence layer for Cask.

This module provides:
- Async SQLAlchemy engine and session factory
- The ``cask_documents`` table holding one JSON document per selector
- Document handles with dotted-path field access
- The store gateway containers use to read and write fields
"""

from cask.persistence.db import close_db, get_engine, init_db
from cask.persistence.documents import (
    Document,
    DocumentProvider,
    DocumentStore,
    SqlDocumentStore,
    get_document_store,
)
from cask.persistence.gateway import StoreGateway
from cask.persistence.tables import DocumentTable

__all__ = [
    # DB
    "close_db",
    "get_engine",
    "init_db",
    # Tables
    "DocumentTable",
    # Documents
    "Document",
    "DocumentProvider",
    "DocumentStore",
    "SqlDocumentStore",
    "get_document_store",
    # Gateway
    "StoreGateway",
]
