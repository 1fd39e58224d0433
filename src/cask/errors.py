"""Exception types raised by Cask containers and gateways.

Cache unavailability is not an error: it is tracked by the reachability
signal and masked. Only failed cache writes and durable store failures
reach the caller.
"""

from __future__ import annotations


class CaskError(Exception):
    """Base class for all Cask errors."""


class CacheIOError(CaskError):
    """A cache write or delete failed at the transport level."""

    def __init__(self, operation: str, cache_id: str, message: str):
        self.operation = operation
        self.cache_id = cache_id
        super().__init__(f"Cache {operation} failed for {cache_id}: {message}")


class StoreIOError(CaskError):
    """Reading or persisting the durable document failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Store {operation} failed: {message}")
