"""Cask: write-through, read-through caching containers.

A container keeps a Redis hash and a durable JSON document consistent for
one logical record addressed by dotted field paths.

Long-lived processes should run a ``ReachabilityMonitor`` next to their
containers. It pings Redis on an interval and flips the shared reachability
signal back once the server answers again. Without it, containers that saw
Redis go down keep bypassing the cache for the rest of the process.

    from cask import CaskContainer, ReachabilityMonitor
    from cask.cache import get_reachability, get_redis
    from cask.config import settings

    monitor = ReachabilityMonitor(
        get_redis(),
        get_reachability(),
        interval=settings.redis_probe_interval,
    )
    await monitor.start()
    try:
        ...  # serve requests with CaskContainer
    finally:
        await monitor.stop()

Short-lived callers (such as the ``cask`` CLI) can call
``await monitor.probe()`` once instead.
"""

from cask.cache.reachability import ReachabilityMonitor
from cask.container import CacheIdState, CaskContainer
from cask.errors import CacheIOError, CaskError, StoreIOError

__version__ = "0.1.0"

__all__ = [
    "CacheIOError",
    "CacheIdState",
    "CaskContainer",
    "CaskError",
    "ReachabilityMonitor",
    "StoreIOError",
]
