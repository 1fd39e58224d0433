"""Cache layer for Cask.

Provides the Redis side of a container:
- One Redis hash per container, one field per flattened leaf
- A shared reachability signal that masks Redis outages
- A background probe that restores the cache after an outage
"""

from cask.cache.keys import CacheKeys
from cask.cache.reachability import Reachability, ReachabilityMonitor
from cask.cache.redis import (
    RedisHashCache,
    close_redis,
    get_hash_cache,
    get_reachability,
    get_redis,
)

__all__ = [
    "CacheKeys",
    "Reachability",
    "ReachabilityMonitor",
    "RedisHashCache",
    "close_redis",
    "get_hash_cache",
    "get_reachability",
    "get_redis",
]
