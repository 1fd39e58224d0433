"""Process-wide Redis reachability signal.

Every cache gateway built on the same Redis client shares one
``Reachability`` instance. While it reports the cache as unreachable, cache
reads and writes are skipped and containers work against the durable store
alone.

The signal is flipped only by connection events: a gateway command failing
with a connection error, or the ``ReachabilityMonitor`` probe succeeding or
failing. Loss and recovery are each logged once per outage.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, cast

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class Reachability:
    """Shared flag, True while the Redis transport is known unreachable."""

    def __init__(self) -> None:
        self._unreachable = False
        self._notified = False

    @property
    def unreachable(self) -> bool:
        return self._unreachable

    def mark_unreachable(self, error: BaseException | None = None) -> None:
        """Record a connection failure."""
        self._unreachable = True
        if not self._notified:
            self._notified = True
            logger.warning(
                "Error connecting to Redis. Containers will read and write the "
                "durable store directly until the connection recovers: %s",
                error,
            )

    def mark_ready(self) -> None:
        """Record a successful connection."""
        if self._unreachable:
            logger.info("Re-connected to Redis")
        self._unreachable = False
        self._notified = False


class ReachabilityMonitor:
    """Background probe keeping a ``Reachability`` signal current.

    Pings Redis every ``interval`` seconds. Gateways stop talking to Redis
    once it is marked unreachable, so this probe is what brings the cache
    back into use after an outage.

    Example:
        monitor = ReachabilityMonitor(client, reachability, interval=5.0)
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(self, client: Redis, reachability: Reachability, interval: float = 5.0):
        self.client = client
        self.reachability = reachability
        self.interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    async def probe(self) -> bool:
        """Ping Redis once and update the signal."""
        try:
            await cast(Awaitable[bool], self.client.ping())
        except CONNECTION_ERRORS as e:
            self.reachability.mark_unreachable(e)
            return False
        self.reachability.mark_ready()
        return True

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        await self.probe()
        self._task = asyncio.create_task(self._probe_loop())
        logger.debug(f"Started Redis reachability probe every {self.interval}s")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _probe_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            await self.probe()
