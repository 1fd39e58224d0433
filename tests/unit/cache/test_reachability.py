"""Tests for the Redis reachability signal and probe."""

import asyncio
import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cask.cache.reachability import Reachability, ReachabilityMonitor


class TestReachability:
    """Tests for the shared signal."""

    def test_starts_reachable(self) -> None:
        assert Reachability().unreachable is False

    def test_loss_is_logged_once_per_outage(self, caplog: pytest.LogCaptureFixture) -> None:
        signal = Reachability()

        with caplog.at_level(logging.WARNING, logger="cask.cache.reachability"):
            signal.mark_unreachable(RedisConnectionError("refused"))
            signal.mark_unreachable(RedisConnectionError("refused"))
            signal.mark_unreachable(RedisConnectionError("refused"))

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert signal.unreachable

    def test_recovery_resets_notification(self, caplog: pytest.LogCaptureFixture) -> None:
        signal = Reachability()

        with caplog.at_level(logging.INFO, logger="cask.cache.reachability"):
            signal.mark_unreachable()
            signal.mark_ready()
            signal.mark_unreachable()

        messages = [r.getMessage() for r in caplog.records]
        assert sum("Error connecting" in m for m in messages) == 2
        assert sum("Re-connected" in m for m in messages) == 1

    def test_ready_without_outage_is_silent(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="cask.cache.reachability"):
            Reachability().mark_ready()

        assert caplog.records == []


class TestReachabilityMonitor:
    """Tests for the background probe."""

    @pytest.mark.asyncio
    async def test_probe_tracks_connection(self, fake_redis, reachability) -> None:
        monitor = ReachabilityMonitor(fake_redis, reachability)

        fake_redis.down = True
        assert await monitor.probe() is False
        assert reachability.unreachable

        fake_redis.down = False
        assert await monitor.probe() is True
        assert not reachability.unreachable

    @pytest.mark.asyncio
    async def test_loop_restores_cache(self, fake_redis, reachability) -> None:
        fake_redis.down = True
        monitor = ReachabilityMonitor(fake_redis, reachability, interval=0.01)
        await monitor.start()
        assert reachability.unreachable

        fake_redis.down = False
        for _ in range(50):
            if not reachability.unreachable:
                break
            await asyncio.sleep(0.01)
        await monitor.stop()

        assert not reachability.unreachable

    @pytest.mark.asyncio
    async def test_stop_without_start(self, fake_redis, reachability) -> None:
        await ReachabilityMonitor(fake_redis, reachability).stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, fake_redis, reachability) -> None:
        monitor = ReachabilityMonitor(fake_redis, reachability, interval=10)
        await monitor.start()
        task = monitor._task
        await monitor.start()

        assert monitor._task is task
        assert fake_redis.calls.count("ping") == 1
        await monitor.stop()
        assert monitor._task is None

    def test_exported_from_package(self) -> None:
        import cask

        assert cask.ReachabilityMonitor is ReachabilityMonitor
