"""
Unit tests for RouterScheduler and the cancellation token.
"""

import asyncio
import time

import pytest

from metrics_relay.cancel import REST_TIME, CancellationToken
from metrics_relay.errors import RouteError
from metrics_relay.router import RouterScheduler, RouteStats, sleep_time


class CountingRouter:
    """Router double that records calls and optionally fails."""

    def __init__(self, exc: Exception | None = None):
        self.calls = 0
        self.exc = exc

    def route(self) -> RouteStats:
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return RouteStats(iterations=1, files=2, lines=3)


def test_sleep_time_fills_remaining_period():
    assert sleep_time(1000, 200) == 800


def test_sleep_time_overrun_uses_rest_time():
    assert sleep_time(1000, 1500) == REST_TIME


def test_sleep_time_never_below_rest_time():
    assert sleep_time(1000, 995) == REST_TIME
    assert sleep_time(0, 0) == REST_TIME


@pytest.mark.asyncio
async def test_rest_returns_early_when_cancelled():
    token = CancellationToken()
    token.cancel()

    start = time.monotonic()
    assert await token.rest(5_000) is True
    assert time.monotonic() - start < 1.0


@pytest.mark.asyncio
async def test_rest_completes_when_not_cancelled():
    token = CancellationToken()
    assert await token.rest(30) is False
    assert not token.cancelled


@pytest.mark.asyncio
async def test_run_cycle_returns_stats():
    router = CountingRouter()
    sched = RouterScheduler(router, scan_period=50, token=CancellationToken())

    stats = await sched.run_cycle()

    assert stats.files == 2
    assert sched.cycles == 1
    assert sched.failures == 0


@pytest.mark.asyncio
async def test_run_cycle_absorbs_route_error():
    router = CountingRouter(exc=RouteError("commit", "/tmp/x", "denied"))
    sched = RouterScheduler(router, scan_period=50, token=CancellationToken())

    assert await sched.run_cycle() is None
    assert sched.failures == 1


@pytest.mark.asyncio
async def test_run_cycle_absorbs_unexpected_error():
    router = CountingRouter(exc=ValueError("bug"))
    sched = RouterScheduler(router, scan_period=50, token=CancellationToken())

    assert await sched.run_cycle() is None
    assert sched.failures == 1


@pytest.mark.asyncio
async def test_scheduler_stops_on_cancel():
    """Cancellation is observed with bounded latency during a long rest."""
    token = CancellationToken()
    router = CountingRouter()
    sched = RouterScheduler(router, scan_period=60_000, token=token)

    task = asyncio.create_task(sched.run())
    await asyncio.sleep(0.1)
    token.cancel()
    await asyncio.wait_for(task, timeout=1.0)

    assert router.calls == 1


@pytest.mark.asyncio
async def test_scheduler_keeps_retrying_after_failures():
    token = CancellationToken()
    router = CountingRouter(exc=RouteError("list", "/nowhere", "missing"))
    sched = RouterScheduler(router, scan_period=20, token=token)

    task = asyncio.create_task(sched.run())
    await asyncio.sleep(0.3)
    token.cancel()
    await asyncio.wait_for(task, timeout=1.0)

    assert router.calls >= 2
    assert sched.failures == router.calls
