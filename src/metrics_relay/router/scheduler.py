"""
Router scheduler.

Runs the routing cycle every ``scan_period`` ms. A cycle runs to completion
in a worker thread; cancellation is observed only while resting between cycles.
Cycle failures are logged and retried on the next period, without backoff.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from loguru import logger

from ..cancel import REST_TIME, CancellationToken
from ..errors import RouteError
from ..metrics.registry import metrics_registry
from .router import Router, RouteStats


def sleep_time(scan_period: int, elapsed: int) -> int:
    """Rest (ms) before the next cycle; never below ``REST_TIME``."""
    if elapsed > scan_period:
        return REST_TIME
    return max(scan_period - elapsed, REST_TIME)


class RouterScheduler:
    """Drives ``Router.route`` on a fixed period until the token is cancelled."""

    def __init__(self, router: Router, scan_period: int, token: CancellationToken):
        self.router = router
        self.scan_period = scan_period
        self.token = token
        self.cycles = 0
        self.failures = 0
        self._log = logger.bind(component="router")

    async def run(self) -> None:
        while True:
            start = time.monotonic()
            await self.run_cycle()
            elapsed = int((time.monotonic() - start) * 1000)

            if await self.token.rest(sleep_time(self.scan_period, elapsed)):
                self._log.debug("Router stopped")
                return

    async def run_cycle(self) -> Optional[RouteStats]:
        """Run one cycle; returns None on failure (already logged)."""
        self.cycles += 1
        start = time.perf_counter()
        try:
            stats = await asyncio.to_thread(self.router.route)
        except RouteError as e:
            self.failures += 1
            metrics_registry.route_cycles_total.labels(outcome="failure").inc()
            self._log.error(f"route fail: {e}")
            return None
        except Exception as e:
            self.failures += 1
            metrics_registry.route_cycles_total.labels(outcome="failure").inc()
            self._log.exception(f"route fail: {type(e).__name__}: {e}")
            return None
        finally:
            metrics_registry.route_cycle_seconds.observe(time.perf_counter() - start)

        metrics_registry.route_cycles_total.labels(outcome="success").inc()
        self._log.info(
            f"route success: files={stats.files} lines={stats.lines} "
            f"dropped={stats.dropped} iterations={stats.iterations}"
        )
        return stats
