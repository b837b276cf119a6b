"""
Process-wide cancellation token.

Created once by the agent and handed to every worker. Signal handlers only
flip the token; workers poll it between cycles while they rest.
"""

from __future__ import annotations

import asyncio
import threading

#: Sleep increment (ms) used by every worker while resting between cycles.
REST_TIME = 10


class CancellationToken:
    """One-way flag shared by all workers.

    Backed by ``threading.Event`` so it can be read from the router's
    worker thread as well as from the event loop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def rest(self, duration_ms: int) -> bool:
        """Sleep ``duration_ms`` in ``REST_TIME`` steps.

        Returns:
            True if cancellation was observed during the rest.
        """
        for _ in range(max(1, duration_ms // REST_TIME)):
            await asyncio.sleep(REST_TIME / 1000)
            if self.cancelled:
                return True
        return self.cancelled
