"""
Agent wiring.

Spawns one task per source, one router task and one task per sink. The tasks
share nothing but the two staging directories and a ``CancellationToken``;
SIGINT/SIGTERM only cancel the token, then the agent waits for every worker
to reach its next rest point and exit.
"""

from __future__ import annotations

import asyncio
import os
import signal
from typing import Optional

from loguru import logger

from .cancel import CancellationToken
from .config import Config
from .errors import StartupError
from .router import Router, RouterScheduler
from .sinks import SinkUploader
from .sources import SourceScraper


def ensure_dirs(config: Config) -> None:
    """Create both staging directories.

    Raises:
        StartupError: a directory cannot be created (process-fatal)
    """
    for kind, path in (
        ("source", config.parameters.source_dir),
        ("sink", config.parameters.sink_dir),
    ):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise StartupError(f"Fail to create {kind} directory {path}: {e}") from e


class Agent:
    """Runs sources, router and sinks until cancelled."""

    def __init__(self, config: Config, token: Optional[CancellationToken] = None):
        self.config = config
        self.token = token or CancellationToken()
        self.sources = [SourceScraper(s, config.parameters, self.token) for s in config.sources]
        self.router = RouterScheduler(
            Router.from_config(config), config.parameters.scan_period, self.token
        )
        self.sinks = [SinkUploader(s, config.parameters, self.token) for s in config.sinks]

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.token.cancel)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda *_: self.token.cancel())

    async def run(self) -> None:
        logger.info("starting")
        ensure_dirs(self.config)
        self._install_signal_handlers()

        tasks: list[asyncio.Task] = []
        logger.info("spawning sources")
        for s in self.sources:
            tasks.append(asyncio.create_task(s.run(), name=f"source:{s.source.name}"))
        logger.info("spawning router")
        tasks.append(asyncio.create_task(self.router.run(), name="router"))
        logger.info("spawning sinks")
        for k in self.sinks:
            tasks.append(asyncio.create_task(k.run(), name=f"sink:{k.sink.name}"))
        logger.info("started")

        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self.token.cancel()

        logger.info("shutting down")
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                logger.error(f"Worker {task.get_name()} crashed: {type(result).__name__}: {result}")
        logger.info("halted")
