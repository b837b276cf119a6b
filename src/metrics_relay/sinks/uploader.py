"""
Sink uploader.

Watches ``sink_dir`` for committed ``<sink>-<ts>.metrics`` files and POSTs
them to the backend. A file is deleted only after a 2xx answer; on any failure
it stays in place and the pass stops, to be retried on the next scan.
"""

from __future__ import annotations

import asyncio
import os
import re
import time
from pathlib import Path
from typing import Optional

import httpx
from loguru import logger

from ..cancel import CancellationToken
from ..config import Parameters, SinkConfig
from ..errors import UploadError
from ..metrics.registry import metrics_registry


def committed_files(sink_dir: str | Path, name: str) -> list[Path]:
    """Committed files of sink ``name``, oldest timestamp first."""
    pattern = re.compile(rf"^{re.escape(name)}-(\d+)\.metrics$")
    found = []
    for entry in os.listdir(sink_dir):
        m = pattern.match(entry)
        if m:
            found.append((int(m.group(1)), entry))
    return [Path(sink_dir) / entry for _, entry in sorted(found)]


class SinkUploader:
    """Upload worker for one ``SinkConfig``."""

    def __init__(
        self,
        sink: SinkConfig,
        parameters: Parameters,
        token: CancellationToken,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.sink = sink
        self.parameters = parameters
        self.token = token
        self._client = client
        self._owns_client = client is None
        self._log = logger.bind(component=f"sink:{sink.name}")

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.parameters.timeout / 1000)

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def run(self) -> None:
        await self.start()
        try:
            while True:
                start = time.monotonic()
                try:
                    await self.upload_pending()
                except OSError as e:
                    self._log.error(f"sink scan fail: {e}")

                elapsed = int((time.monotonic() - start) * 1000)
                if await self.token.rest(max(self.parameters.scan_period - elapsed, 0)):
                    return
        finally:
            await self.stop()

    async def upload_pending(self) -> int:
        """Upload committed files in order; returns how many were delivered."""
        files = await asyncio.to_thread(committed_files, self.parameters.sink_dir, self.sink.name)
        sent = 0
        for path in files:
            if self.token.cancelled:
                break
            try:
                await self.upload(path)
            except (UploadError, httpx.HTTPError, httpx.InvalidURL) as e:
                metrics_registry.uploads_total.labels(sink=self.sink.name, outcome="failure").inc()
                self._log.error(f"upload fail for {path.name}: {type(e).__name__}: {e}")
                break
            sent += 1
        return sent

    async def upload(self, path: Path) -> None:
        """POST ``path`` and delete it once the backend acknowledged it.

        Raises:
            UploadError: non-2xx response
            httpx.HTTPError: network failure
        """
        if self._client is None:
            await self.start()

        body = await asyncio.to_thread(path.read_bytes)
        headers = {"Content-Type": "text/plain"}
        if self.sink.token:
            headers[self.sink.token_header] = self.sink.token

        self._log.debug(f"upload {path.name} ({len(body)} bytes) to {self.sink.url}")
        resp = await self._client.post(self.sink.url, content=body, headers=headers)
        if not 200 <= resp.status_code < 300:
            raise UploadError(
                f"{self.sink.url} answered {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        await asyncio.to_thread(os.remove, path)
        metrics_registry.uploads_total.labels(sink=self.sink.name, outcome="success").inc()
        self._log.debug(f"delivered {path.name}")
