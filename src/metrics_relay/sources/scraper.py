"""
Source scraper.

Polls one metrics endpoint every ``period`` ms and stages the result in
``source_dir`` as ``<source>-<unix_ms>.metrics``. Files are written under a
``.tmp`` name and renamed once complete, so the router never reads a partial file.

Prometheus exposition is converted to the staged line format
``<ts_us>// class{labels} value``.
"""

from __future__ import annotations

import asyncio
import os
import re
import time
from pathlib import Path
from typing import Iterable, Iterator, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from ..cancel import CancellationToken
from ..config import Parameters, SourceConfig
from ..errors import ScrapeError
from ..metrics.registry import metrics_registry

_LABEL_RE = re.compile(r'\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*=\s*"((?:[^"\\]|\\.)*)"\s*,?')


def _unescape(value: str) -> str:
    return value.replace('\\"', '"').replace("\\n", "\n").replace("\\\\", "\\")


def convert_labels(raw: str) -> str:
    """``a="x",b="y z"`` -> ``a=x,b=y%20z``."""
    return ",".join(
        f"{k}={quote(_unescape(v), safe='')}" for k, v in _LABEL_RE.findall(raw)
    )


def convert_prometheus(body: str, now_us: int) -> Iterator[str]:
    """Convert Prometheus text exposition into staged lines.

    Comments and blank lines are skipped. Samples without a timestamp are
    stamped with ``now_us``; Prometheus timestamps (ms) are scaled to µs.
    """
    for raw in body.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        open_ = line.find("{")
        if open_ != -1:
            close = line.rfind("}")
            if close < open_:
                logger.warning(f"Skipping unparsable sample: {line!r}")
                continue
            series = f"{line[:open_]}{{{convert_labels(line[open_ + 1:close])}}}"
            rest = line[close + 1 :].split()
        else:
            name, *rest = line.split()
            series = f"{name}{{}}"

        if not rest:
            logger.warning(f"Skipping sample without value: {line!r}")
            continue

        ts = now_us
        if len(rest) > 1:
            try:
                ts = int(rest[1]) * 1000
            except ValueError:
                logger.warning(f"Ignoring invalid timestamp in {line!r}")
        yield f"{ts}// {series} {rest[0]}"


def convert_sensision(body: str) -> Iterator[str]:
    for raw in body.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            yield line


def write_staged(source_dir: str | Path, name: str, lines: Iterable[str], ts_ms: int) -> Path:
    """Write lines to ``<name>-<ts_ms>.tmp`` then rename it to ``.metrics``."""
    source_dir = Path(source_dir)
    tmp = source_dir / f"{name}-{ts_ms}.tmp"
    dest = source_dir / f"{name}-{ts_ms}.metrics"
    with open(tmp, "w", encoding="utf-8", newline="") as fh:
        for line in lines:
            fh.write(line)
            fh.write("\n")
        fh.flush()
    os.replace(tmp, dest)
    return dest


class SourceScraper:
    """Periodic scrape worker for one ``SourceConfig``."""

    def __init__(
        self,
        source: SourceConfig,
        parameters: Parameters,
        token: CancellationToken,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.source = source
        self.parameters = parameters
        self.token = token
        self._client = client
        self._owns_client = client is None
        self._log = logger.bind(component=f"source:{source.name}")

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
                    await self.scrape_once()
                except (ScrapeError, httpx.HTTPError, httpx.InvalidURL, OSError) as e:
                    metrics_registry.scrapes_total.labels(
                        source=self.source.name, outcome="failure"
                    ).inc()
                    self._log.error(f"scrape fail: {type(e).__name__}: {e}")

                elapsed = int((time.monotonic() - start) * 1000)
                if await self.token.rest(max(self.source.period - elapsed, 0)):
                    return
        finally:
            await self.stop()

    async def scrape_once(self) -> Path:
        """Fetch the endpoint and stage its samples.

        Raises:
            ScrapeError: non-2xx response
            httpx.HTTPError: network failure
            OSError: staging write failure
        """
        if self._client is None:
            await self.start()

        now = time.time()
        self._log.debug(f"scrape {self.source.url}")
        resp = await self._client.get(self.source.url)
        if not 200 <= resp.status_code < 300:
            raise ScrapeError(f"{self.source.url} answered {resp.status_code}")

        if self.source.format == "sensision":
            lines = list(convert_sensision(resp.text))
        else:
            lines = list(convert_prometheus(resp.text, int(now * 1_000_000)))

        path = await asyncio.to_thread(
            write_staged, self.parameters.source_dir, self.source.name, lines, int(now * 1000)
        )
        metrics_registry.scrapes_total.labels(source=self.source.name, outcome="success").inc()
        self._log.debug(f"staged {len(lines)} line(s) to {path}")
        return path
