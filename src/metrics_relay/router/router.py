"""
Disk-backed store-and-forward router.

One routing cycle drains ``source_dir`` into committed per-sink files:

    select batch -> read -> inject labels -> fan out (minus exclusions)
    -> flush -> rename ``<sink>.tmp`` to ``<sink>-<ts>.metrics`` -> delete sources

and repeats until an iteration selects no file. Source files are deleted only
after every sink file of the iteration has been committed, so any failure
leaves the sources in place for the next cycle (at-least-once delivery).
"""

from __future__ import annotations

import os
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from loguru import logger

from ..config import Config, SinkConfig
from ..errors import MalformedLineError, RouteError
from ..metrics.registry import metrics_registry
from .labels import flatten_labels, inject_labels
from .selector import Selector, build_selector, is_excluded

SOURCE_EXT = ".metrics"
PENDING_EXT = ".tmp"


@dataclass(frozen=True)
class SinkDescriptor:
    """Routing view of a sink: its name and optional exclusion selector."""

    name: str
    selector: Optional[Selector] = None

    @classmethod
    def from_config(cls, cfg: SinkConfig) -> "SinkDescriptor":
        return cls(name=cfg.name, selector=build_selector(cfg.selector))


@dataclass
class Batch:
    """Files selected in one iteration and the relabelled lines they produced."""

    files: list[Path] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)
    size: int = 0
    dropped: int = 0


@dataclass
class RouteStats:
    """Summary of one routing cycle."""

    iterations: int = 0
    files: int = 0
    lines: int = 0
    dropped: int = 0

    def add(self, batch: Batch) -> None:
        self.iterations += 1
        self.files += len(batch.files)
        self.lines += len(batch.lines)
        self.dropped += batch.dropped


def pending_path(sink_dir: Path, name: str) -> Path:
    return sink_dir / f"{name}{PENDING_EXT}"


def committed_path(sink_dir: Path, name: str, ts: int) -> Path:
    return sink_dir / f"{name}-{ts}{SOURCE_EXT}"


class Router:
    """Batches, relabels, fans out and commits staged metric files.

    Example:
        router = Router.from_config(config)
        stats = router.route()
    """

    def __init__(
        self,
        sinks: Sequence[SinkDescriptor],
        labels: Mapping[str, str],
        source_dir: str | Path,
        sink_dir: str | Path,
        batch_count: int,
        batch_size: int,
    ):
        self.sinks = list(sinks)
        self.labels = flatten_labels(labels)
        self.source_dir = Path(source_dir)
        self.sink_dir = Path(sink_dir)
        self.batch_count = batch_count
        self.batch_size = batch_size
        self._log = logger.bind(component="router")

        if not self.sinks:
            self._log.warning("No sink configured: routed metrics will be discarded")

    @classmethod
    def from_config(cls, config: Config) -> "Router":
        p = config.parameters
        return cls(
            sinks=[SinkDescriptor.from_config(s) for s in config.sinks],
            labels=config.labels,
            source_dir=p.source_dir,
            sink_dir=p.sink_dir,
            batch_count=p.batch_count,
            batch_size=p.batch_size,
        )

    # --------------------------- public API

    def route(self) -> RouteStats:
        """Run one cycle: iterate until no pending file is left.

        Raises:
            RouteError: cycle-fatal failure; sources of the failing iteration are kept
        """
        self._log.debug("route")
        stats = RouteStats()
        while True:
            batch = self.select_batch()
            if not batch.files:
                break

            self._write(batch)
            ts = self._commit()
            self._cleanup(batch)

            stats.add(batch)
            metrics_registry.routed_files_total.inc(len(batch.files))
            metrics_registry.routed_lines_total.inc(len(batch.lines))
            self._log.debug(
                f"Committed {len(batch.files)} file(s), {len(batch.lines)} line(s) "
                f"to {len(self.sinks)} sink(s) at {ts}"
            )
        return stats

    def select_batch(self) -> Batch:
        """Read the next batch of pending files.

        Selection stops once, before handling the next eligible file, either the
        number of files already examined exceeds ``batch_count`` or the
        accumulated size exceeds ``batch_size``; each ceiling may therefore be
        overshot by one file.
        """
        batch = Batch()
        examined = 0
        for path in self._list_sources():
            if examined > self.batch_count or batch.size > self.batch_size:
                break
            examined += 1

            self._log.debug(f"open source file {path}")
            try:
                raw = path.read_bytes()
                content = raw.decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self._log.warning(f"Skipping unreadable source file {path}: {e}")
                continue

            for line in content.split("\n"):
                line = line.rstrip("\r")
                if not line.strip():
                    continue
                try:
                    batch.lines.append(inject_labels(line, self.labels))
                except MalformedLineError as e:
                    batch.dropped += 1
                    metrics_registry.dropped_lines_total.labels(reason=e.reason).inc()
                    self._log.warning(f"Dropping malformed line in {path.name}: {e}")

            batch.files.append(path)
            batch.size += len(raw)
        return batch

    # --------------------------- internals

    def _list_sources(self) -> list[Path]:
        try:
            names = sorted(os.listdir(self.source_dir))
        except OSError as e:
            raise RouteError("list", str(self.source_dir), str(e)) from e
        return [self.source_dir / n for n in names if n.endswith(SOURCE_EXT)]

    def _write(self, batch: Batch) -> None:
        with ExitStack() as stack:
            handles = []
            for sink in self.sinks:
                tmp = pending_path(self.sink_dir, sink.name)
                self._log.debug(f"open tmp sink file {tmp}")
                try:
                    handles.append(stack.enter_context(open(tmp, "w", encoding="utf-8", newline="")))
                except OSError as e:
                    raise RouteError("open", str(tmp), str(e)) from e

            self._log.debug("write sink files")
            try:
                for line in batch.lines:
                    for sink, fh in zip(self.sinks, handles):
                        if is_excluded(line, sink.selector):
                            continue
                        fh.write(line)
                        fh.write("\n")
            except OSError as e:
                raise RouteError("write", str(self.sink_dir), str(e)) from e

            try:
                for fh in handles:
                    fh.flush()
            except OSError as e:
                raise RouteError("flush", str(self.sink_dir), str(e)) from e

    def _commit(self) -> int:
        """Rename every pending sink file under one shared timestamp."""
        ts = int(time.time())
        # never clobber a committed file the uploader has not consumed yet
        while any(committed_path(self.sink_dir, s.name, ts).exists() for s in self.sinks):
            ts += 1

        for sink in self.sinks:
            dest = committed_path(self.sink_dir, sink.name, ts)
            self._log.debug(f"rotate tmp sink file to {dest}")
            try:
                os.replace(pending_path(self.sink_dir, sink.name), dest)
            except OSError as e:
                raise RouteError("commit", str(dest), str(e)) from e
        return ts

    def _cleanup(self, batch: Batch) -> None:
        for path in batch.files:
            self._log.debug(f"delete source file {path}")
            try:
                os.remove(path)
            except OSError as e:
                raise RouteError("cleanup", str(path), str(e)) from e
