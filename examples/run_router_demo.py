"""
Demo script for the Router.

Stages a few files in a temporary directory, routes them to two sinks (one
excluding ``go_*`` metrics) and prints the committed output.
"""

import tempfile
from pathlib import Path

from loguru import logger

from metrics_relay.router import RegexSelector, Router, SinkDescriptor


def main():
    with tempfile.TemporaryDirectory() as tmp:
        source_dir = Path(tmp) / "sources"
        sink_dir = Path(tmp) / "sinks"
        source_dir.mkdir()
        sink_dir.mkdir()

        for i in range(5):
            (source_dir / f"node-{i}.metrics").write_text(
                f"{i}// go_goroutines{{}} {10 + i}\n"
                f"{i}// node_load1{{cpu=0}} 0.{i}\n"
                "malformed line without labels\n",
                encoding="utf-8",
            )

        router = Router(
            sinks=[
                SinkDescriptor("all"),
                SinkDescriptor("nogo", RegexSelector("^go_")),
            ],
            labels={"host": "demo", "dc": "local"},
            source_dir=source_dir,
            sink_dir=sink_dir,
            batch_count=2,
            batch_size=1_000_000,
        )
        stats = router.route()
        logger.info(
            f"Routed {stats.files} files / {stats.lines} lines in {stats.iterations} iterations "
            f"({stats.dropped} dropped)"
        )

        for path in sorted(sink_dir.iterdir()):
            logger.info(f"--- {path.name}")
            for line in path.read_text(encoding="utf-8").splitlines():
                logger.info(line)


if __name__ == "__main__":
    main()
