"""
Unit tests for the typer CLI.
"""

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from metrics_relay.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logger():
    """CLI commands reconfigure loguru; put a plain stderr handler back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def config_file(tmp_path, source_dir, sink_dir):
    path = tmp_path / "relay.yaml"
    path.write_text(
        f"""
sinks:
  - name: warp
    url: http://warp/api/v0/update
labels:
  env: prod
parameters:
  source-dir: {source_dir}
  sink-dir: {sink_dir}
""",
        encoding="utf-8",
    )
    return path


def test_check_config_prints_resolved_config(config_file):
    result = runner.invoke(app, ["check-config", "-c", str(config_file)])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["sinks"][0]["name"] == "warp"
    assert data["labels"] == {"env": "prod"}
    assert data["parameters"]["batch_count"] == 250


def test_check_config_missing_file_exits_nonzero(tmp_path):
    result = runner.invoke(app, ["check-config", "-c", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1


def test_route_once(config_file, stage, sink_dir):
    stage("1.metrics", "1// foo{} 5\n")

    result = runner.invoke(app, ["route-once", "-c", str(config_file)])

    assert result.exit_code == 0
    stats = json.loads(result.stdout)
    assert stats["files"] == 1
    assert stats["lines"] == 1
    [committed] = list(sink_dir.iterdir())
    assert committed.read_text(encoding="utf-8") == "1// foo{env=prod} 5\n"
