"""
Pytest configuration and fixtures for metrics-relay.

Provides cross-platform event loop configuration and staging directory helpers.
"""

import asyncio
import sys

import pytest

from metrics_relay.config import parse_config

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def source_dir(tmp_path):
    """Empty source staging directory."""
    d = tmp_path / "sources"
    d.mkdir()
    return d


@pytest.fixture
def sink_dir(tmp_path):
    """Empty sink staging directory."""
    d = tmp_path / "sinks"
    d.mkdir()
    return d


@pytest.fixture
def stage(source_dir):
    """Write a pending ``.metrics`` file into the source directory."""

    def _stage(name: str, content):
        path = source_dir / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _stage


@pytest.fixture
def make_config(source_dir, sink_dir):
    """Build a validated Config rooted at the tmp staging directories."""

    def _make(**overrides):
        data = {
            "sinks": [{"name": "warp", "url": "http://warp/api/v0/update", "token": "t"}],
            "labels": {},
            "parameters": {
                "source-dir": str(source_dir),
                "sink-dir": str(sink_dir),
                "scan-period": 50,
            },
        }
        params = overrides.pop("parameters", {})
        data.update(overrides)
        data["parameters"].update(params)
        return parse_config(data)

    return _make
