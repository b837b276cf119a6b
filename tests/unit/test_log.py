"""
Unit tests for loguru configuration.
"""

import sys

import pytest
from loguru import logger

from metrics_relay.log import configure_logging, console_level


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_console_level_by_verbosity():
    assert console_level(0) == "WARNING"
    assert console_level(1) == "INFO"
    assert console_level(2) == "DEBUG"
    assert console_level(3) == "TRACE"
    assert console_level(9) == "TRACE"
    assert console_level(-1) == "WARNING"


def test_file_sink_uses_configured_level(tmp_path):
    log_file = tmp_path / "relay.log"
    configure_logging("info", str(log_file), verbosity=0)

    logger.bind(component="router").info("route success")
    logger.debug("not recorded")
    logger.remove()  # flush the enqueued file sink

    content = log_file.read_text(encoding="utf-8")
    assert "route success" in content
    assert "router" in content
    assert "not recorded" not in content
