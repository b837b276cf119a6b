"""
metrics-relay

Lightweight telemetry-forwarding agent: scrapes metric endpoints, stages the
results on local disk, and relays them to a remote time-series backend through
a disk-backed store-and-forward router.

Usage:
    from metrics_relay import Router, load_config

    config = load_config("relay.yaml")
    stats = Router.from_config(config).route()
"""

from .agent import Agent, ensure_dirs
from .cancel import CancellationToken
from .config import Config, Parameters, SinkConfig, SourceConfig, load_config, parse_config
from .errors import (
    ConfigError,
    MalformedLineError,
    RelayError,
    RouteError,
    ScrapeError,
    StartupError,
    UploadError,
)
from .router import Router, RouterScheduler, RouteStats, SinkDescriptor

__version__ = "0.3.0"
__all__ = [
    "Agent",
    "ensure_dirs",
    "CancellationToken",
    "Config",
    "Parameters",
    "SinkConfig",
    "SourceConfig",
    "load_config",
    "parse_config",
    "RelayError",
    "ConfigError",
    "StartupError",
    "MalformedLineError",
    "RouteError",
    "ScrapeError",
    "UploadError",
    "Router",
    "RouterScheduler",
    "RouteStats",
    "SinkDescriptor",
]
