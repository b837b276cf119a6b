from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import asdict
from typing import Optional

import typer
from loguru import logger

from .agent import Agent, ensure_dirs
from .config import load_config
from .errors import ConfigError, RouteError, StartupError
from .log import bootstrap, configure_logging
from .router import Router

app = typer.Typer(help="metrics-relay: scrape, stage and forward metrics")


def config_opt() -> Optional[str]:
    return typer.Option(
        None, "--config", "-c", envvar="RELAY_CONFIG", help="Sets a custom config file"
    )


def verbose_opt() -> int:
    return typer.Option(0, "--verbose", "-v", count=True, help="Increase console verbosity")


def _load(config_path: Optional[str]):
    try:
        return load_config(config_path)
    except ConfigError as e:
        logger.critical(f"Fail to load config {config_path or ''}: {e}")
        sys.exit(1)


@app.command("run")
def run(
    config: Optional[str] = config_opt(),
    verbose: int = verbose_opt(),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", help="Expose Prometheus metrics on this port"
    ),
):
    """Run sources, router and sinks until SIGINT/SIGTERM."""
    bootstrap()
    cfg = _load(config)
    configure_logging(cfg.parameters.log_level, cfg.parameters.log_file, verbose)

    if metrics_port:
        from prometheus_client import start_http_server

        start_http_server(metrics_port)
        logger.info(f"Prometheus metrics available on :{metrics_port}/metrics")

    try:
        asyncio.run(Agent(cfg).run())
    except StartupError as e:
        logger.critical(str(e))
        sys.exit(1)


@app.command("route-once")
def route_once(config: Optional[str] = config_opt(), verbose: int = verbose_opt()):
    """Run a single routing cycle and print its summary."""
    bootstrap()
    cfg = _load(config)
    configure_logging(cfg.parameters.log_level, cfg.parameters.log_file, verbose)

    try:
        ensure_dirs(cfg)
        stats = Router.from_config(cfg).route()
    except (StartupError, RouteError) as e:
        logger.error(f"route fail: {e}")
        sys.exit(1)
    typer.echo(json.dumps(asdict(stats), indent=2))


@app.command("check-config")
def check_config(config: Optional[str] = config_opt()):
    """Validate the config file and print it resolved."""
    bootstrap()
    cfg = _load(config)
    typer.echo(json.dumps(cfg.model_dump(), indent=2))


if __name__ == "__main__":
    app()
