"""
Configuration for metrics-relay.

The agent is configured from a YAML file (sources, sinks, global labels and
runtime parameters). ``RELAY_*`` environment variables override individual
parameters, which keeps container deployments from having to template the file.

Example:
    config = load_config("relay.yaml")
    config.parameters.scan_period  # 1000
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

DEFAULT_TOKEN_HEADER = "X-Warp10-Token"


def _dashed(name: str) -> str:
    return name.replace("_", "-")


def _check_name(kind: str, v: str) -> str:
    """Names end up in staged file names."""
    if not v.strip():
        raise ValueError(f"{kind} name must not be empty")
    if "/" in v or "\\" in v:
        raise ValueError(f"{kind} name must not contain path separators: {v}")
    return v


def _check_url(kind: str, v: str) -> str:
    try:
        url = httpx.URL(v)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid {kind} url {v!r}: {e}") from e
    if url.scheme not in {"http", "https"} or not url.host:
        raise ValueError(f"invalid {kind} url {v!r}: must be an http(s) URL with a host")
    return v


class _Section(BaseModel):
    """Accepts both ``scan-period`` and ``scan_period`` keys."""

    model_config = ConfigDict(
        alias_generator=_dashed,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class SourceConfig(_Section):
    """Scrape target."""

    name: str
    url: str
    period: int = 10_000  # ms
    format: str = "prometheus"

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name("source", v)

    @field_validator("url")
    @classmethod
    def _valid_url(cls, v: str) -> str:
        return _check_url("source", v)

    @field_validator("period")
    @classmethod
    def _positive_period(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("source period must be > 0")
        return v

    @field_validator("format")
    @classmethod
    def _known_format(cls, v: str) -> str:
        v = v.lower()
        if v not in {"prometheus", "sensision"}:
            raise ValueError(f"Invalid source format: {v}. Must be prometheus or sensision")
        return v


class SinkConfig(_Section):
    """Forwarding destination; ``selector`` excludes matching metrics."""

    name: str
    url: str
    token: str = ""
    token_header: str = DEFAULT_TOKEN_HEADER
    selector: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name("sink", v)

    @field_validator("url")
    @classmethod
    def _valid_url(cls, v: str) -> str:
        return _check_url("sink", v)

    @field_validator("selector")
    @classmethod
    def _compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid selector {v!r}: {e}") from e
        return v


class Parameters(_Section):
    """Runtime parameters shared by every worker."""

    source_dir: str = "sources"
    sink_dir: str = "sinks"
    scan_period: int = 1000  # ms
    batch_count: int = 250  # files per iteration
    batch_size: int = 200_000  # bytes per iteration
    log_file: Optional[str] = None
    log_level: str = "info"
    timeout: int = 500  # ms, HTTP requests

    @field_validator("scan_period", "batch_count", "batch_size", "timeout")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def _level(cls, v: str) -> str:
        v = v.lower()
        if v not in {"trace", "debug", "info", "warning", "warn", "error", "critical"}:
            raise ValueError(f"Invalid log level: {v}")
        return "warning" if v == "warn" else v


class Config(_Section):
    """Complete agent configuration."""

    sources: list[SourceConfig] = []
    sinks: list[SinkConfig] = []
    labels: dict[str, str] = {}
    parameters: Parameters = Parameters()

    @field_validator("labels", mode="before")
    @classmethod
    def _stringify_labels(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("labels must be a mapping")
        return {str(k): str(val) for k, val in v.items()}

    @model_validator(mode="after")
    def _unique_names(self) -> "Config":
        for kind, items in (("source", self.sources), ("sink", self.sinks)):
            seen: set[str] = set()
            for item in items:
                if item.name in seen:
                    raise ValueError(f"duplicate {kind} name: {item.name}")
                seen.add(item.name)
        return self


class RelaySettings(BaseSettings):
    """Environment overrides (``RELAY_*``)."""

    model_config = SettingsConfigDict(env_prefix="RELAY_", env_file=".env", extra="ignore")

    CONFIG: str = "config.yaml"
    SOURCE_DIR: Optional[str] = None
    SINK_DIR: Optional[str] = None
    SCAN_PERIOD: Optional[int] = None
    BATCH_COUNT: Optional[int] = None
    BATCH_SIZE: Optional[int] = None
    LOG_FILE: Optional[str] = None
    LOG_LEVEL: Optional[str] = None
    TIMEOUT: Optional[int] = None

    def parameter_overrides(self) -> dict:
        fields = (
            "SOURCE_DIR",
            "SINK_DIR",
            "SCAN_PERIOD",
            "BATCH_COUNT",
            "BATCH_SIZE",
            "LOG_FILE",
            "LOG_LEVEL",
            "TIMEOUT",
        )
        return {f.lower(): getattr(self, f) for f in fields if getattr(self, f) is not None}


@lru_cache()
def get_settings() -> RelaySettings:
    return RelaySettings()


def parse_config(data: dict | None, overrides: dict | None = None) -> Config:
    """Validate a raw mapping (as loaded from YAML) into a ``Config``."""
    data = dict(data or {})
    if overrides:
        params = {k.replace("-", "_"): v for k, v in dict(data.get("parameters") or {}).items()}
        params.update(overrides)
        data["parameters"] = params
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def load_config(path: str | Path | None = None, settings: RelaySettings | None = None) -> Config:
    """Load and validate the YAML configuration file.

    Args:
        path: Config file; defaults to ``RELAY_CONFIG`` (or ``config.yaml``)
        settings: Environment overrides; defaults to ``get_settings()``

    Raises:
        ConfigError: file unreadable, not YAML, or failing validation
    """
    settings = settings or get_settings()
    path = Path(path or settings.CONFIG)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse config {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return parse_config(data, settings.parameter_overrides())
