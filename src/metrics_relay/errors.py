"""
Custom exceptions for metrics-relay.

Splits failures into the three classes the agent reacts to differently:
per-line/per-file problems (absorbed locally), cycle-fatal routing errors
(surfaced to the scheduler) and process-fatal startup errors.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base error for metrics-relay."""

    pass


class ConfigError(RelayError):
    """Configuration file missing, unreadable or invalid."""

    pass


class StartupError(RelayError):
    """Process-fatal bootstrap failure (e.g. staging directory creation)."""

    pass


class MalformedLineError(RelayError):
    """Metric line without a class separator or label section."""

    def __init__(self, reason: str, line: str):
        super().__init__(f"{reason}: {line!r}")
        self.reason = reason
        self.line = line


class RouteError(RelayError):
    """Cycle-fatal routing failure.

    Attributes:
        phase: Step of the iteration that failed
            ("list", "open", "write", "flush", "commit", "cleanup")
        path: Filesystem path involved, when known
    """

    def __init__(self, phase: str, path: str | None = None, message: str | None = None):
        detail = message or "routing failed"
        where = f" ({path})" if path else ""
        super().__init__(f"{phase}: {detail}{where}")
        self.phase = phase
        self.path = path


class ScrapeError(RelayError):
    """Source endpoint could not be scraped."""

    pass


class UploadError(RelayError):
    """Committed sink file could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
