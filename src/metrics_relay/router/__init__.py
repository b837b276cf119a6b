"""Router

Disk-backed store-and-forward core between scrapers and uploaders:
- Batch selection bounded by file count and cumulative size
- Global label injection
- Per-sink exclusion selectors
- Atomic per-sink commit (tmp file + rename) before source deletion
- Periodic scheduler with bounded-latency cancellation
"""

from .labels import flatten_labels, inject_labels
from .selector import Selector, RegexSelector, build_selector, is_excluded, selector_token
from .router import Batch, Router, RouteStats, SinkDescriptor, committed_path, pending_path
from .scheduler import RouterScheduler, sleep_time

__all__ = [
    # labels
    "flatten_labels",
    "inject_labels",
    # selectors
    "Selector",
    "RegexSelector",
    "build_selector",
    "is_excluded",
    "selector_token",
    # routing
    "Batch",
    "Router",
    "RouteStats",
    "SinkDescriptor",
    "committed_path",
    "pending_path",
    # scheduling
    "RouterScheduler",
    "sleep_time",
]
