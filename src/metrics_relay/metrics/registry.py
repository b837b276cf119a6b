"""
Prometheus metrics for router, source and sink workers.

All collectors live in the global REGISTRY; expose them with
``prometheus_client.start_http_server`` (see ``metrics-relay run --metrics-port``).
"""

from prometheus_client import Counter, Histogram

# --- Router Metrics ---

ROUTE_CYCLES_TOTAL = Counter(
    "relay_route_cycles_total",
    "Total number of routing cycles",
    ["outcome"],
)

ROUTE_CYCLE_SECONDS = Histogram(
    "relay_route_cycle_seconds",
    "Routing cycle duration in seconds",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

ROUTED_FILES_TOTAL = Counter(
    "relay_routed_files_total",
    "Source files committed to every sink and deleted",
)

ROUTED_LINES_TOTAL = Counter(
    "relay_routed_lines_total",
    "Metric lines accumulated into committed batches",
)

DROPPED_LINES_TOTAL = Counter(
    "relay_dropped_lines_total",
    "Metric lines dropped by the router",
    ["reason"],
)

# --- Source / Sink Metrics ---

SCRAPES_TOTAL = Counter(
    "relay_scrapes_total",
    "Source scrapes by outcome",
    ["source", "outcome"],
)

UPLOADS_TOTAL = Counter(
    "relay_uploads_total",
    "Sink file uploads by outcome",
    ["sink", "outcome"],
)


class MetricsRegistry:
    """Structured access to every relay metric."""

    route_cycles_total = ROUTE_CYCLES_TOTAL
    route_cycle_seconds = ROUTE_CYCLE_SECONDS
    routed_files_total = ROUTED_FILES_TOTAL
    routed_lines_total = ROUTED_LINES_TOTAL
    dropped_lines_total = DROPPED_LINES_TOTAL
    scrapes_total = SCRAPES_TOTAL
    uploads_total = UPLOADS_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
