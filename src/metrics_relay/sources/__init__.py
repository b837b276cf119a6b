"""Source scrapers: HTTP endpoint -> staged ``.metrics`` files."""

from .scraper import SourceScraper, convert_labels, convert_prometheus, convert_sensision, write_staged

__all__ = [
    "SourceScraper",
    "convert_labels",
    "convert_prometheus",
    "convert_sensision",
    "write_staged",
]
