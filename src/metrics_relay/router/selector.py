"""
Per-sink exclusion filter.

A sink may carry a ``Selector``; lines whose second whitespace-delimited token
matches it are NOT forwarded to that sink (blacklist).
"""

from __future__ import annotations

import re
from typing import Optional, Protocol


class Selector(Protocol):
    """Predicate tested against a single token of a metric line."""

    def matches(self, token: str) -> bool: ...


class RegexSelector:
    """Regex predicate with search (unanchored) semantics."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._re = re.compile(pattern)

    def matches(self, token: str) -> bool:
        return self._re.search(token) is not None

    def __repr__(self) -> str:
        return f"RegexSelector({self.pattern!r})"


def build_selector(pattern: Optional[str]) -> Optional[Selector]:
    return RegexSelector(pattern) if pattern is not None else None


def selector_token(line: str) -> Optional[str]:
    """Second whitespace-delimited token (``class{labels}`` in ``ts// class{labels} value``)."""
    parts = line.split(None, 2)
    return parts[1] if len(parts) > 1 else None


def is_excluded(line: str, selector: Optional[Selector]) -> bool:
    if selector is None:
        return False
    token = selector_token(line)
    return token is not None and selector.matches(token)
