"""
Global label injection.

GlobalLabels are flattened once per run into ``k=v,k2=v2`` and merged into the
label-set of every routed line.
"""

from __future__ import annotations

from typing import Mapping

from ..errors import MalformedLineError


def flatten_labels(labels: Mapping[str, str]) -> str:
    """Flatten labels into a comma separated ``key=value`` string, insertion order."""
    return ",".join(f"{k}={v}" for k, v in labels.items())


def inject_labels(line: str, labels: str) -> str:
    """Merge pre-flattened ``labels`` into ``line``.

    ``foo{} 5`` + ``env=prod``    -> ``foo{env=prod} 5``
    ``foo{bar=1} 5`` + ``env=prod`` -> ``foo{env=prod,bar=1} 5``

    Raises:
        MalformedLineError: the line has no ``{`` (no label section)
    """
    if not labels:
        return line

    cls, sep, remainder = line.partition("{")
    if not sep:
        raise MalformedLineError("no_labels", line)

    glue = "" if remainder.strip().startswith("}") else ","
    return f"{cls}{{{labels}{glue}{remainder}"
