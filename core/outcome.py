from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from metrics.base import ErrorKind, Reading


@dataclass(frozen=True)
class Fresh:
    """Fetched from the network just now."""
    reading: Reading


@dataclass(frozen=True)
class CachedFresh:
    """Served from cache, younger than the staleness threshold."""
    reading: Reading


@dataclass(frozen=True)
class CachedStale:
    """Served from cache past the threshold, or as a fallback after a failed fetch."""
    reading: Reading


@dataclass(frozen=True)
class Failed:
    error_kind: ErrorKind


FetchOutcome = Union[Fresh, CachedFresh, CachedStale, Failed]
