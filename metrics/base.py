# metrics/base.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Protocol

ErrorKind = Literal[
    "network-unreachable",
    "timeout",
    "server-error",
    "malformed-response",
    "unknown",
]

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

@dataclass(frozen=True)
class Reading:
    count: int              # scans in the trailing window
    captured_at: datetime   # when the source sampled it (UTC)

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        if self.captured_at.tzinfo is None:
            raise ValueError("captured_at must be timezone-aware")


class MetricFetchError(Exception):
    """Raised by a metric source with a classified failure kind."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or kind)
        self.kind = kind


class MetricSource(Protocol):
    def fetch(self, start: datetime, end: datetime) -> Reading:
        """Fetch the metric for [start, end]. Raises MetricFetchError."""
        ...
