# metrics/__init__.py
from __future__ import annotations

from .base import ErrorKind, MetricFetchError, MetricSource, Reading, now_utc
from .datadog import DatadogMetricSource, map_response

__all__ = [
    "DatadogMetricSource",
    "ErrorKind",
    "MetricFetchError",
    "MetricSource",
    "Reading",
    "map_response",
    "now_utc",
]
