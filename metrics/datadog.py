from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .base import MetricFetchError, Reading, now_utc

log = logging.getLogger("scanmonitor.datadog")

DEFAULT_QUERY = "sum:ticket.scans.count{*}"


def _get_json(url: str, headers: dict[str, str], timeout_s: float) -> dict:
    req = Request(url, headers=headers, method="GET")
    with urlopen(req, timeout=timeout_s) as resp:
        payload = json.loads(resp.read().decode("utf-8"))

    if not isinstance(payload, dict):
        raise ValueError(f"Expected JSON object, got {type(payload).__name__}")

    return payload


def _latest_point(series: dict[str, Any]) -> Optional[tuple[int, Optional[float]]]:
    points = series.get("pointlist")
    if not isinstance(points, list):
        raise ValueError("series.pointlist is not a list")
    if not points:
        return None

    last = points[-1]
    if not isinstance(last, (list, tuple)) or len(last) < 2:
        raise ValueError(f"bad point: {last!r}")
    return int(last[0]), (None if last[1] is None else float(last[1]))


def map_response(payload: dict[str, Any]) -> Reading:
    """
    Map a /api/v1/query payload to a Reading.

    Expected shape (abridged):
    {"series": [{"pointlist": [[1706000000000.0, 945.0], ...], ...}], ...}

    The latest point of the first series wins. No series means no scans yet:
    count 0, captured now.
    """
    try:
        series = payload["series"]
        if not isinstance(series, list):
            raise ValueError("series is not a list")

        if not series:
            log.warning("response contains no series, reporting zero scans")
            return Reading(count=0, captured_at=now_utc())

        point = _latest_point(series[0])
        if point is None:
            return Reading(count=0, captured_at=now_utc())

        ts_ms, value = point
        count = int(value) if value is not None else 0
        captured_at = datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)
        return Reading(count=count, captured_at=captured_at)
    except (AttributeError, KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MetricFetchError("malformed-response", f"{type(exc).__name__}: {exc}") from exc


class DatadogMetricSource:
    """Ticket-scan count from the Datadog metrics query API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        app_key: str,
        query: str = DEFAULT_QUERY,
        timeout_s: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.app_key = app_key
        self.query = query
        self.timeout_s = timeout_s

    def build_url(self, start: datetime, end: datetime) -> str:
        params = urlencode(
            {
                "query": self.query,
                "from": int(start.timestamp()),
                "to": int(end.timestamp()),
            }
        )
        return f"{self.base_url}/api/v1/query?{params}"

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": "scanmonitor/0.1",
            "DD-API-KEY": self.api_key,
            "DD-APPLICATION-KEY": self.app_key,
        }

    def fetch(self, start: datetime, end: datetime) -> Reading:
        url = self.build_url(start, end)
        log.debug("querying %s", url)

        try:
            data = _get_json(url, self._headers(), timeout_s=self.timeout_s)
        except HTTPError as e:
            raise MetricFetchError("server-error", f"HTTP {e.code}: {e.reason}") from e
        except URLError as e:
            reason = getattr(e, "reason", e)
            if isinstance(reason, TimeoutError):
                raise MetricFetchError("timeout", str(reason)) from e
            raise MetricFetchError("network-unreachable", str(reason)) from e
        except TimeoutError as e:
            raise MetricFetchError("timeout", str(e)) from e
        except ValueError as e:
            # json / utf-8 decoding, or a non-object payload
            raise MetricFetchError("malformed-response", str(e)) from e
        except OSError as e:
            raise MetricFetchError("network-unreachable", f"{type(e).__name__}: {e}") from e

        reading = map_response(data)
        log.debug("mapped reading count=%d captured_at=%s", reading.count, reading.captured_at.isoformat())
        return reading
