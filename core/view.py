# core/view.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional

from core.state import ObservableState
from metrics.base import ErrorKind

Status = Literal["loading", "live", "stale", "offline", "error"]

_ERROR_TEXT: dict[str, tuple[str, str]] = {
    "network-unreachable": (
        "Network connection error",
        "Check your network connection and try again",
    ),
    "timeout": (
        "Connection timed out",
        "The server is taking too long to respond. Please try again later.",
    ),
    "server-error": (
        "API communication error",
        "There was a problem communicating with the server. Please try again.",
    ),
    "malformed-response": (
        "Unexpected response from the metrics API",
        "Try again or contact support if the problem persists",
    ),
    "unknown": (
        "An unexpected error occurred",
        "Try again or contact support if the problem persists",
    ),
}

@dataclass(frozen=True)
class StateView:
    status: Status
    status_text: str
    count: Optional[int]
    count_text: str
    captured_at: Optional[datetime]
    age_s: Optional[int]
    updated: Optional[str]
    is_loading: bool
    is_connected: bool
    is_stale: bool
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    error_suggestion: Optional[str] = None
    show_retry: bool = False

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)

def format_age(age_s: int) -> str:
    if age_s < 60:
        return f"{age_s}s"
    if age_s < 3600:
        return f"{age_s // 60}m"
    if age_s < 86400:
        return f"{age_s // 3600}h"
    return f"{age_s // 86400}d"

def format_count(count: int) -> str:
    return f"{count:,}"

def status_label(state: ObservableState) -> tuple[Status, str]:
    # Offline wins over stale: the banner should say why data isn't moving.
    if not state.is_connected:
        return "offline", "Offline Mode"
    if state.reading is None:
        if state.error_kind is not None:
            return "error", "Unable to load scan data"
        return "loading", "Loading…"
    if state.is_stale:
        return "stale", "Data may be outdated"
    return "live", "Live Data"

def error_text(kind: ErrorKind) -> tuple[str, str]:
    return _ERROR_TEXT.get(kind, _ERROR_TEXT["unknown"])

def build_view(state: ObservableState, now: Optional[datetime] = None) -> StateView:
    now = now or _now_utc()
    status, text = status_label(state)

    count = captured_at = age_s = updated = None
    if state.reading is not None:
        count = state.reading.count
        captured_at = state.reading.captured_at
        age_s = max(int((now - captured_at).total_seconds()), 0)
        updated = format_age(age_s)

    message = suggestion = None
    if state.error_kind is not None:
        message, suggestion = error_text(state.error_kind)

    return StateView(
        status=status,
        status_text=text,
        count=count,
        count_text=format_count(count) if count is not None else "—",
        captured_at=captured_at,
        age_s=age_s,
        updated=updated,
        is_loading=state.is_loading,
        is_connected=state.is_connected,
        is_stale=state.is_stale,
        error_kind=state.error_kind,
        error_message=message,
        error_suggestion=suggestion,
        # A reading takes precedence over the error panel.
        show_retry=state.error_kind is not None and state.reading is None,
    )
