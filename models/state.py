from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from core.view import StateView


class ReadingOut(BaseModel):
    count: int
    captured_at: datetime
    age_s: int
    age: str


class StateOut(BaseModel):
    status: str
    status_text: str
    is_loading: bool
    is_connected: bool
    is_stale: bool
    reading: Optional[ReadingOut] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    error_suggestion: Optional[str] = None
    show_retry: bool = False

    @classmethod
    def from_view(cls, view: StateView) -> "StateOut":
        reading = None
        if view.count is not None and view.captured_at is not None:
            reading = ReadingOut(
                count=view.count,
                captured_at=view.captured_at,
                age_s=view.age_s or 0,
                age=view.updated or "0s",
            )
        return cls(
            status=view.status,
            status_text=view.status_text,
            is_loading=view.is_loading,
            is_connected=view.is_connected,
            is_stale=view.is_stale,
            reading=reading,
            error_kind=view.error_kind,
            error_message=view.error_message,
            error_suggestion=view.error_suggestion,
            show_retry=view.show_retry,
        )
