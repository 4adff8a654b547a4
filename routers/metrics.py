from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from core.cache import CacheError, ReadingCache
from core.coordinator import StateCoordinator
from core.view import build_view
from models.state import StateOut

log = logging.getLogger("scanmonitor.routers.metrics")

router = APIRouter(tags=["metrics"])


def _coordinator(request: Request) -> StateCoordinator:
    return request.app.state.coordinator


def _cache(request: Request) -> ReadingCache:
    return request.app.state.cache


@router.get("/api/state", response_model=StateOut)
def api_state(request: Request) -> StateOut:
    return StateOut.from_view(build_view(_coordinator(request).state))


@router.post("/api/refresh", response_model=StateOut)
async def api_refresh(request: Request) -> StateOut:
    state = await _coordinator(request).refresh()
    return StateOut.from_view(build_view(state))


@router.delete("/api/cache")
def api_clear_cache(request: Request) -> dict:
    cache = _cache(request)
    had_reading = cache.is_available()
    try:
        cache.clear()
    except CacheError as exc:
        log.warning("cache clear failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="cache could not be cleared")
    return {"ok": True, "cleared": had_reading}


@router.get("/txt", response_class=PlainTextResponse)
def txt_state(request: Request) -> str:
    view = build_view(_coordinator(request).state)
    label = view.status.upper().ljust(7)
    age = (view.updated or "-").rjust(4)
    line = f"{label} scans/2h {view.count_text:>8} {age}"
    if view.error_message and view.count is None:
        line += f"  {view.error_message}"
    return line + "\n"
