from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from starlette.templating import Jinja2Templates

from core.coordinator import StateCoordinator
from core.view import build_view

router = APIRouter(tags=["dashboard"])


def _templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def _coordinator(request: Request) -> StateCoordinator:
    return request.app.state.coordinator


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    view = build_view(_coordinator(request).state)
    return _templates(request).TemplateResponse(request, "dashboard.html", {"view": view})
