from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import get_runtime
from models.records import DataMode
from services.runtime import PlantRuntime


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    runtime: PlantRuntime = Depends(get_runtime),
) -> HTMLResponse:
    snapshot = runtime.switch.current_snapshot()
    replay = runtime.switch.status()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "snapshot": snapshot,
            "replay": replay,
            "is_real": snapshot.source is DataMode.real,
            "refresh_seconds": max(1, int(runtime.scheduler.interval)),
        },
    )
