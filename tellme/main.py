"""Web reader: one content unit at a time, read/skip recorded over JSON.

Use: uvicorn tellme.main:app   (or `tellme serve`)
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, Field

from tellme.core.service import ContentNotFoundError, ContentService
from tellme.core.settings import Settings
from tellme.core.storage import StorageError, open_db

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

NO_CONTENT_MESSAGE = "No content available"

jinja = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)

router = APIRouter()


class InteractionRequest(BaseModel):
    fully_read: bool
    reading_time_seconds: int = Field(ge=0)


def get_service(request: Request) -> ContentService:
    service = request.app.state.service
    assert service is not None, "ContentService not initialized"
    return service


def render(template_name: str, **ctx) -> HTMLResponse:
    template = jinja.get_template(template_name)
    return HTMLResponse(template.render(**ctx))


def _storage_error(e: Exception) -> JSONResponse:
    logger.exception("Storage failure")
    return JSONResponse({"error": f"Database error: {e}"}, status_code=500)


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    return render("index.html", request=request)


@router.get("/api/content/random")
def api_content_random(request: Request):
    """Next content unit for the reader.

    404 when nothing is stored, 500 on storage failure.
    """
    service = get_service(request)
    try:
        unit = service.next_content()
    except (sqlite3.Error, StorageError) as e:
        return _storage_error(e)

    if unit is None:
        return JSONResponse({"error": NO_CONTENT_MESSAGE}, status_code=404)

    return unit.to_dict()


@router.post("/api/content/{content_id}/interaction")
def api_content_interaction(request: Request, content_id: int, body: InteractionRequest):
    """Record that the reader finished or skipped a unit."""
    service = get_service(request)
    try:
        interaction = service.record_interaction(
            content_id,
            fully_read=body.fully_read,
            duration_seconds=body.reading_time_seconds,
        )
    except ContentNotFoundError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    except (sqlite3.Error, StorageError) as e:
        return _storage_error(e)

    return {"status": "ok", "interaction": interaction.to_dict()}


@router.get("/api/stats")
def api_stats(request: Request):
    """Content and interaction totals."""
    service = get_service(request)
    try:
        return service.get_stats()
    except (sqlite3.Error, StorageError) as e:
        return _storage_error(e)


def create_app(service: ContentService | None = None) -> FastAPI:
    """Build the web app.

    With ``service`` given, the app uses it and leaves closing it to the
    caller. Otherwise the configured database is opened on startup and closed
    on shutdown.
    """
    app = FastAPI(title="tellme")
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(router)
    app.state.service = service

    if service is not None:
        return app

    @app.on_event("startup")
    def _startup() -> None:
        s = Settings.from_env()
        app.state.service = ContentService(open_db(s.db_path))
        logger.info(f"Opened content database at {s.db_path}")

    @app.on_event("shutdown")
    def _shutdown() -> None:
        if app.state.service is not None:
            app.state.service.close()
            app.state.service = None

    return app


app = create_app()
