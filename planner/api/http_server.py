"""
Day Planner — HTTP API.

JSON API over the task lifecycle service plus the static web front-end.

Routes:
    GET    /api/nextdate?now=&date=&repeat=   next occurrence, plain text
    POST   /api/task                          create   -> {"id": "..."}
    GET    /api/task?id=                      read     -> task
    PUT    /api/task                          update   -> {}
    DELETE /api/task?id=                      delete   -> {}
    POST   /api/task/done?id=                 complete -> {}
    GET    /api/tasks?search=&limit=          list     -> {"tasks": [...]}

Errors are {"error": "..."} with 400 (bad input), 404 (unknown id) or
500 (storage failure).
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, field_validator

from planner.config import settings
from planner.core.recurrence import DateSyntaxError, RuleSyntaxError, next_date
from planner.core.task_service import TaskService, ValidationError
from planner.data.models import Task
from planner.ports.task_store import NotFoundError, StoreError

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 1000


class TaskPayload(BaseModel):
    """Task JSON as sent by the web client. Every field is optional text."""

    id: str = ""
    date: str = ""
    title: str = ""
    comment: str = ""
    repeat: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: str | int | None) -> str:
        return "" if v is None else str(v)

    def to_task(self) -> Task:
        return Task(
            id=self.id, date=self.date, title=self.title,
            comment=self.comment, repeat=self.repeat,
        )


def _service(request: Request) -> TaskService:
    return request.app.state.service


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ---------------------------------------------------------------------------
# Exception mapping
# ---------------------------------------------------------------------------


async def _bad_input(request: Request, exc: Exception) -> JSONResponse:
    return _error(str(exc), 400)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error("task not found", 404)


async def _store_failure(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("%s %s failed in the task store: %s", request.method, request.url.path, exc)
    return _error("task storage error", 500)


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error("invalid request body", 400)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def api_next_date(now: str = "", date: str = "", repeat: str = "") -> PlainTextResponse:
    """Compute the next occurrence for three textual inputs."""
    if not now or not date or not repeat:
        return PlainTextResponse("now, date and repeat are required", status_code=400)
    try:
        return PlainTextResponse(next_date(now, date, repeat))
    except (DateSyntaxError, RuleSyntaxError) as exc:
        return PlainTextResponse(str(exc), status_code=400)


def api_add_task(payload: TaskPayload, request: Request) -> dict:
    created = _service(request).create_task(payload.to_task())
    return {"id": created.id}


def api_get_task(request: Request, id: str = "") -> dict:
    return _service(request).get_task(id).to_dict()


def api_update_task(payload: TaskPayload, request: Request) -> dict:
    _service(request).update_task(payload.to_task())
    return {}


def api_delete_task(request: Request, id: str = "") -> dict:
    _service(request).delete_task(id)
    return {}


def api_done_task(request: Request, id: str = "") -> dict:
    _service(request).complete_task(id)
    return {}


def api_list_tasks(request: Request, search: str = "", limit: str = "") -> dict:
    # An unreadable limit falls back to the default page size.
    page = min(int(limit), MAX_LIST_LIMIT) if limit.isascii() and limit.isdigit() else None
    tasks = _service(request).list_tasks(search=search, limit=page)
    return {"tasks": [t.to_dict() for t in tasks]}


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def create_app(
    service: TaskService | None = None,
    web_dir: str | None = None,
) -> FastAPI:
    """Build the FastAPI application with all routes.

    Args:
        service: Task service. Defaults to one backed by TaskDB at
                 settings.DATABASE_PATH.
        web_dir: Static front-end directory. Defaults to settings.WEB_DIR;
                 skipped when the directory does not exist.
    """
    if service is None:
        from planner.data.db import TaskDB
        service = TaskService(TaskDB())

    app = FastAPI(title="Day Planner")
    app.state.service = service

    for exc_type in (ValidationError, RuleSyntaxError, DateSyntaxError):
        app.add_exception_handler(exc_type, _bad_input)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(StoreError, _store_failure)
    app.add_exception_handler(RequestValidationError, _invalid_request)

    app.add_api_route("/api/nextdate", api_next_date, methods=["GET"])
    app.add_api_route("/api/task", api_add_task, methods=["POST"])
    app.add_api_route("/api/task", api_get_task, methods=["GET"])
    app.add_api_route("/api/task", api_update_task, methods=["PUT"])
    app.add_api_route("/api/task", api_delete_task, methods=["DELETE"])
    app.add_api_route("/api/task/done", api_done_task, methods=["POST"])
    app.add_api_route("/api/tasks", api_list_tasks, methods=["GET"])

    web_dir = web_dir or settings.WEB_DIR
    if Path(web_dir).is_dir():
        app.mount("/", StaticFiles(directory=web_dir, html=True), name="web")
        logger.info("Serving web front-end from %s", web_dir)

    logger.info("HTTP API built with %d routes", len(app.routes))
    return app


def run() -> None:
    """Entry point: serve the API with uvicorn."""
    import uvicorn

    logger.info("Starting Day Planner HTTP server on %s:%d", settings.HOST, settings.PORT)
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
