# src/task_sync/api/http.py

"""
Stateless task REST API.

Plain pass-through to the document store for non-realtime consumers:
no owner scoping, no authentication, generic 500 on any store failure.

    GET    /                -> "Task REST API is running!"
    GET    /api/tasks       -> [Task...]
    POST   /api/tasks       -> {"task": str}  => 201 Task | 400
    PUT    /api/tasks/{id}  -> {...fields}    => 200 Task
    DELETE /api/tasks/{id}  -> {"success": bool}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from ..core.models import FIELD_TEXT
from ..core.ports import DocumentStore

logger = logging.getLogger(__name__)


class NewTask(BaseModel):
    task: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
        store: DocumentStore,
        *,
        collection: str = "tasks",
        cors_origins: list[str] | None = None,
) -> FastAPI:
    app = FastAPI(title="task-sync REST API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Task REST API is running!"

    @app.get("/api/tasks")
    async def list_tasks():
        try:
            docs = await store.list_all(collection)
            return [d.to_dict() for d in docs]
        except Exception:
            logger.exception("GET /api/tasks failed")
            return _error(500, "Failed to fetch tasks")

    @app.post("/api/tasks", status_code=201)
    async def add_task(body: Optional[NewTask] = None):
        if body is None or not body.task:
            return _error(400, "Task is required")
        try:
            doc_id = await store.insert(collection, {FIELD_TEXT: body.task})
            return {"id": doc_id, FIELD_TEXT: body.task}
        except Exception:
            logger.exception("POST /api/tasks failed")
            return _error(500, "Failed to add task")

    @app.put("/api/tasks/{task_id}")
    async def update_task(task_id: str, updates: dict[str, Any] = Body(default={})):
        fields = {k: v for k, v in updates.items() if k != "id"}
        try:
            await store.update_fields(collection, task_id, fields)
            return {**fields, "id": task_id}
        except Exception:
            logger.exception("PUT /api/tasks/%s failed", task_id)
            return _error(500, "Failed to update task")

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str):
        try:
            await store.delete(collection, task_id)
            return {"success": True}
        except Exception:
            logger.exception("DELETE /api/tasks/%s failed", task_id)
            return _error(500, "Failed to delete task")

    return app
