"""HTTP routes for the task list."""

import logging
from typing import TypeVar

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from todos_api.errors import (
    BadRequestError,
    InternalServerError,
    TaskNotFoundError,
)
from todos_api.models import Task, TaskDraft
from todos_api.store import TaskStore, UpsertResult

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_task_adapter = TypeAdapter(Task)
_task_list_adapter = TypeAdapter(list[Task])


def _parse_task_id(operation: str, raw: str) -> int:
    # Digits only: int() alone would accept "+5", " 5" and "1_0".
    if not (raw.isascii() and raw.isdigit()):
        logger.warning("%s: invalid id %r", operation, raw[:200])
        raise BadRequestError("invalid id")
    try:
        return int(raw)
    except ValueError as exc:
        # Past the interpreter's int digit limit.
        logger.warning("%s: invalid id %r", operation, raw[:200])
        raise BadRequestError("invalid id") from exc


async def _read_body(
    operation: str, request: Request, model: type[ModelT]
) -> ModelT:
    raw = await request.body()
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "%s: invalid format %r (%d errors)",
            operation,
            raw[:200],
            exc.error_count(),
        )
        raise BadRequestError("invalid format") from exc


def _json_response(
    operation: str, adapter: TypeAdapter, value: object
) -> Response:
    try:
        content = adapter.dump_json(value)
    except PydanticSerializationError as exc:
        logger.error("%s: failed to serialize %r: %s", operation, value, exc)
        raise InternalServerError("internal error") from exc
    return Response(content=content, media_type="application/json")


def _created(task_id: int) -> Response:
    return Response(status_code=201, headers={"Location": f"/todos/{task_id}"})


def create_routes(store: TaskStore) -> APIRouter:
    """Create API routes with access to the task store."""
    router = APIRouter(prefix="/todos")

    @router.get("")
    def list_tasks() -> Response:
        """List all current tasks."""
        return _json_response(
            "list_tasks", _task_list_adapter, store.list_tasks()
        )

    @router.post("", status_code=201)
    async def create_task(request: Request) -> Response:
        """Create a task under a server-allocated id."""
        draft = await _read_body("create_task", request, TaskDraft)
        # The store lock is shared with threadpool handlers.
        task_id = await run_in_threadpool(store.create_task, draft.description)
        logger.info("Created task %d", task_id)
        return _created(task_id)

    @router.get("/{task_id}")
    def get_task(task_id: str) -> Response:
        """Get a single task by id."""
        parsed_id = _parse_task_id("get_task", task_id)
        task = store.get_task(parsed_id)
        if task is None:
            logger.info("get_task: task %d not found", parsed_id)
            raise TaskNotFoundError()
        return _json_response("get_task", _task_adapter, task)

    @router.put("/{task_id}")
    async def put_task(task_id: str, request: Request) -> Response:
        """Replace the task at an id, or create it there if absent."""
        parsed_id = _parse_task_id("put_task", task_id)
        task = await _read_body("put_task", request, Task)
        if task.id != parsed_id:
            logger.warning(
                "put_task: id mismatch, path %d vs body %d",
                parsed_id,
                task.id,
            )
            raise BadRequestError("id mismatch")
        result = await run_in_threadpool(
            store.upsert_task, parsed_id, task.description
        )
        logger.info("put_task: task %d %s", parsed_id, result.value)
        if result is UpsertResult.CREATED:
            return _created(parsed_id)
        return Response(status_code=204)

    @router.delete("/{task_id}", status_code=204)
    def delete_task(task_id: str) -> Response:
        """Delete a task. Deleting an absent id is not an error."""
        parsed_id = _parse_task_id("delete_task", task_id)
        existed = store.delete_task(parsed_id)
        logger.info("delete_task: task %d (existed=%s)", parsed_id, existed)
        return Response(status_code=204)

    return router
