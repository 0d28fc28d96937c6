import asyncio
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, WebSocket

from api import state
from api.dependencies import get_orchestrator, get_repository, get_user_id
from orchestration.task_orchestrator import TaskOrchestrator
from storage.task_repository import TaskRepository
from taskwise.models import TaskDraft, TaskPatch
from taskwise.views import filter_tasks, group_by_quadrant, sort_tasks

router = APIRouter()
logger = logging.getLogger(__name__)


def _serialize(tasks) -> list:
    return [t.model_dump(mode="json") for t in tasks]


@router.get("/tasks")
async def list_tasks(
    filter: Literal["all", "active"] = "all",
    sort: Literal["eisenhower", "deadline"] = "eisenhower",
    direction: Literal["asc", "desc"] = "asc",
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
) -> dict:
    tasks = await repository.list(user_id)
    visible = sort_tasks(filter_tasks(tasks, filter), sort, descending=direction == "desc")
    return {"tasks": _serialize(visible), "total": len(tasks)}


@router.get("/tasks/matrix")
async def task_matrix(
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
) -> dict:
    """Tasks grouped by Eisenhower quadrant (unset reads as NotUrgentNotImportant)."""
    groups = group_by_quadrant(await repository.list(user_id))
    return {q.value: _serialize(tasks) for q, tasks in groups.items()}


@router.post("/tasks", status_code=201)
async def create_task(
    payload: TaskDraft,
    categorize: bool = False,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
) -> dict:
    if categorize:
        task_id = await orchestrator.save_with_quadrant(user_id, payload)
    else:
        task_id = await repository.create(user_id, payload)
    return {"id": task_id}


@router.delete("/tasks")
async def delete_tasks(
    scope: Literal["completed", "all"],
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
) -> dict:
    if scope == "completed":
        deleted = await repository.delete_completed(user_id)
    else:
        deleted = await repository.delete_all(user_id)
    return {"deleted": deleted}


@router.websocket("/tasks/stream")
async def stream_tasks(websocket: WebSocket) -> None:
    """Push the caller's full task list on connect and after every change."""
    user_id = (websocket.headers.get("x-user-id") or "").strip() or state.settings.default_user_id
    repository = state.repository
    await websocket.accept()

    async def _pump() -> None:
        async for tasks in repository.stream(user_id):
            await websocket.send_json({"tasks": _serialize(tasks)})

    pump = asyncio.create_task(_pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
        logger.info(f"Task stream closed for user {user_id}")


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
) -> dict:
    task = await repository.get(user_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.model_dump(mode="json")


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskPatch,
    categorize: bool = False,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
) -> dict:
    if categorize:
        current = await repository.get(user_id, task_id)
        if current is None:
            raise HTTPException(status_code=404, detail="Task not found")
        merged = current.model_copy(update=payload.changes())
        draft = TaskDraft(title=merged.title, description=merged.description, deadline=merged.deadline)
        result = await orchestrator.categorize_eisenhower(draft)
        changes = payload.changes()
        changes["eisenhower_quadrant"] = result.quadrant
        payload = TaskPatch(**changes)
    await repository.update(user_id, task_id, payload)
    return {"status": "updated"}


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
) -> dict:
    await repository.delete(user_id, task_id)
    return {"status": "deleted"}
