import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_assistant, get_orchestrator, get_repository, get_user_id
from orchestration.task_assistant import TaskAssistant
from orchestration.task_orchestrator import TaskOrchestrator
from storage.task_repository import TaskRepository
from taskwise.errors import TaskNotFoundError
from taskwise.models import Task

router = APIRouter(prefix="/ai")
logger = logging.getLogger(__name__)


class PrioritizeIn(BaseModel):
    task_ids: Optional[List[str]] = None


class SuggestTimeIn(BaseModel):
    task_title: str = Field(min_length=1)
    for_date: date = Field(alias="date")


class TaskDetailsIn(BaseModel):
    title: str = Field(min_length=1)


async def _require(repository: TaskRepository, user_id: str, task_id: str) -> Task:
    task = await repository.get(user_id, task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


@router.post("/prioritize")
async def prioritize(
    payload: Optional[PrioritizeIn] = None,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
) -> dict:
    tasks = await repository.list(user_id)
    if payload is not None and payload.task_ids is not None:
        by_id = {t.id: t for t in tasks}
        missing = [i for i in payload.task_ids if i not in by_id]
        if missing:
            raise TaskNotFoundError(missing[0])
        batch = [by_id[i] for i in dict.fromkeys(payload.task_ids)]
    else:
        batch = [t for t in tasks if not t.completed]

    logger.info(f"Prioritizing {len(batch)} task(s) for user {user_id}")
    report = await orchestrator.prioritize(user_id, batch)

    return {
        "nothing_to_do": report.nothing_to_do,
        "tasks": [r.model_dump() for r in report.ranked()],
    }


@router.post("/tasks/{task_id}/eisenhower")
async def categorize_eisenhower(
    task_id: str,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
) -> dict:
    task = await _require(repository, user_id, task_id)
    result = await orchestrator.apply_eisenhower(user_id, task)
    return {"id": task_id, "quadrant": result.quadrant.value, "reason": result.reason}


@router.post("/tasks/{task_id}/category")
async def categorize_label(
    task_id: str,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    orchestrator: TaskOrchestrator = Depends(get_orchestrator),
) -> dict:
    task = await _require(repository, user_id, task_id)
    category = await orchestrator.apply_label(user_id, task)
    return {"id": task_id, "category": category}


@router.get("/quote")
async def motivational_quote(
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    assistant: TaskAssistant = Depends(get_assistant),
) -> dict:
    quote = await assistant.motivational_quote(await repository.list(user_id))
    return quote.model_dump()


@router.get("/analysis")
async def analysis(
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    assistant: TaskAssistant = Depends(get_assistant),
) -> dict:
    text = await assistant.analyze(await repository.list(user_id))
    return {"analysis": text}


@router.post("/suggest-time")
async def suggest_time(
    payload: SuggestTimeIn,
    user_id: str = Depends(get_user_id),
    repository: TaskRepository = Depends(get_repository),
    assistant: TaskAssistant = Depends(get_assistant),
) -> dict:
    existing = await repository.list(user_id)
    suggestions = await assistant.suggest_times(payload.task_title, payload.for_date, existing)
    return {"suggestions": suggestions}


@router.post("/task-details")
async def task_details(
    payload: TaskDetailsIn,
    assistant: TaskAssistant = Depends(get_assistant),
) -> dict:
    details = await assistant.generate_details(payload.title)
    return {
        "description": details.description,
        "subtasks": [s.model_dump() for s in details.subtasks],
    }
