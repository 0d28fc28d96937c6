from typing import Optional

from fastapi import Header

from api import state
from orchestration.task_assistant import TaskAssistant
from orchestration.task_orchestrator import TaskOrchestrator
from storage.countdown_repository import CountdownRepository
from storage.focus_repository import FocusRepository
from storage.task_repository import TaskRepository


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    # authentication happens upstream; the caller's id arrives as a header
    return (x_user_id or "").strip() or state.settings.default_user_id


def get_repository() -> TaskRepository:
    return state.repository


def get_orchestrator() -> TaskOrchestrator:
    return state.orchestrator


def get_assistant() -> TaskAssistant:
    return state.assistant


def get_countdowns() -> CountdownRepository:
    return state.countdowns


def get_focus() -> FocusRepository:
    return state.focus
