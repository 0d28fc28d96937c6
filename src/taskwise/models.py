from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Quadrant(str, Enum):
    URGENT_IMPORTANT = "UrgentImportant"
    NOT_URGENT_IMPORTANT = "NotUrgentImportant"
    URGENT_NOT_IMPORTANT = "UrgentNotImportant"
    NOT_URGENT_NOT_IMPORTANT = "NotUrgentNotImportant"


# Read-time default only; never written to a task.
DEFAULT_QUADRANT = Quadrant.NOT_URGENT_NOT_IMPORTANT


def new_subtask_id() -> str:
    return uuid.uuid4().hex


def explicit_fields(model: BaseModel) -> dict:
    """
    Fields the caller actually set, each dumped in full. Nested models keep
    their defaulted values (a new subtask keeps its generated id).
    """
    return {k: v for k, v in model.model_dump().items() if k in model.model_fields_set}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _strip_title(v: str) -> str:
    v2 = v.strip()
    if not v2:
        raise ValueError("title must not be blank")
    return v2


def _unique_subtask_ids(subtasks: List["Subtask"]) -> List["Subtask"]:
    seen = set()
    for s in subtasks:
        if s.id in seen:
            raise ValueError(f"duplicate subtask id: {s.id}")
        seen.add(s.id)
    return subtasks


class Subtask(BaseModel):
    id: str = Field(default_factory=new_subtask_id, min_length=1)
    text: str
    completed: bool = False


class Task(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = ""
    deadline: Optional[datetime] = None
    completed: bool = False
    subtasks: List[Subtask] = Field(default_factory=list)

    # written by the orchestrator
    priority_score: Optional[float] = Field(default=None, allow_inf_nan=False)
    reason: Optional[str] = None
    category: Optional[str] = None
    eisenhower_quadrant: Optional[Quadrant] = None

    created_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("deadline", "created_at")
    @classmethod
    def utc_datetimes(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("subtasks")
    @classmethod
    def subtask_ids_unique(cls, v: List[Subtask]) -> List[Subtask]:
        return _unique_subtask_ids(v)

    @model_validator(mode="after")
    def priority_pair(self) -> "Task":
        if (self.priority_score is None) != (self.reason is None):
            raise ValueError("priority_score and reason must be set together")
        return self

    @property
    def effective_quadrant(self) -> Quadrant:
        return self.eisenhower_quadrant or DEFAULT_QUADRANT


class TaskDraft(BaseModel):
    """Fields a user supplies when creating a task."""

    title: str = Field(..., min_length=1)
    description: str = ""
    deadline: Optional[datetime] = None
    subtasks: List[Subtask] = Field(default_factory=list)
    category: Optional[str] = None
    eisenhower_quadrant: Optional[Quadrant] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("deadline")
    @classmethod
    def utc_deadline(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("subtasks")
    @classmethod
    def subtask_ids_unique(cls, v: List[Subtask]) -> List[Subtask]:
        return _unique_subtask_ids(v)


class TaskPatch(BaseModel):
    """
    Merge-patch for a task. Only fields that were explicitly set are
    written (see ``changes()``); an explicit ``deadline=None`` clears it.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    completed: Optional[bool] = None
    subtasks: Optional[List[Subtask]] = None
    priority_score: Optional[float] = Field(default=None, allow_inf_nan=False)
    reason: Optional[str] = None
    category: Optional[str] = None
    eisenhower_quadrant: Optional[Quadrant] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_title(v)

    @field_validator("description")
    @classmethod
    def description_cleared_to_empty(cls, v: Optional[str]) -> str:
        return v or ""

    @field_validator("deadline")
    @classmethod
    def utc_deadline(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("subtasks")
    @classmethod
    def subtask_ids_unique(cls, v: Optional[List[Subtask]]) -> Optional[List[Subtask]]:
        return None if v is None else _unique_subtask_ids(v)

    @model_validator(mode="after")
    def priority_pair(self) -> "TaskPatch":
        fields = self.model_fields_set
        if ("priority_score" in fields) != ("reason" in fields):
            raise ValueError("priority_score and reason must be patched together")
        if (self.priority_score is None) != (self.reason is None):
            raise ValueError("priority_score and reason must be set together")
        if "title" in fields and self.title is None:
            raise ValueError("title cannot be cleared")
        if "completed" in fields and self.completed is None:
            raise ValueError("completed cannot be cleared")
        return self

    def changes(self) -> dict:
        return explicit_fields(self)


# ---- countdowns ----

_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class CountdownDraft(BaseModel):
    title: str = Field(..., min_length=1)
    date: datetime
    color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("date")
    @classmethod
    def utc_date(cls, v: datetime) -> datetime:
        return as_utc(v)


class Countdown(CountdownDraft):
    id: str = Field(..., min_length=1)

    def days_remaining(self, today: date) -> int:
        """Whole calendar days from ``today`` to the target date (negative once passed)."""
        return (self.date.date() - today).days


# ---- focus timer ----

SessionType = Literal["focus", "break"]


class FocusSession(BaseModel):
    """
    The user's single synced focus timer. A running session has an
    ``end_time``; a paused one keeps the seconds left in ``remaining_on_pause``.
    A reset session is just ``is_active=False`` with nothing else set.
    """

    is_active: bool = False
    session_type: SessionType = "focus"
    duration: Optional[int] = Field(default=None, gt=0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    paused_time: Optional[datetime] = None
    remaining_on_pause: Optional[int] = Field(default=None, ge=0)

    @field_validator("start_time", "end_time", "paused_time")
    @classmethod
    def utc_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def is_paused(self) -> bool:
        return not self.is_active and self.remaining_on_pause is not None

    def remaining_seconds(self, now: datetime) -> Optional[int]:
        if self.is_active and self.end_time is not None:
            return max(0, round((self.end_time - now).total_seconds()))
        return self.remaining_on_pause
