from __future__ import annotations
import re
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, StrictFloat, StrictStr, field_validator

from taskwise.models import Quadrant

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ---- request payloads ----

class PrioritizationInputTask(BaseModel):
    id: str
    title: str
    description: str = ""
    deadline: datetime

class PrioritizationInput(BaseModel):
    tasks: List[PrioritizationInputTask] = Field(..., min_length=1)

class CategorizationInput(BaseModel):
    title: str
    description: str = ""
    deadline: datetime

class LabelInput(BaseModel):
    title: str
    description: str = ""

class TaskStatusInput(BaseModel):
    title: str
    completed: bool
    deadline: Optional[datetime] = None

class QuoteInput(BaseModel):
    tasks: List[TaskStatusInput] = Field(default_factory=list)

class AnalysisInput(BaseModel):
    tasks: List[TaskStatusInput] = Field(default_factory=list)
    today: str

class TimeSuggestionInput(BaseModel):
    task_title: str
    for_date: str
    existing_tasks: List[TaskStatusInput] = Field(default_factory=list)

class TaskDetailsInput(BaseModel):
    title: str


# ---- response schemas ----

class PrioritizedTask(BaseModel):
    # strict: a bool or a numeric string is a malformed reply, not a score
    task_id: StrictStr = Field(..., min_length=1)
    priority_score: StrictFloat = Field(..., allow_inf_nan=False)
    reason: StrictStr = Field(..., min_length=1)

class PrioritizationResult(BaseModel):
    tasks: List[PrioritizedTask]

class EisenhowerResult(BaseModel):
    quadrant: Quadrant
    reason: StrictStr = Field(..., min_length=1)

class CategoryResult(BaseModel):
    category: StrictStr

    @field_validator("category")
    @classmethod
    def category_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("category must not be blank")
        return v2

class QuoteResult(BaseModel):
    quote: StrictStr = Field(..., min_length=1)
    author: StrictStr = Field(..., min_length=1)

class AnalysisResult(BaseModel):
    analysis: StrictStr = Field(..., min_length=1)

class TimeSuggestionResult(BaseModel):
    suggestions: List[StrictStr] = Field(default_factory=list, max_length=4)

    @field_validator("suggestions")
    @classmethod
    def hhmm_slots(cls, v: List[str]) -> List[str]:
        for s in v:
            if not _HHMM.match(s):
                raise ValueError(f"not an HH:MM time slot: {s!r}")
        return v

class TaskDetailsResult(BaseModel):
    description: StrictStr
    subtasks: List[StrictStr] = Field(default_factory=list)
