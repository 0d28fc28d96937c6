from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from llm.llm_client import LLMClient
from llm.prompts import ANALYZE_TASKS, GENERATE_TASK_DETAILS, MOTIVATIONAL_QUOTE, SUGGEST_TASK_TIME
from llm.retry import NO_RETRY, RetryPolicy, retry
from llm.schemas import (
    AnalysisInput,
    AnalysisResult,
    QuoteInput,
    QuoteResult,
    TaskDetailsInput,
    TaskDetailsResult,
    TaskStatusInput,
    TimeSuggestionInput,
    TimeSuggestionResult,
)
from taskwise.models import Subtask, Task

logger = logging.getLogger(__name__)

EMPTY_QUOTE = QuoteResult(quote="The secret of getting ahead is getting started.", author="Mark Twain")
EMPTY_ANALYSIS = "You have no tasks. Add one to get started!"


@dataclass
class TaskDetails:
    description: str
    subtasks: List[Subtask]


def _status(tasks: Iterable[Task]) -> List[TaskStatusInput]:
    return [TaskStatusInput(title=t.title, completed=t.completed, deadline=t.deadline) for t in tasks]


class TaskAssistant:
    """Dashboard and task-form helpers: quotes, analysis, scheduling and details."""

    def __init__(self, llm: LLMClient, retry_policy: RetryPolicy = NO_RETRY):
        self.llm = llm
        self.retry_policy = retry_policy

    async def _run(self, operation, payload, output_model):
        return await retry(
            self.retry_policy,
            lambda: self.llm.run(operation, payload, output_model),
            operation=operation,
        )

    async def motivational_quote(self, tasks: List[Task]) -> QuoteResult:
        if not tasks:
            return EMPTY_QUOTE
        return await self._run(MOTIVATIONAL_QUOTE, QuoteInput(tasks=_status(tasks)), QuoteResult)

    async def analyze(self, tasks: List[Task], today: Optional[date] = None) -> str:
        if not tasks:
            return EMPTY_ANALYSIS
        today = today or datetime.now(timezone.utc).date()
        payload = AnalysisInput(tasks=_status(tasks), today=today.strftime("%a %b %d %Y"))
        result = await self._run(ANALYZE_TASKS, payload, AnalysisResult)
        return result.analysis

    async def suggest_times(self, task_title: str, for_date: date, existing_tasks: List[Task]) -> List[str]:
        """Up to four "HH:MM" slots on ``for_date``, avoiding that day's deadlines."""
        same_day = [t for t in existing_tasks if t.deadline is not None and t.deadline.date() == for_date]
        payload = TimeSuggestionInput(
            task_title=task_title,
            for_date=for_date.isoformat(),
            existing_tasks=_status(same_day),
        )
        result = await self._run(SUGGEST_TASK_TIME, payload, TimeSuggestionResult)
        return result.suggestions

    async def generate_details(self, title: str) -> TaskDetails:
        result = await self._run(GENERATE_TASK_DETAILS, TaskDetailsInput(title=title), TaskDetailsResult)
        subtasks = [Subtask(text=s.strip()) for s in result.subtasks if s.strip()]
        logger.debug(f"Generated {len(subtasks)} subtask(s) for {title!r}")
        return TaskDetails(description=result.description, subtasks=subtasks)
