"""
Prioritization & categorization orchestrator.

Coordinates gateway calls for a user's tasks, validates the results against
the request, and writes them back as narrow merge-patch updates.

Priority scores are only meaningful relative to other scores from the same
``prioritize`` call; the model may rescale between calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Union

from llm.llm_client import LLMClient
from llm.prompts import CATEGORIZE_EISENHOWER, CATEGORIZE_LABEL, PRIORITIZE_TASKS
from llm.retry import RetryPolicy, retry
from llm.schemas import (
    CategorizationInput,
    CategoryResult,
    EisenhowerResult,
    LabelInput,
    PrioritizationInput,
    PrioritizationInputTask,
    PrioritizationResult,
    PrioritizedTask,
)
from storage.task_repository import TaskRepository
from taskwise.errors import AIOperationError
from taskwise.models import Task, TaskDraft, TaskPatch, explicit_fields

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_DAYS = 365


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PrioritizationReport:
    results: List[PrioritizedTask] = field(default_factory=list)
    nothing_to_do: bool = False

    def ranked(self) -> List[PrioritizedTask]:
        """Results ordered most urgent first (only valid within this batch)."""
        return sorted(self.results, key=lambda r: r.priority_score, reverse=True)


class TaskOrchestrator:
    def __init__(
        self,
        llm: LLMClient,
        repository: TaskRepository,
        retry_policy: Optional[RetryPolicy] = None,
        categorize_retry_policy: Optional[RetryPolicy] = None,
        default_deadline_days: int = DEFAULT_DEADLINE_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.llm = llm
        self.repository = repository
        self.retry_policy = retry_policy or RetryPolicy()
        self.categorize_retry_policy = categorize_retry_policy or self.retry_policy
        self.default_deadline_days = default_deadline_days
        self.clock = clock

    def deadline_for_call(self, deadline: Optional[datetime]) -> datetime:
        """The task's deadline, or a synthetic one far enough out to read as not urgent."""
        if deadline is not None:
            return deadline
        return self.clock() + timedelta(days=self.default_deadline_days)

    # ---- prioritization ----

    async def prioritize(self, user_id: str, tasks: Sequence[Task]) -> PrioritizationReport:
        """
        Score a batch of one user's incomplete tasks in a single gateway call
        and persist ``priority_score`` and ``reason`` onto each task.

        Raises AIOperationError once retries are exhausted (nothing is
        written) and PersistenceError if any write fails.
        """
        if not tasks:
            logger.info(f"prioritize: nothing to do for user {user_id}")
            return PrioritizationReport(nothing_to_do=True)

        ids = [t.id for t in tasks]
        if len(set(ids)) != len(ids):
            raise ValueError("prioritize batch contains duplicate task ids")

        payload = PrioritizationInput(
            tasks=[
                PrioritizationInputTask(
                    id=t.id,
                    title=t.title,
                    description=t.description,
                    deadline=self.deadline_for_call(t.deadline),
                )
                for t in tasks
            ]
        )

        async def attempt() -> List[PrioritizedTask]:
            result = await self.llm.run(PRIORITIZE_TASKS, payload, PrioritizationResult)
            return self._match_batch(ids, result)

        results = await retry(self.retry_policy, attempt, operation=PRIORITIZE_TASKS)
        logger.info(f"prioritize: scored {len(results)} task(s) for user {user_id}")

        await self._write_all(
            user_id,
            [
                (r.task_id, TaskPatch(priority_score=r.priority_score, reason=r.reason))
                for r in results
            ],
        )
        return PrioritizationReport(results=results)

    @staticmethod
    def _match_batch(ids: List[str], result: PrioritizationResult) -> List[PrioritizedTask]:
        """Exactly one result per requested id, returned in request order."""
        expected = set(ids)
        by_id = {}
        for r in result.tasks:
            if r.task_id not in expected:
                raise AIOperationError(PRIORITIZE_TASKS, f"AI operation failed: unknown task id {r.task_id!r}")
            if r.task_id in by_id:
                raise AIOperationError(PRIORITIZE_TASKS, f"AI operation failed: duplicate task id {r.task_id!r}")
            by_id[r.task_id] = r
        missing = expected - by_id.keys()
        if missing:
            raise AIOperationError(
                PRIORITIZE_TASKS,
                f"AI operation failed: no result for {len(missing)} of {len(ids)} task(s)",
            )
        return [by_id[i] for i in ids]

    async def _write_all(self, user_id: str, patches: List[tuple]) -> None:
        # one independent write per task; all are issued before any failure is raised
        results = await asyncio.gather(
            *(self.repository.update(user_id, task_id, patch) for task_id, patch in patches),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {len(patches)} write(s) failed for user {user_id}")
            raise failures[0]

    # ---- categorization ----

    async def categorize_eisenhower(self, task: Union[Task, TaskDraft]) -> EisenhowerResult:
        payload = CategorizationInput(
            title=task.title,
            description=task.description or "",
            deadline=self.deadline_for_call(task.deadline),
        )
        return await retry(
            self.categorize_retry_policy,
            lambda: self.llm.run(CATEGORIZE_EISENHOWER, payload, EisenhowerResult),
            operation=CATEGORIZE_EISENHOWER,
        )

    async def categorize_label(self, task: Union[Task, TaskDraft]) -> str:
        payload = LabelInput(title=task.title, description=task.description or "")
        result = await retry(
            self.categorize_retry_policy,
            lambda: self.llm.run(CATEGORIZE_LABEL, payload, CategoryResult),
            operation=CATEGORIZE_LABEL,
        )
        return result.category

    async def apply_eisenhower(self, user_id: str, task: Task) -> EisenhowerResult:
        result = await self.categorize_eisenhower(task)
        await self.repository.update(user_id, task.id, TaskPatch(eisenhower_quadrant=result.quadrant))
        logger.info(f"Task {task.id} placed in {result.quadrant.value}")
        return result

    async def apply_label(self, user_id: str, task: Task) -> str:
        category = await self.categorize_label(task)
        await self.repository.update(user_id, task.id, TaskPatch(category=category))
        return category

    async def save_with_quadrant(
        self,
        user_id: str,
        draft: TaskDraft,
        task_id: Optional[str] = None,
    ) -> str:
        """
        Categorize a task the user is saving, then create it (or update
        ``task_id``) with its quadrant. An AI failure writes nothing.
        """
        result = await self.categorize_eisenhower(draft)
        if task_id is None:
            return await self.repository.create(
                user_id, draft.model_copy(update={"eisenhower_quadrant": result.quadrant})
            )
        fields = explicit_fields(draft)
        fields["eisenhower_quadrant"] = result.quadrant
        await self.repository.update(user_id, task_id, TaskPatch(**fields))
        return task_id
