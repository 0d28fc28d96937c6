from datetime import datetime, timedelta, timezone

import pytest

from llm.llm_client import LLMClient
from llm.prompts import CATEGORIZE_EISENHOWER, CATEGORIZE_LABEL, PRIORITIZE_TASKS
from llm.providers.mock_provider import MockProvider
from llm.schemas import (
    CategorizationInput,
    CategoryResult,
    EisenhowerResult,
    LabelInput,
    PrioritizationInput,
    PrioritizationInputTask,
    PrioritizationResult,
)
from taskwise.models import Quadrant


@pytest.mark.asyncio
async def test_mock_prioritizes_sooner_deadlines_higher():
    now = datetime.now(timezone.utc)
    payload = PrioritizationInput(
        tasks=[
            PrioritizationInputTask(id="later", title="Later", deadline=now + timedelta(days=30)),
            PrioritizationInputTask(id="soon", title="Soon", deadline=now + timedelta(days=1)),
        ]
    )
    result = await LLMClient(provider=MockProvider()).run(PRIORITIZE_TASKS, payload, PrioritizationResult)
    scores = {t.task_id: t.priority_score for t in result.tasks}
    assert scores["soon"] > scores["later"]


@pytest.mark.asyncio
async def test_mock_eisenhower_and_label():
    client = LLMClient(provider=MockProvider())
    soon = datetime.now(timezone.utc) + timedelta(hours=5)
    result = await client.run(
        CATEGORIZE_EISENHOWER,
        CategorizationInput(title="Pay tax bill", deadline=soon),
        EisenhowerResult,
    )
    assert result.quadrant == Quadrant.URGENT_IMPORTANT

    label = await client.run(CATEGORIZE_LABEL, LabelInput(title="Buy groceries"), CategoryResult)
    assert label.category == "Shopping"
