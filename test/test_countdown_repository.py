from datetime import date, datetime, timezone

import pytest

from storage.countdown_repository import CountdownRepository
from storage.memory_store import InMemoryDocumentStore
from taskwise.models import Countdown, CountdownDraft

USER = "u1"


@pytest.fixture
def countdowns():
    return CountdownRepository(InMemoryDocumentStore("countdowns"))


@pytest.mark.asyncio
async def test_add_and_list_soonest_first(countdowns):
    trip = await countdowns.add(USER, CountdownDraft(title="Trip", date=datetime(2026, 8, 1, tzinfo=timezone.utc)))
    exam = await countdowns.add(USER, {"title": "Exam", "date": "2026-06-15T09:00:00Z", "color": "#3b82f6"})

    listed = await countdowns.list(USER)
    assert [c.id for c in listed] == [exam.id, trip.id]
    assert listed[0].color == "#3b82f6"
    assert listed[1].color is None
    assert listed[0].date == datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_countdowns_scoped_by_user(countdowns):
    await countdowns.add(USER, {"title": "Exam", "date": "2026-06-15T00:00:00Z"})
    assert await countdowns.list("someone-else") == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(countdowns):
    exam = await countdowns.add(USER, {"title": "Exam", "date": "2026-06-15T00:00:00Z"})
    await countdowns.delete(USER, exam.id)
    await countdowns.delete(USER, exam.id)
    assert await countdowns.get(USER, exam.id) is None
    assert await countdowns.list(USER) == []


@pytest.mark.asyncio
async def test_invalid_countdowns_rejected(countdowns):
    with pytest.raises(ValueError):
        await countdowns.add(USER, {"title": "  ", "date": "2026-06-15T00:00:00Z"})
    with pytest.raises(ValueError):
        await countdowns.add(USER, {"title": "Exam", "date": "2026-06-15T00:00:00Z", "color": "blue"})


def test_days_remaining_counts_calendar_days():
    countdown = Countdown(id="c1", title="Exam", date=datetime(2026, 6, 15, 23, 0, tzinfo=timezone.utc))
    assert countdown.days_remaining(date(2026, 6, 14)) == 1
    assert countdown.days_remaining(date(2026, 6, 15)) == 0
    assert countdown.days_remaining(date(2026, 6, 20)) == -5
