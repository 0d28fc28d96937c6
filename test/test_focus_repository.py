import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from storage.focus_repository import BREAK_SECONDS, FocusRepository, session_id
from storage.memory_store import InMemoryDocumentStore
from taskwise.errors import FocusSessionStateError

USER = "u1"
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def tick(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def focus_store():
    return InMemoryDocumentStore("focus")


@pytest.fixture
def focus(focus_store, clock):
    return FocusRepository(focus_store, clock=clock)


@pytest.mark.asyncio
async def test_no_session_until_started(focus):
    assert await focus.get(USER) is None


@pytest.mark.asyncio
async def test_start_sets_end_time(focus):
    session = await focus.start(USER, 1500)
    assert session.is_active is True
    assert session.session_type == "focus"
    assert session.end_time == T0 + timedelta(seconds=1500)

    stored = await focus.get(USER)
    assert stored == session
    assert stored.remaining_seconds(T0 + timedelta(seconds=60)) == 1440


@pytest.mark.asyncio
async def test_one_session_document_per_user(focus, focus_store):
    await focus.start(USER, 1500)
    await focus.start(USER, 600, "break")
    docs = await focus_store.list(USER)
    assert [d.id for d in docs] == [session_id(USER)]
    assert (await focus.get(USER)).session_type == "break"


@pytest.mark.asyncio
async def test_pause_computes_remaining(focus, clock):
    await focus.start(USER, 1500)
    clock.tick(100)
    paused = await focus.pause(USER)
    assert paused.is_active is False
    assert paused.remaining_on_pause == 1400
    assert paused.paused_time == T0 + timedelta(seconds=100)
    # the original shape of the session is kept
    assert paused.duration == 1500
    assert paused.start_time == T0


@pytest.mark.asyncio
async def test_pause_with_client_remaining(focus):
    await focus.start(USER, 1500)
    assert (await focus.pause(USER, 1234)).remaining_on_pause == 1234


@pytest.mark.asyncio
async def test_resume_continues_from_pause(focus, clock):
    await focus.start(USER, 1500)
    clock.tick(100)
    await focus.pause(USER)
    clock.tick(3600)
    resumed = await focus.resume(USER)
    assert resumed.is_active is True
    assert resumed.end_time == clock.now + timedelta(seconds=1400)
    assert resumed.remaining_on_pause is None
    assert resumed.paused_time is None


@pytest.mark.asyncio
async def test_invalid_transitions(focus):
    with pytest.raises(FocusSessionStateError):
        await focus.pause(USER)
    with pytest.raises(FocusSessionStateError):
        await focus.resume(USER)
    await focus.start(USER, 60)
    with pytest.raises(FocusSessionStateError):
        await focus.resume(USER)
    with pytest.raises(ValueError):
        await focus.start(USER, 0)


@pytest.mark.asyncio
async def test_reset_replaces_the_whole_session(focus, focus_store):
    await focus.start(USER, 1500)
    await focus.pause(USER)
    reset = await focus.reset(USER)
    assert reset.is_active is False
    assert (await focus_store.get(USER, session_id(USER))).data == {"is_active": False, "session_type": "focus"}
    assert (await focus.get(USER)).remaining_seconds(T0) is None


@pytest.mark.asyncio
async def test_advance_alternates_focus_and_break(focus):
    await focus.start(USER, 1200)
    on_break = await focus.advance(USER, focus_seconds=1200)
    assert on_break.session_type == "break"
    assert on_break.duration == BREAK_SECONDS

    back = await focus.advance(USER, focus_seconds=1200)
    assert back.session_type == "focus"
    assert back.duration == 1200

    await focus.reset(USER)
    assert (await focus.advance(USER)).session_type == "focus"


@pytest.mark.asyncio
async def test_subscribe_delivers_none_then_updates(focus):
    seen = []
    async with await focus.subscribe(USER, seen.append):
        await focus.start(USER, 60)
        await focus.reset(USER)
    await focus.start(USER, 60)

    assert seen[0] is None
    assert seen[1].is_active is True
    assert seen[2].is_active is False
    assert len(seen) == 3


@pytest.mark.asyncio
async def test_stream_is_scoped_to_user(focus):
    stream = focus.stream(USER)
    assert await stream.__anext__() is None

    await focus.start("someone-else", 60)
    await focus.start(USER, 90)
    session = await asyncio.wait_for(stream.__anext__(), timeout=1)
    assert session.duration == 90
    await stream.aclose()
