import asyncio
from datetime import datetime, timezone

import pytest

from storage.documents import StoreError
from storage.memory_store import InMemoryDocumentStore
from storage.task_repository import TaskRepository
from taskwise.errors import PersistenceError, TaskNotFoundError
from taskwise.models import Quadrant, Subtask, TaskDraft, TaskPatch

USER = "u1"


@pytest.mark.asyncio
async def test_create_sets_defaults(repository):
    task_id = await repository.create(USER, {"title": "Buy milk"})
    task = await repository.get(USER, task_id)
    assert task.id == task_id
    assert task.completed is False
    assert task.deadline is None
    assert task.subtasks == []
    assert task.created_at is not None


@pytest.mark.asyncio
async def test_create_ignores_completed_and_priority(repository):
    draft = TaskDraft(title="Ship", eisenhower_quadrant=Quadrant.URGENT_IMPORTANT)
    task_id = await repository.create(USER, draft)
    task = await repository.get(USER, task_id)
    assert task.completed is False
    assert task.priority_score is None
    assert task.eisenhower_quadrant == Quadrant.URGENT_IMPORTANT


@pytest.mark.asyncio
async def test_deadline_round_trip(repository):
    deadline = datetime(2026, 5, 1, 17, 30, tzinfo=timezone.utc)
    task_id = await repository.create(USER, TaskDraft(title="Report", deadline=deadline))
    assert (await repository.get(USER, task_id)).deadline == deadline

    await repository.update(USER, task_id, TaskPatch(deadline=None))
    assert (await repository.get(USER, task_id)).deadline is None


@pytest.mark.asyncio
async def test_update_is_merge_patch(repository):
    task_id = await repository.create(
        USER,
        TaskDraft(title="Report", description="Q3 numbers", category="Work"),
    )
    await repository.update(USER, task_id, TaskPatch(priority_score=7.5, reason="Due soon"))

    task = await repository.get(USER, task_id)
    assert task.priority_score == 7.5
    assert task.reason == "Due soon"
    assert task.title == "Report"
    assert task.description == "Q3 numbers"
    assert task.category == "Work"


@pytest.mark.asyncio
async def test_empty_patch_is_noop(repository):
    task_id = await repository.create(USER, {"title": "X"})
    await repository.update(USER, task_id, TaskPatch())
    await repository.update(USER, "missing", {})


@pytest.mark.asyncio
async def test_update_missing_task(repository):
    with pytest.raises(TaskNotFoundError) as exc:
        await repository.update(USER, "missing", TaskPatch(completed=True))
    assert exc.value.task_id == "missing"


@pytest.mark.asyncio
async def test_subtask_ids_survive_edits(repository):
    sub = Subtask(text="Outline")
    task_id = await repository.create(USER, TaskDraft(title="Essay", subtasks=[sub]))
    done = sub.model_copy(update={"completed": True})
    await repository.update(USER, task_id, TaskPatch(subtasks=[done, Subtask(text="Draft")]))

    task = await repository.get(USER, task_id)
    assert task.subtasks[0].id == sub.id
    assert task.subtasks[0].completed is True
    assert len(task.subtasks) == 2


@pytest.mark.asyncio
async def test_patched_subtasks_keep_generated_ids(repository, store):
    task_id = await repository.create(USER, {"title": "Essay"})
    added = Subtask(text="Outline")
    await repository.update(USER, task_id, TaskPatch(subtasks=[added]))

    stored = (await store.get(USER, task_id)).data["subtasks"]
    assert stored == [{"id": added.id, "text": "Outline", "completed": False}]

    first = await repository.get(USER, task_id)
    second = await repository.get(USER, task_id)
    assert first.subtasks[0].id == second.subtasks[0].id == added.id


@pytest.mark.asyncio
async def test_patch_from_json_keeps_subtask_ids(repository):
    task_id = await repository.create(USER, {"title": "Essay"})
    await repository.update(USER, task_id, {"subtasks": [{"text": "Outline"}]})

    first = await repository.get(USER, task_id)
    second = await repository.get(USER, task_id)
    assert first.subtasks[0].id == second.subtasks[0].id
    assert first.subtasks[0].completed is False


@pytest.mark.asyncio
async def test_delete_twice(repository):
    task_id = await repository.create(USER, {"title": "X"})
    await repository.delete(USER, task_id)
    await repository.delete(USER, task_id)
    assert await repository.get(USER, task_id) is None


@pytest.mark.asyncio
async def test_list_newest_first_and_scoped_by_user(repository):
    first = await repository.create(USER, {"title": "first"})
    second = await repository.create(USER, {"title": "second"})
    await repository.create("someone-else", {"title": "theirs"})
    assert [t.id for t in await repository.list(USER)] == [second, first]


@pytest.mark.asyncio
async def test_bulk_deletes(repository):
    keep = await repository.create(USER, {"title": "keep"})
    done = await repository.create(USER, {"title": "done"})
    await repository.update(USER, done, TaskPatch(completed=True))

    assert await repository.delete_completed(USER) == 1
    assert [t.id for t in await repository.list(USER)] == [keep]
    assert await repository.delete_all(USER) == 1
    assert await repository.list(USER) == []
    assert await repository.delete_all(USER) == 0


@pytest.mark.asyncio
async def test_subscribe_delivers_empty_list_immediately(repository):
    seen = []
    subscription = await repository.subscribe(USER, seen.append)
    assert seen == [[]]
    await subscription.close()


@pytest.mark.asyncio
async def test_subscribe_sees_every_change(repository):
    seen = []
    async with await repository.subscribe(USER, seen.append):
        task_id = await repository.create(USER, {"title": "X"})
        await repository.update(USER, task_id, TaskPatch(completed=True))
        await repository.delete(USER, task_id)

    await repository.create(USER, {"title": "after close"})
    assert len(seen) == 4
    assert seen[1][0].completed is False
    assert seen[2][0].completed is True
    assert seen[3] == []


@pytest.mark.asyncio
async def test_stream_yields_snapshots(repository):
    stream = repository.stream(USER)
    assert await stream.__anext__() == []

    task_id = await repository.create(USER, {"title": "X"})
    snapshot = await asyncio.wait_for(stream.__anext__(), timeout=1)
    assert [t.id for t in snapshot] == [task_id]
    await stream.aclose()


class _BrokenStore(InMemoryDocumentStore):
    async def list(self, user_id):
        raise StoreError("connection reset")

    async def add(self, user_id, data):
        raise StoreError("connection reset")


@pytest.mark.asyncio
async def test_store_errors_become_persistence_errors():
    repository = TaskRepository(_BrokenStore())
    with pytest.raises(PersistenceError):
        await repository.list(USER)
    with pytest.raises(PersistenceError):
        await repository.create(USER, {"title": "X"})


@pytest.mark.asyncio
async def test_failed_first_snapshot_leaves_no_watch(store):
    calls = []

    def flaky(docs):
        calls.append(docs)
        if len(calls) == 1:
            raise RuntimeError("render failed")

    with pytest.raises(RuntimeError):
        await store.watch(USER, flaky)

    await store.add(USER, {"title": "X"})
    assert len(calls) == 1
    assert store._watches.get(USER, []) == []
