from datetime import datetime, timezone

from taskwise.models import Quadrant, Task
from taskwise.views import filter_tasks, group_by_quadrant, sort_tasks


def _task(id, quadrant=None, deadline=None, completed=False):
    return Task(
        id=id,
        title=id,
        eisenhower_quadrant=quadrant,
        deadline=deadline,
        completed=completed,
    )


def test_filter_active():
    tasks = [_task("a"), _task("b", completed=True)]
    assert [t.id for t in filter_tasks(tasks, "active")] == ["a"]
    assert len(filter_tasks(tasks, "all")) == 2


def test_eisenhower_order_then_deadline():
    early = datetime(2026, 3, 1, tzinfo=timezone.utc)
    late = datetime(2026, 4, 1, tzinfo=timezone.utc)
    tasks = [
        _task("eliminate", Quadrant.NOT_URGENT_NOT_IMPORTANT),
        _task("unset"),
        _task("do-late", Quadrant.URGENT_IMPORTANT, late),
        _task("delegate", Quadrant.URGENT_NOT_IMPORTANT),
        _task("do-early", Quadrant.URGENT_IMPORTANT, early),
        _task("do-none", Quadrant.URGENT_IMPORTANT),
        _task("schedule", Quadrant.NOT_URGENT_IMPORTANT),
    ]
    ordered = [t.id for t in sort_tasks(tasks)]
    assert ordered[:5] == ["do-early", "do-late", "do-none", "schedule", "delegate"]
    assert set(ordered[5:]) == {"eliminate", "unset"}


def test_deadline_sort_puts_missing_last():
    tasks = [
        _task("none"),
        _task("b", deadline=datetime(2026, 2, 2, tzinfo=timezone.utc)),
        _task("a", deadline=datetime(2026, 2, 1, tzinfo=timezone.utc)),
    ]
    assert [t.id for t in sort_tasks(tasks, "deadline")] == ["a", "b", "none"]
    assert [t.id for t in sort_tasks(tasks, "deadline", descending=True)] == ["none", "b", "a"]


def test_group_by_quadrant_has_every_key():
    groups = group_by_quadrant([_task("x"), _task("y", Quadrant.URGENT_IMPORTANT)])
    assert set(groups) == set(Quadrant)
    assert [t.id for t in groups[Quadrant.NOT_URGENT_NOT_IMPORTANT]] == ["x"]
    assert [t.id for t in groups[Quadrant.URGENT_IMPORTANT]] == ["y"]
    assert groups[Quadrant.NOT_URGENT_IMPORTANT] == []
