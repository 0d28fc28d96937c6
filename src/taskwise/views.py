from __future__ import annotations

import math
from typing import Dict, Iterable, List, Literal

from taskwise.models import Quadrant, Task

FilterType = Literal["all", "active"]
SortOrder = Literal["eisenhower", "deadline"]

QUADRANT_ORDER: Dict[Quadrant, int] = {
    Quadrant.URGENT_IMPORTANT: 1,
    Quadrant.NOT_URGENT_IMPORTANT: 2,
    Quadrant.URGENT_NOT_IMPORTANT: 3,
    Quadrant.NOT_URGENT_NOT_IMPORTANT: 4,
}


def filter_tasks(tasks: Iterable[Task], filter: FilterType = "all") -> List[Task]:
    if filter == "active":
        return [t for t in tasks if not t.completed]
    return list(tasks)


def _deadline_key(task: Task) -> float:
    # tasks without a deadline go last
    return task.deadline.timestamp() if task.deadline else math.inf


def sort_tasks(
    tasks: Iterable[Task],
    order: SortOrder = "eisenhower",
    descending: bool = False,
) -> List[Task]:
    if order == "eisenhower":
        key = lambda t: (QUADRANT_ORDER[t.effective_quadrant], _deadline_key(t))
    else:
        key = _deadline_key
    return sorted(tasks, key=key, reverse=descending)


def group_by_quadrant(tasks: Iterable[Task]) -> Dict[Quadrant, List[Task]]:
    """Bucket tasks for the matrix view; every quadrant key is present."""
    groups: Dict[Quadrant, List[Task]] = {q: [] for q in QUADRANT_ORDER}
    for t in tasks:
        groups[t.effective_quadrant].append(t)
    return groups
