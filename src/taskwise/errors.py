from __future__ import annotations


class TaskwiseError(Exception):
    """Base class for errors surfaced to callers of the task core."""


class AIOperationError(TaskwiseError):
    """
    An AI operation failed: transport error, schema violation, or retries
    exhausted. Callers only need to know which operation failed.
    """

    def __init__(self, operation: str, message: str = "AI operation failed"):
        super().__init__(f"{message} ({operation})")
        self.operation = operation
        self.message = message


class PersistenceError(TaskwiseError):
    """A write, read or subscription against the task store failed."""


class RecordNotFoundError(PersistenceError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class TaskNotFoundError(RecordNotFoundError):
    def __init__(self, task_id: str):
        super().__init__("task", task_id)
        self.task_id = task_id


class FocusSessionStateError(TaskwiseError):
    """The requested timer transition does not apply to the current session."""
