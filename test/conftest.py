import httpx
import pytest

from llm.retry import RetryPolicy
from storage.memory_store import InMemoryDocumentStore
from storage.task_repository import TaskRepository


class FakeProvider:
    """Replays a script of responses; an exception in the script is raised instead."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    async def generate(self, *, system: str, user: str, model=None) -> str:
        self.calls.append({"system": system, "user": user, "model": model})
        if not self._responses:
            raise httpx.ConnectError("no scripted response left")
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_provider_factory():
    def _make(*responses):
        return FakeProvider(*responses)
    return _make


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep):
    return RetryPolicy(max_attempts=3, backoff_seconds=1.0, sleep=recording_sleep)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def repository(store):
    return TaskRepository(store)
