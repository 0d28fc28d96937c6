"""
Process-wide service instances.

Defaults are in-memory stores and the provider named by LLM_PROVIDER so
the app works without any infrastructure; startup swaps in PostgreSQL when
TASKWISE_STORE=postgres, and tests call ``configure`` with fakes.
"""

from typing import Callable, Optional

from llm.llm_client import LLMClient, build_provider
from llm.providers.base import LLMProvider
from llm.retry import RetryPolicy
from orchestration.task_assistant import TaskAssistant
from orchestration.task_orchestrator import TaskOrchestrator
from storage.countdown_repository import CountdownRepository
from storage.documents import DocumentStore
from storage.focus_repository import FocusRepository
from storage.memory_store import InMemoryDocumentStore
from storage.task_repository import TaskRepository
from taskwise.config import Settings

settings: Settings = Settings.from_env()

store: DocumentStore
repository: TaskRepository
countdowns: CountdownRepository
focus: FocusRepository
llm_client: LLMClient
orchestrator: TaskOrchestrator
assistant: TaskAssistant


def configure(
    store_: Optional[DocumentStore] = None,
    provider: Optional[LLMProvider] = None,
    retry_policy: Optional[RetryPolicy] = None,
    store_factory: Callable[[str], DocumentStore] = InMemoryDocumentStore,
) -> None:
    """``store_factory`` builds one store per collection; ``store_`` overrides the task store."""
    global store, repository, countdowns, focus, llm_client, orchestrator, assistant

    store = store_ or store_factory("tasks")
    repository = TaskRepository(store)
    countdowns = CountdownRepository(store_factory("countdowns"))
    focus = FocusRepository(store_factory("focus"))
    llm_client = LLMClient(
        provider=provider or build_provider(settings.llm_provider),
        model=settings.llm_model,
    )
    policy = retry_policy or RetryPolicy(
        max_attempts=settings.ai_max_attempts,
        backoff_seconds=settings.ai_backoff_seconds,
    )
    orchestrator = TaskOrchestrator(
        llm_client,
        repository,
        retry_policy=policy,
        default_deadline_days=settings.default_deadline_days,
    )
    assistant = TaskAssistant(llm_client)


configure()
