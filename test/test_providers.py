import httpx
import pytest

from llm.llm_client import LLMClient
from llm.providers.ollama_provider import OllamaProvider
from llm.providers.openai_provider import OpenAIProvider
from orchestration.task_orchestrator import TaskOrchestrator
from taskwise.errors import AIOperationError


def test_openai_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        OpenAIProvider()


@pytest.mark.asyncio
async def test_openai_requests_json_mode(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    provider = OpenAIProvider()
    sent = {}

    async def fake_post(path, payload):
        sent["path"] = path
        sent["payload"] = payload
        return {"choices": [{"message": {"content": '{"category": "Work"}'}}]}

    monkeypatch.setattr(provider, "_post", fake_post)
    out = await provider.generate(system="sys", user="usr", model="gpt-test")

    assert out == '{"category": "Work"}'
    assert sent["path"] == "/chat/completions"
    assert sent["payload"]["model"] == "gpt-test"
    assert sent["payload"]["response_format"] == {"type": "json_object"}
    assert provider._headers()["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_ollama_uses_default_model(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama-test")
    provider = OllamaProvider()
    sent = {}

    async def fake_post(path, payload):
        sent.update(payload)
        return {"message": {"content": "{}"}}

    monkeypatch.setattr(provider, "_post", fake_post)
    assert await provider.generate(system="sys", user="usr") == "{}"
    assert sent["model"] == "llama-test"
    assert sent["format"] == "json"
    assert sent["messages"][0] == {"role": "system", "content": "sys"}


def _html_gateway(seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, text="<html>502 upstream</html>")
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_non_json_body_is_a_transport_error(monkeypatch):
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama.test")
    provider = OllamaProvider(transport=_html_gateway([]))
    with pytest.raises(httpx.DecodingError):
        await provider.generate(system="sys", user="usr")


@pytest.mark.asyncio
async def test_non_json_body_is_retried_as_ai_failure(monkeypatch, repository, retry_policy, recording_sleep):
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama.test")
    seen = []
    provider = OllamaProvider(transport=_html_gateway(seen))
    orchestrator = TaskOrchestrator(LLMClient(provider=provider), repository, retry_policy=retry_policy)

    task_id = await repository.create("u1", {"title": "Report"})
    with pytest.raises(AIOperationError) as exc:
        await orchestrator.prioritize("u1", await repository.list("u1"))

    assert exc.value.operation == "prioritize_tasks"
    assert seen == ["/api/chat"] * 3
    assert recording_sleep.delays == [1.0, 2.0]
    assert (await repository.get("u1", task_id)).priority_score is None
