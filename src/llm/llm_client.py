from __future__ import annotations

import json
import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from llm.prompts import PROMPTS
from llm.providers.base import LLMProvider
from taskwise.errors import AIOperationError
from taskwise.metrics import AI_CALLS_TOTAL

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def build_provider(name: str) -> LLMProvider:
    """Instantiate a provider by its configured name (LLM_PROVIDER)."""
    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider
        return OpenAIProvider()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider
        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider
        return MockProvider()
    raise ValueError(f"unknown LLM provider: {name!r}")


def extract_json(text: str) -> Any:
    """
    Parse the model reply as JSON. Models sometimes wrap the object in prose
    ("Sure! Here is the result: {...}"), so fall back to the outermost
    braces. Raises ValueError when nothing parseable is found.
    """
    text = (text or "").strip()
    if not text:
        raise ValueError("empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in response")
    return json.loads(text[start : end + 1])


class LLMClient:
    """
    The AI capability gateway: one named operation in, one schema-validated
    model out. Transport failures and schema violations are both raised as
    AIOperationError so callers handle a single failure kind.
    """

    def __init__(self, provider: LLMProvider, model: Optional[str] = None):
        self.provider = provider
        # None lets the provider use its own configured model
        self.model = model or None

    def _system_prompt(self, operation: str, output_model: Type[BaseModel]) -> str:
        template = PROMPTS[operation]
        schema = json.dumps(output_model.model_json_schema())
        return (
            f"{template.system}\n\n"
            "Return ONLY valid JSON. No markdown, no commentary.\n"
            f"The output must strictly follow this JSON schema: {schema}"
        )

    async def run(self, operation: str, payload: BaseModel, output_model: Type[M]) -> M:
        if operation not in PROMPTS:
            raise ValueError(f"unknown gateway operation: {operation!r}")

        system = self._system_prompt(operation, output_model)
        user = PROMPTS[operation].render(payload)

        try:
            raw = await self.provider.generate(system=system, user=user, model=self.model)
        except (httpx.HTTPError, KeyError, IndexError, TypeError) as e:
            AI_CALLS_TOTAL.labels(operation=operation, outcome="transport_error").inc()
            logger.warning(f"Gateway transport failure for {operation}: {e!r}")
            raise AIOperationError(operation, "AI operation failed: transport error") from e

        try:
            data = extract_json(raw)
            result = output_model.model_validate(data)
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            AI_CALLS_TOTAL.labels(operation=operation, outcome="schema_violation").inc()
            logger.warning(f"Gateway response for {operation} violates schema: {e}")
            raise AIOperationError(operation, "AI operation failed: schema violation") from e

        AI_CALLS_TOTAL.labels(operation=operation, outcome="ok").inc()
        logger.debug(f"Gateway call {operation} succeeded")
        return result
