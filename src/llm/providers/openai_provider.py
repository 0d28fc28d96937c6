from __future__ import annotations
import os
from typing import Dict, Optional
import httpx
from .base import HTTPChatProvider


class OpenAIProvider(HTTPChatProvider):
    """OpenAI chat completions in JSON mode (the reply is always a JSON object)."""

    name = "openai"

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is missing")
        super().__init__(
            base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").strip(),
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip(),
            timeout=timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def generate(self, *, system: str, user: str, model: Optional[str] = None) -> str:
        data = await self._post(
            "/chat/completions",
            {
                "model": model or self.model,
                "messages": self._messages(system, user),
                "temperature": self.temperature,
                "response_format": {"type": "json_object"},
            },
        )
        return data["choices"][0]["message"]["content"]
