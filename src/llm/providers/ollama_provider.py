from __future__ import annotations
import os
from typing import Optional
import httpx
from .base import HTTPChatProvider


class OllamaProvider(HTTPChatProvider):
    name = "ollama"

    def __init__(self, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip(),
            model=os.getenv("OLLAMA_MODEL", "llama3.1").strip(),
            timeout=timeout,
            transport=transport,
        )

    async def generate(self, *, system: str, user: str, model: Optional[str] = None) -> str:
        # non-streaming; "format": "json" constrains the reply to a JSON value
        data = await self._post(
            "/api/chat",
            {
                "model": model or self.model,
                "stream": False,
                "format": "json",
                "messages": self._messages(system, user),
                "options": {"temperature": self.temperature},
            },
        )
        return data["message"]["content"]
