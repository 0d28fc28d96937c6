from __future__ import annotations
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, *, system: str, user: str, model: Optional[str] = None) -> str:
        """
        Must return the model output as TEXT (LLMClient extracts and validates the JSON).
        Transport problems should be raised as httpx.HTTPError.
        """
        raise NotImplementedError


class HTTPChatProvider(LLMProvider):
    """Chat-completion style provider reached over HTTP with a JSON body."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.transport = transport

    def _messages(self, system: str, user: str) -> list:
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        start = time.time()
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            r = await client.post(path, headers=self._headers(), json=payload)
            r.raise_for_status()
            try:
                data = r.json()
            except ValueError as e:
                # proxy error pages and truncated bodies arrive with a 200
                raise httpx.DecodingError(
                    f"{self.name} returned a non-JSON body ({len(r.content)} bytes)", request=r.request
                ) from e
        logger.debug(f"{self.name} {payload.get('model')} answered in {time.time() - start:.2f}s")
        return data
