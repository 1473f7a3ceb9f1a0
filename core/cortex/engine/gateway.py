"""
Generation gateway: sends an assembled prompt to the text-generation backend.

The shipped backend is the Gemini `generateContent` REST endpoint reached
through httpx. Any failure (missing key, timeout, HTTP error, empty reply)
is raised as GenerationError.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from cortex.config import GenerationSettings
from cortex.errors import GenerationError
from cortex.utils.logging import logger


class GenerationGateway(ABC):
    """Turns a prompt into generated text."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the generated reply. Raises GenerationError on failure."""

    async def close(self) -> None:
        """Release network resources."""


class GeminiGateway(GenerationGateway):
    """Gemini REST client."""

    def __init__(
        self,
        settings: Optional[GenerationSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or GenerationSettings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        if not self.settings.api_key:
            raise GenerationError("GEMINI_API_KEY is not set")

        url = f"{self.settings.base_url}/models/{self.settings.model_id}:generateContent"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        try:
            response = await self.client.post(
                url,
                params={"key": self.settings.api_key},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise GenerationError(f"Generation timed out after {self.settings.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise GenerationError(
                f"Generation backend returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        text = self._extract_text(data)
        if not text:
            raise GenerationError("Generation backend returned an empty reply")

        logger.info(f"Generated {len(text)} chars with {self.settings.model_id}")
        return text

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
