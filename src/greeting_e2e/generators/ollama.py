"""
Ollama Message Generator

Generates greetings with a local Ollama model over its REST API.
"""

import logging
from typing import Optional

import httpx

from .base import GENERATION_PROMPT, MessageGenerator, parse_generated_message
from ..main import GeneratedMessage, GenerateMessageError

logger = logging.getLogger(__name__)


class OllamaMessageGenerator(MessageGenerator):
    """
    Generator backed by ``POST /api/generate`` on an Ollama server.

    Each call is a non-streaming completion of the shared JSON prompt.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "tinyllama",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def initialize(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        logger.info(f"Ollama generator initialized with model: {self.model}")

    async def generate_message(self) -> GeneratedMessage:
        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.post(
                f"{self.base_url}/api/generate",
                json={"model": self.model, "prompt": GENERATION_PROMPT, "stream": False},
            )
            response.raise_for_status()
            output = response.json()["response"]
            if not isinstance(output, str):
                raise GenerateMessageError(f"Ollama response is not text: {output!r}")
        except httpx.HTTPError as e:
            raise GenerateMessageError(f"Ollama request failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise GenerateMessageError(f"Unexpected Ollama response: {e}") from e

        return parse_generated_message(output)

    async def shutdown(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
