"""
Claude Message Generator

Generates greetings with Claude via the Anthropic API.
"""

import logging
import os

from .base import GENERATION_PROMPT, MessageGenerator, parse_generated_message
from ..main import GeneratedMessage, GenerateMessageError

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = "You write short synthetic greeting cards. Answer with a single JSON object and nothing else."


class ClaudeMessageGenerator(MessageGenerator):
    """Generator backed by the Anthropic Messages API"""

    name = "claude"

    def __init__(
        self,
        model: str = "claude-3-5-haiku-20241022",
        max_tokens: int = 256,
        temperature: float = 1.0,
        client=None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client
        self._owns_client = client is None

    async def initialize(self) -> None:
        """Initialize the Claude client"""
        if self._client is not None:
            return

        try:
            from anthropic import AsyncAnthropic
        except ImportError as e:
            raise GenerateMessageError("anthropic package is required for ClaudeMessageGenerator") from e

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise GenerateMessageError("ANTHROPIC_API_KEY environment variable is required")

        self._client = AsyncAnthropic(api_key=api_key)
        logger.info(f"Claude generator initialized with model: {self.model}")

    async def generate_message(self) -> GeneratedMessage:
        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_MESSAGE,
                messages=[{"role": "user", "content": GENERATION_PROMPT}],
            )
        except Exception as e:
            raise GenerateMessageError(f"Claude request failed: {e}") from e

        output = response.content[0].text if response.content else ""
        return parse_generated_message(output)

    async def shutdown(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None
