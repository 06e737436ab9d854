"""
Message Generators

Pluggable sources of greeting content, selected by ``E2EConfig.message_generator``.
"""

from .base import MessageGenerator, extract_json_object, parse_generated_message
from .claude import ClaudeMessageGenerator
from .local import LocalMessageGenerator
from .ollama import OllamaMessageGenerator
from ..main import E2EConfig, MessageGeneratorKind


def create_generator(config: E2EConfig) -> MessageGenerator:
    """Build the generator the config asks for"""
    if config.message_generator == MessageGeneratorKind.OLLAMA:
        return OllamaMessageGenerator(
            base_url=config.ollama_url,
            model=config.ollama_model,
        )
    if config.message_generator == MessageGeneratorKind.CLAUDE:
        return ClaudeMessageGenerator(model=config.claude_model)
    return LocalMessageGenerator()


__all__ = [
    "MessageGenerator",
    "LocalMessageGenerator",
    "OllamaMessageGenerator",
    "ClaudeMessageGenerator",
    "create_generator",
    "extract_json_object",
    "parse_generated_message",
]
