"""
Local Message Generator

Deterministic greetings for runs that should not depend on a model.
"""

from .base import MessageGenerator
from ..main import GeneratedMessage


class LocalMessageGenerator(MessageGenerator):
    """Returns the same fixed greeting on every call"""

    name = "local"

    async def generate_message(self) -> GeneratedMessage:
        return GeneratedMessage(
            to="Greeting recipient",
            from_="Greeting sender",
            heading="Greeting heading",
            message="Greeting main message",
        )
