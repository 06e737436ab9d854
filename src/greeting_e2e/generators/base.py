"""
Message Generator Interface

All message generators implement this interface. A generator produces the
content of one synthetic greeting per call and holds no per-message state.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..main import GeneratedMessage, GenerateMessageError

logger = logging.getLogger(__name__)

GENERATION_PROMPT = """
Write a JSON object with the following properties:
 {"to": "", "from": "", "heading": "", "message": ""}
The properties have these additional strict constraints:
Every property must have minimum 1 character value.
"from" must be a random name string from minimum 1 and maximum 20 characters,
"to" must be a random name string from minimum 1 and maximum 20 characters,
"heading" must be a random heading string from minimum 1 and maximum 20 characters,
"message" must be a random message string from minimum 1 and maximum 50 characters,
Properties do not repeat.
Single JSON object in the response.
None of the values can contain special characters.
The JSON must be pretty printed.
"""


class MessageGenerator(ABC):
    """Produces greeting content for the test run"""

    name = "base"

    async def initialize(self) -> None:
        """Connect to backing services, if any"""
        pass

    @abstractmethod
    async def generate_message(self) -> GeneratedMessage:
        """
        Generate the content of one greeting.

        Raises:
            GenerateMessageError: the backing service failed or its output
                could not be turned into a valid message
        """
        pass

    async def shutdown(self) -> None:
        """Clean up resources"""
        pass


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the first JSON object out of free-form model output.

    Models tend to wrap the object in prose or code fences, so decoding
    starts at the first opening brace and ignores whatever follows the object.
    """
    start = text.find("{")
    if start < 0:
        raise GenerateMessageError(f"No JSON object in generated output: {text!r}")

    try:
        data, _ = json.JSONDecoder().raw_decode(text[start:])
    except json.JSONDecodeError as e:
        raise GenerateMessageError(f"Unparsable JSON in generated output: {e}") from e

    if not isinstance(data, dict):
        raise GenerateMessageError(f"Generated JSON is not an object: {data!r}")
    return data


def parse_generated_message(text: str) -> GeneratedMessage:
    """Turn raw model output into a validated message"""
    return GeneratedMessage.from_dict(extract_json_object(text))
