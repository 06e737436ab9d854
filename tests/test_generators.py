"""
Tests for the message generators
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from greeting_e2e.generators import (
    ClaudeMessageGenerator,
    LocalMessageGenerator,
    OllamaMessageGenerator,
    create_generator,
    extract_json_object,
    parse_generated_message,
)
from greeting_e2e.main import E2EConfig, GenerateMessageError, MessageGeneratorKind

MODEL_OUTPUT = """Sure! Here is your greeting:
{
  "to": "Ingrid",
  "from": "Ola",
  "heading": "Happy birthday",
  "message": "Have a wonderful day"
}
Let me know if you need another one."""


class TestParsing:
    """Tests for turning model output into messages"""

    def test_extract_object_from_prose(self):
        """Should find the JSON object inside surrounding text"""
        data = extract_json_object(MODEL_OUTPUT)
        assert data["to"] == "Ingrid"
        assert data["message"] == "Have a wonderful day"

    def test_no_object(self):
        """Should fail when there is no JSON object"""
        with pytest.raises(GenerateMessageError):
            extract_json_object("I cannot help with that.")

    def test_broken_json(self):
        """Should fail on unparsable JSON"""
        with pytest.raises(GenerateMessageError):
            extract_json_object('{"to": "Ingrid", "from": ')

    def test_parse_message(self):
        """Should map 'from' onto from_"""
        message = parse_generated_message(MODEL_OUTPUT)
        assert message.from_ == "Ola"
        assert message.heading == "Happy birthday"

    def test_empty_field_rejected(self):
        """Should reject a message with an empty property"""
        with pytest.raises(GenerateMessageError):
            parse_generated_message('{"to": "", "from": "Ola", "heading": "Hi", "message": "Hello"}')

    def test_missing_field_rejected(self):
        """Should reject a message with a missing property"""
        with pytest.raises(GenerateMessageError):
            parse_generated_message('{"to": "Ingrid", "from": "Ola", "heading": "Hi"}')


class TestLocalMessageGenerator:
    """Tests for LocalMessageGenerator"""

    @pytest.mark.asyncio
    async def test_fixed_content(self):
        """Should always return the same greeting"""
        generator = LocalMessageGenerator()
        first = await generator.generate_message()
        second = await generator.generate_message()

        assert first == second
        assert first.to == "Greeting recipient"
        assert first.message == "Greeting main message"


class TestOllamaMessageGenerator:
    """Tests for OllamaMessageGenerator"""

    @pytest.mark.asyncio
    async def test_generate(self):
        """Should post the prompt and parse the response"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"model": "tinyllama", "response": MODEL_OUTPUT, "done": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        generator = OllamaMessageGenerator(base_url="http://ollama.test", client=client)

        message = await generator.generate_message()

        assert message.to == "Ingrid"
        assert seen["path"] == "/api/generate"
        assert seen["body"]["model"] == "tinyllama"
        assert seen["body"]["stream"] is False

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Should raise GenerateMessageError on HTTP errors"""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        generator = OllamaMessageGenerator(base_url="http://ollama.test", client=client)

        with pytest.raises(GenerateMessageError):
            await generator.generate_message()

    @pytest.mark.asyncio
    async def test_unparsable_output(self):
        """Should raise GenerateMessageError when the model rambles"""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"response": "Hello there!"})
            )
        )
        generator = OllamaMessageGenerator(base_url="http://ollama.test", client=client)

        with pytest.raises(GenerateMessageError):
            await generator.generate_message()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output", [None, 42, {"to": "Ingrid"}])
    async def test_non_text_response(self, output):
        """Should raise GenerateMessageError when the response field is not text"""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"response": output})
            )
        )
        generator = OllamaMessageGenerator(base_url="http://ollama.test", client=client)

        with pytest.raises(GenerateMessageError):
            await generator.generate_message()


class TestClaudeMessageGenerator:
    """Tests for ClaudeMessageGenerator"""

    @pytest.mark.asyncio
    async def test_generate(self):
        """Should parse the text block of the reply"""
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(text=MODEL_OUTPUT)])
        )
        generator = ClaudeMessageGenerator(model="claude-test", client=client)

        message = await generator.generate_message()

        assert message.from_ == "Ola"
        assert client.messages.create.await_args.kwargs["model"] == "claude-test"

    @pytest.mark.asyncio
    async def test_api_error(self):
        """Should wrap API failures"""
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=RuntimeError("overloaded"))
        generator = ClaudeMessageGenerator(client=client)

        with pytest.raises(GenerateMessageError):
            await generator.generate_message()

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        """Should refuse to start without ANTHROPIC_API_KEY"""
        generator = ClaudeMessageGenerator()

        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(GenerateMessageError):
                await generator.initialize()


class TestCreateGenerator:
    """Tests for generator selection"""

    def test_local(self):
        assert isinstance(create_generator(E2EConfig()), LocalMessageGenerator)

    def test_ollama(self):
        config = E2EConfig(message_generator="ollama", ollama_model="llama3")
        generator = create_generator(config)

        assert isinstance(generator, OllamaMessageGenerator)
        assert generator.model == "llama3"

    def test_claude(self):
        config = E2EConfig(message_generator=MessageGeneratorKind.CLAUDE)
        assert isinstance(create_generator(config), ClaudeMessageGenerator)
