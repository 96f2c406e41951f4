"""Unit tests for the summary client and generator."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from taskgraph.summary.client import GenerationClient, OllamaClient, create_client
from taskgraph.summary.generator import REFLECTION_HEADER, SummaryGenerator, merge_reflection
from taskgraph.tasks.errors import ExternalServiceFailure, FailureReason, ValidationError
from taskgraph.tasks.models import Task


def mock_http(post):
    """Patch httpx.AsyncClient so ``post`` handles the request."""
    patcher = patch("httpx.AsyncClient")
    mock_client = patcher.start()
    mock_instance = AsyncMock()
    mock_instance.__aenter__.return_value = mock_instance
    mock_instance.post = post
    mock_client.return_value = mock_instance
    return patcher, mock_instance


class FakeClient(GenerationClient):
    def __init__(self, text="Nice work this week."):
        self.text = text
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.text


class TestOllamaClient:
    """Test OllamaClient."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            client = OllamaClient({})
        assert client.endpoint == "http://localhost:11434/api/generate"
        assert client.model == "granite3.3:2b"

    def test_env_overrides_base_url(self):
        with patch.dict(os.environ, {"OLLAMA_HOST": "http://gpu-box:11434/"}):
            client = OllamaClient({"base_url": "http://localhost:11434"})
        assert client.endpoint == "http://gpu-box:11434/api/generate"

    @pytest.mark.asyncio
    async def test_generate_success(self):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"response": "  Great progress!  "}
        patcher, mock_instance = mock_http(AsyncMock(return_value=response))
        try:
            with patch.dict(os.environ, {}, clear=True):
                client = OllamaClient({"model": "tiny"})
            text = await client.generate("hello")
        finally:
            patcher.stop()

        assert text == "Great progress!"
        _, kwargs = mock_instance.post.call_args
        assert kwargs["json"] == {"model": "tiny", "prompt": "hello", "stream": False}

    @pytest.mark.asyncio
    async def test_connection_error_is_unreachable(self):
        patcher, _ = mock_http(AsyncMock(side_effect=httpx.ConnectError("Connection refused")))
        try:
            with patch.dict(os.environ, {}, clear=True):
                client = OllamaClient({})
            with pytest.raises(ExternalServiceFailure) as exc_info:
                await client.generate("hello")
        finally:
            patcher.stop()

        assert exc_info.value.reason == FailureReason.UNREACHABLE
        assert "localhost:11434" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_unreachable(self):
        patcher, _ = mock_http(AsyncMock(side_effect=httpx.TimeoutException("Timeout")))
        try:
            client = OllamaClient({})
            with pytest.raises(ExternalServiceFailure) as exc_info:
                await client.generate("hello")
        finally:
            patcher.stop()

        assert exc_info.value.reason == FailureReason.UNREACHABLE

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        response = MagicMock()
        response.status_code = 500
        patcher, _ = mock_http(AsyncMock(return_value=response))
        try:
            client = OllamaClient({})
            with pytest.raises(ExternalServiceFailure, match="Ollama API error: 500") as exc_info:
                await client.generate("hello")
        finally:
            patcher.stop()

        assert exc_info.value.reason == FailureReason.OTHER

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"unexpected": True}
        patcher, _ = mock_http(AsyncMock(return_value=response))
        try:
            client = OllamaClient({})
            with pytest.raises(ExternalServiceFailure) as exc_info:
                await client.generate("hello")
        finally:
            patcher.stop()

        assert exc_info.value.reason == FailureReason.OTHER

    def test_create_client(self):
        assert isinstance(create_client({"provider": "ollama"}), OllamaClient)
        with pytest.raises(ValueError, match="Unsupported summary provider"):
            create_client({"provider": "nope"})


class TestSummaryGenerator:
    """Test SummaryGenerator."""

    def test_merge_reflection(self):
        assert merge_reflection("", "Well done.") == f"{REFLECTION_HEADER}\nWell done."
        assert merge_reflection("My notes ", "Well done.") == f"My notes\n\n{REFLECTION_HEADER}\nWell done."

    def test_prompt_lists_completed_tasks(self):
        generator = SummaryGenerator(FakeClient(), goal_context="learning Rust")
        prompt = generator.build_prompt([Task(id=1, text="Read chapter 3")])
        assert "• Read chapter 3" in prompt
        assert "learning Rust" in prompt

    @pytest.mark.asyncio
    async def test_generate_appends_reflection(self):
        client = FakeClient("Keep going!")
        generator = SummaryGenerator(client)
        tasks = [Task(id=1, text="Done thing", completed=True), Task(id=2, text="Open thing")]

        result = await generator.generate(tasks, "Draft")

        assert result == f"Draft\n\n{REFLECTION_HEADER}\nKeep going!"
        assert "Done thing" in client.prompts[0]
        assert "Open thing" not in client.prompts[0]
        assert generator.is_generating is False

    @pytest.mark.asyncio
    async def test_nothing_completed(self):
        client = FakeClient()
        generator = SummaryGenerator(client)

        with pytest.raises(ValidationError, match="No completed tasks"):
            await generator.generate([Task(id=1, text="Open")], "")
        assert client.prompts == []

    @pytest.mark.asyncio
    async def test_failure_resets_generating_flag(self):
        client = AsyncMock(spec=GenerationClient)
        client.generate.side_effect = ExternalServiceFailure(FailureReason.OTHER, "boom")
        generator = SummaryGenerator(client)

        with pytest.raises(ExternalServiceFailure):
            await generator.generate([Task(id=1, text="Done", completed=True)], "Draft")
        assert generator.is_generating is False


class TestOllamaHost:
    """OLLAMA_HOST may omit the scheme."""

    def test_bare_host_port_gets_http(self):
        with patch.dict(os.environ, {"OLLAMA_HOST": "127.0.0.1:11434"}):
            client = OllamaClient({})
        assert client.endpoint == "http://127.0.0.1:11434/api/generate"

    def test_https_kept(self):
        with patch.dict(os.environ, {"OLLAMA_HOST": "https://ollama.example.com"}):
            client = OllamaClient({})
        assert client.endpoint == "https://ollama.example.com/api/generate"
