# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for LLMClient.

Tests the LLM client functionality including:
- Text completions through LiteLLM
- Tool calling through LiteLLM
- Direct Ollama tool calling
- Error handling
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.config.settings import LLMSettings
from src.core.intelligence.llm.client import (
    LLMClient,
    LLMError,
    Message,
    _parse_arguments,
)

TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "create_interactive_lesson",
            "description": "יצירת שיעור",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    }
]


@pytest.fixture
def llm_settings() -> LLMSettings:
    """LLM settings with an OpenAI key and a local Ollama."""
    env = {"OPENAI_API_KEY": "openai-key", "OLLAMA_BASE_URL": "http://ollama:11434"}
    with patch.dict(os.environ, env, clear=True):
        return LLMSettings()


@pytest.fixture
def client(llm_settings: LLMSettings) -> LLMClient:
    """Client defaulting to an OpenAI model."""
    return LLMClient(model="gpt-4o", timeout=30.0, max_retries=1, llm_settings=llm_settings)


def _completion(content: str | None = "", tool_calls: list[Any] | None = None) -> MagicMock:
    message = MagicMock()
    message.content = content
    message.tool_calls = tool_calls
    choice = MagicMock()
    choice.message = message
    choice.finish_reason = "tool_calls" if tool_calls else "stop"
    response = MagicMock()
    response.choices = [choice]
    response.usage.prompt_tokens = 12
    response.usage.completion_tokens = 5
    return response


def _tool_call(name: str, arguments: Any, call_id: str = "call_1") -> MagicMock:
    tool_call = MagicMock()
    tool_call.id = call_id
    tool_call.function.name = name
    tool_call.function.arguments = arguments
    return tool_call


@pytest.mark.unit
class TestLLMClientInit:
    """Test cases for LLMClient initialization."""

    def test_explicit_values(self, client: LLMClient) -> None:
        """Test that constructor arguments are kept."""
        assert client.model == "gpt-4o"
        assert client.timeout == 30.0
        assert client.max_retries == 1

    def test_defaults_from_settings(self, llm_settings: LLMSettings) -> None:
        """Test that the default model comes from settings."""
        client = LLMClient(llm_settings=llm_settings)

        assert client.model == llm_settings.get_default_model()
        assert client.timeout == llm_settings.request_timeout
        assert "LLMClient" in repr(client)


@pytest.mark.unit
class TestComplete:
    """Test cases for complete method."""

    @pytest.mark.asyncio
    async def test_complete_success(self, client: LLMClient) -> None:
        """Test a plain completion."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = _completion("הורים יקרים")

            response = await client.complete(
                "כתוב מכתב להורים",
                system_prompt="אתה עוזר למורים",
                messages=[Message(role="assistant", content="שלום")],
            )

        assert response.content == "הורים יקרים"
        assert response.total_tokens == 17
        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["api_key"] == "openai-key"
        assert [m["role"] for m in kwargs["messages"]] == ["system", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_complete_empty_prompt_raises(self, client: LLMClient) -> None:
        """Test that an empty prompt is rejected."""
        with pytest.raises(ValueError, match="Prompt cannot be empty"):
            await client.complete("  ")

    @pytest.mark.asyncio
    async def test_complete_failure_wrapped(self, client: LLMClient) -> None:
        """Test that provider errors become LLMError."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.side_effect = RuntimeError("rate limited")

            with pytest.raises(LLMError) as exc_info:
                await client.complete("כתוב מכתב")

        assert "rate limited" in str(exc_info.value)
        assert exc_info.value.model == "gpt-4o"


@pytest.mark.unit
class TestCompleteWithTools:
    """Test cases for complete_with_tools method."""

    @pytest.mark.asyncio
    async def test_tool_call_parsed(self, client: LLMClient) -> None:
        """Test that tool calls with JSON-string arguments are parsed."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = _completion(
                None,
                [_tool_call("create_interactive_lesson", '{"topic": "חלל"}')],
            )

            response = await client.complete_with_tools(
                [{"role": "user", "content": "שיעור על החלל"}], TOOLS
            )

        assert response.has_tool_calls
        assert response.content == ""
        tool_call = response.tool_calls[0]
        assert tool_call.name == "create_interactive_lesson"
        assert tool_call.arguments == {"topic": "חלל"}
        assert mock_acompletion.call_args.kwargs["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_unparseable_arguments_kept_raw(self, client: LLMClient) -> None:
        """Test that broken argument JSON is kept for repair."""
        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = _completion(
                "", [_tool_call("create_interactive_lesson", "{topic: 'חלל'}")]
            )

            response = await client.complete_with_tools(
                [{"role": "user", "content": "שיעור על החלל"}], TOOLS
            )

        assert response.tool_calls[0].arguments == {}
        assert response.tool_calls[0].raw_arguments == "{topic: 'חלל'}"

    @pytest.mark.asyncio
    async def test_no_choices_raises(self, client: LLMClient) -> None:
        """Test that an empty response is an error."""
        empty = MagicMock()
        empty.choices = []

        with patch(
            "src.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
            return_value=empty,
        ):
            with pytest.raises(LLMError, match="no choices"):
                await client.complete_with_tools([{"role": "user", "content": "x"}], TOOLS)

    @pytest.mark.asyncio
    async def test_empty_messages_raise(self, client: LLMClient) -> None:
        """Test that an empty conversation is rejected."""
        with pytest.raises(ValueError, match="Messages list cannot be empty"):
            await client.complete_with_tools([], TOOLS)

    @pytest.mark.asyncio
    async def test_ollama_bypasses_litellm(self, client: LLMClient) -> None:
        """Test that Ollama tool calls go straight to /api/chat."""
        data = {
            "message": {
                "content": "",
                "tool_calls": [
                    {"function": {"name": "create_interactive_lesson", "arguments": {"topic": "חלל"}}}
                ],
            },
            "prompt_eval_count": 40,
            "eval_count": 8,
        }
        resp = MagicMock(status=200)
        resp.json = AsyncMock(return_value=data)
        session = MagicMock()
        session.post.return_value.__aenter__.return_value = resp

        with patch("src.core.intelligence.llm.client.aiohttp.ClientSession") as mock_session_cls, patch(
            "src.core.intelligence.llm.client.acompletion", new_callable=AsyncMock
        ) as mock_acompletion:
            mock_session_cls.return_value.__aenter__.return_value = session

            response = await client.complete_with_tools(
                [{"role": "system", "content": "s"}, {"role": "user", "content": "שיעור"}],
                TOOLS,
                model="ollama/qwen2.5:7b",
            )

        mock_acompletion.assert_not_called()
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/chat"
        assert payload["model"] == "qwen2.5:7b"
        assert payload["stream"] is False
        assert response.tool_calls[0].arguments == {"topic": "חלל"}
        assert response.finish_reason == "tool_calls"
        assert response.total_tokens == 48

    @pytest.mark.asyncio
    async def test_ollama_error_status_raises(self, client: LLMClient) -> None:
        """Test that a non-200 Ollama response is an LLMError."""
        resp = MagicMock(status=500)
        resp.text = AsyncMock(return_value="boom")
        session = MagicMock()
        session.post.return_value.__aenter__.return_value = resp

        with patch("src.core.intelligence.llm.client.aiohttp.ClientSession") as mock_session_cls:
            mock_session_cls.return_value.__aenter__.return_value = session

            with pytest.raises(LLMError, match="Ollama API error: 500"):
                await client.complete_with_tools(
                    [{"role": "user", "content": "שיעור"}], TOOLS, model="ollama/qwen2.5:7b"
                )


@pytest.mark.unit
class TestParseArguments:
    """Test cases for _parse_arguments."""

    def test_dict_passthrough(self) -> None:
        """Test that dict arguments are used as-is."""
        assert _parse_arguments({"topic": "חלל"}) == ({"topic": "חלל"}, None)

    def test_json_string(self) -> None:
        """Test that JSON strings are decoded and kept raw."""
        assert _parse_arguments('{"topic": "חלל"}') == ({"topic": "חלל"}, '{"topic": "חלל"}')

    def test_none(self) -> None:
        """Test that missing arguments are empty."""
        assert _parse_arguments(None) == ({}, None)

    def test_non_object_json(self) -> None:
        """Test that JSON that is not an object yields no arguments."""
        assert _parse_arguments("[1, 2]") == ({}, "[1, 2]")
