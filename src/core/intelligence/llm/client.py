# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client using LiteLLM for multi-provider support.

Two call shapes are used by the engine:

- ``complete``: plain text generation, used by prompt-based capabilities
- ``complete_with_tools``: tool calling, used by the function-calling
  oracle to pick a capability and extract its arguments

API keys and endpoints are passed directly to LiteLLM's acompletion()
rather than through environment variables.

NOTE: For Ollama tool calling, we bypass LiteLLM and call Ollama API directly
due to a known LiteLLM bug where tool_calls are not properly parsed.

Example:
    >>> from src.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete("כתוב מכתב להורים על טיול שנתי")
    >>> print(response.content)
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

import aiohttp
import litellm
from litellm import acompletion

from src.core.config.settings import LLMSettings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from an LLM completion.

    Attributes:
        content: The generated text content.
        model: The model that generated the response.
        tokens_input: Number of input tokens used.
        tokens_output: Number of output tokens generated.
        finish_reason: Why generation stopped (stop, length, etc.).
        raw_response: Original response object from LiteLLM.
    """

    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    finish_reason: str = "stop"
    raw_response: Optional[object] = field(default=None, repr=False)

    @property
    def total_tokens(self) -> int:
        """Get total tokens used (input + output)."""
        return self.tokens_input + self.tokens_output


@dataclass
class ToolCall:
    """A tool call requested by the LLM.

    Attributes:
        id: Unique identifier for this tool call.
        name: Name of the tool to execute.
        arguments: Parsed arguments (empty when they could not be parsed).
        raw_arguments: Argument string as returned by the provider, kept
            so callers can attempt a repair when parsing failed.
    """

    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: Optional[str] = None


@dataclass
class LLMToolResponse:
    """Response from an LLM completion with tool calling support.

    Attributes:
        content: The generated text content (may be empty if tool_calls present).
        model: The model that generated the response.
        tokens_input: Number of input tokens used.
        tokens_output: Number of output tokens generated.
        finish_reason: Why generation stopped (stop, tool_calls, length, etc.).
        tool_calls: List of tool calls requested by the LLM.
        raw_response: Original response object from LiteLLM.
    """

    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    finish_reason: str = "stop"
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw_response: Optional[object] = field(default=None, repr=False)

    @property
    def total_tokens(self) -> int:
        """Get total tokens used (input + output)."""
        return self.tokens_input + self.tokens_output

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return len(self.tool_calls) > 0


class LLMError(Exception):
    """Exception raised when LLM operation fails.

    Attributes:
        message: Error description.
        model: Model that caused the error.
        error_code: Error code if available.
        original_error: Original exception if any.
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        error_code: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.model = model
        self.error_code = error_code
        self.original_error = original_error
        super().__init__(self.message)


@dataclass
class Message:
    """A message in a conversation.

    Attributes:
        role: Message role (system, user, assistant).
        content: Message text content.
    """

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary format for LiteLLM."""
        return {"role": self.role, "content": self.content}


def _parse_arguments(arguments: Any) -> tuple[dict[str, Any], Optional[str]]:
    """Parse tool-call arguments that may arrive as a dict or a JSON string."""
    if isinstance(arguments, dict):
        return arguments, None
    if arguments is None:
        return {}, None
    raw = str(arguments)
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}, raw
    return (parsed if isinstance(parsed, dict) else {}), raw


class LLMClient:
    """Client for LLM operations via LiteLLM.

    Attributes:
        model: Default model to use for completions.
        timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts.

    Example:
        >>> client = LLMClient()
        >>> response = await client.complete_with_tools(messages, tools)
        >>> if response.has_tool_calls:
        ...     print(response.tool_calls[0].name)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        llm_settings: Optional[LLMSettings] = None,
    ):
        """Initialize the LLM client.

        Args:
            model: Default model in LiteLLM format. Falls back to settings.
            timeout: Request timeout in seconds. Falls back to settings.
            max_retries: Maximum retry attempts. Falls back to settings.
            llm_settings: LLM configuration. Uses get_settings() if None.
        """
        self._settings = llm_settings or get_settings().llm
        self._model = model or self._settings.get_default_model()
        self._timeout = timeout or self._settings.request_timeout
        self._max_retries = max_retries or self._settings.max_retries

        # LiteLLM global settings
        litellm.set_verbose = False
        litellm.drop_params = True

        logger.info(
            "LLMClient initialized with model=%s, timeout=%.1fs, max_retries=%d",
            self._model,
            self._timeout,
            self._max_retries,
        )

    @staticmethod
    def _is_ollama_model(model: str) -> bool:
        return model.startswith(("ollama/", "ollama_chat/"))

    @staticmethod
    def _get_ollama_model_name(model: str) -> str:
        for prefix in ("ollama_chat/", "ollama/"):
            if model.startswith(prefix):
                return model[len(prefix):]
        return model

    @property
    def model(self) -> str:
        """Default model identifier in LiteLLM format."""
        return self._model

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self._timeout

    @property
    def max_retries(self) -> int:
        """Maximum number of retries."""
        return self._max_retries

    async def complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        messages: Optional[list[Message]] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs,
    ) -> LLMResponse:
        """Generate a completion for the given prompt.

        Args:
            prompt: User prompt text.
            model: Override default model for this request.
            system_prompt: Optional system prompt to set context.
            messages: Previous conversation messages (if multi-turn).
            temperature: Sampling temperature (0-2).
            max_tokens: Maximum tokens to generate.
            **kwargs: Additional LiteLLM parameters.

        Returns:
            LLMResponse with generated content and metadata.

        Raises:
            LLMError: If generation fails after retries.
            ValueError: If prompt is empty.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        use_model = model or self._model

        chat_messages: list[dict[str, str]] = []
        if system_prompt:
            chat_messages.append({"role": "system", "content": system_prompt})
        if messages:
            chat_messages.extend([m.to_dict() for m in messages])
        chat_messages.append({"role": "user", "content": prompt})

        try:
            response = await acompletion(
                model=use_model,
                messages=chat_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self._timeout,
                num_retries=self._max_retries,
                **self._settings.get_provider_params(use_model),
                **kwargs,
            )

            content = response.choices[0].message.content or ""
            finish_reason = response.choices[0].finish_reason or "stop"
            tokens_input = getattr(response.usage, "prompt_tokens", 0) or 0
            tokens_output = getattr(response.usage, "completion_tokens", 0) or 0

            logger.debug(
                "Completion generated: model=%s, tokens_in=%d, tokens_out=%d",
                use_model,
                tokens_input,
                tokens_output,
            )

            return LLMResponse(
                content=content,
                model=use_model,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                finish_reason=finish_reason,
                raw_response=response,
            )

        except Exception as e:
            logger.error(
                "Completion failed: model=%s, prompt_length=%d, error=%s",
                use_model,
                len(prompt),
                str(e),
            )
            raise LLMError(
                message=f"Completion failed: {str(e)}",
                model=use_model,
                original_error=e,
            ) from e

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str = "auto",
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs,
    ) -> LLMToolResponse:
        """Generate a completion with tool calling support.

        For Ollama models, this method bypasses LiteLLM and calls Ollama API
        directly to work around a known bug in LiteLLM's tool call parsing.

        Args:
            messages: Conversation messages in OpenAI format.
            tools: Tool definitions in OpenAI format.
            tool_choice: "auto", "none" or "required".
            model: Override default model for this request.
            temperature: Sampling temperature (0-2).
            max_tokens: Maximum tokens to generate.
            **kwargs: Additional LiteLLM parameters.

        Returns:
            LLMToolResponse with content and/or tool_calls.

        Raises:
            LLMError: If completion fails after retries.
            ValueError: If messages list is empty.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")

        use_model = model or self._model
        provider_params = self._settings.get_provider_params(use_model)

        if self._is_ollama_model(use_model):
            return await self._ollama_complete_with_tools(
                messages=messages,
                tools=tools,
                model=use_model,
                api_base=provider_params.get("api_base") or self._settings.ollama_base_url,
                api_key=provider_params.get("api_key"),
                temperature=temperature,
                max_tokens=max_tokens,
            )

        try:
            logger.debug(
                "Tool completion: model=%s, messages=%d, tools=%s",
                use_model,
                len(messages),
                [t.get("function", {}).get("name") for t in tools],
            )

            response = await acompletion(
                model=use_model,
                messages=messages,
                tools=tools,
                tool_choice=tool_choice,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self._timeout,
                num_retries=self._max_retries,
                **provider_params,
                **kwargs,
            )

            if not response.choices:
                raise LLMError(
                    message="LLM returned empty response with no choices",
                    model=use_model,
                )
            message = response.choices[0].message
            content = message.content or ""
            finish_reason = response.choices[0].finish_reason or "stop"

            parsed_tool_calls: list[ToolCall] = []
            for tc in getattr(message, "tool_calls", None) or []:
                arguments, raw = _parse_arguments(tc.function.arguments)
                parsed_tool_calls.append(
                    ToolCall(
                        id=tc.id or f"call_{uuid.uuid4().hex[:8]}",
                        name=tc.function.name,
                        arguments=arguments,
                        raw_arguments=raw,
                    )
                )

            tokens_input = getattr(response.usage, "prompt_tokens", 0) or 0
            tokens_output = getattr(response.usage, "completion_tokens", 0) or 0

            logger.debug(
                "Tool completion generated: model=%s, tokens_in=%d, tokens_out=%d, tool_calls=%d",
                use_model,
                tokens_input,
                tokens_output,
                len(parsed_tool_calls),
            )

            return LLMToolResponse(
                content=content,
                model=use_model,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                finish_reason=finish_reason,
                tool_calls=parsed_tool_calls,
                raw_response=response,
            )

        except LLMError:
            raise
        except Exception as e:
            logger.error("Tool completion failed: model=%s, error=%s", use_model, str(e))
            raise LLMError(
                message=f"Tool completion failed: {str(e)}",
                model=use_model,
                original_error=e,
            ) from e

    async def _ollama_complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        model: str,
        api_base: str,
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        context_length: int = 4096,
    ) -> LLMToolResponse:
        """Call Ollama's /api/chat endpoint directly for tool calling.

        Returns:
            LLMToolResponse with content and/or tool_calls.

        Raises:
            LLMError: On a non-200 status or a transport failure.
        """
        payload = {
            "model": self._get_ollama_model_name(model),
            "messages": [
                {"role": m.get("role", "user"), "content": m.get("content", "") or ""}
                for m in messages
                if m.get("role") in ("system", "user", "assistant")
            ],
            "tools": tools,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
                "num_ctx": context_length,
            },
        }

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        url = f"{api_base.rstrip('/')}/api/chat"
        logger.debug("[OLLAMA_DIRECT] Calling %s with model=%s, tools=%d", url, model, len(tools))

        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=payload, headers=headers) as resp:
                    if resp.status != 200:
                        error_text = await resp.text()
                        raise LLMError(
                            message=f"Ollama API error: {resp.status} - {error_text}",
                            model=model,
                        )
                    data = await resp.json()

        except aiohttp.ClientError as e:
            logger.error("[OLLAMA_DIRECT] Request failed: %s", str(e))
            raise LLMError(
                message=f"Ollama request failed: {str(e)}",
                model=model,
                original_error=e,
            ) from e

        message_data = data.get("message", {})
        parsed_tool_calls: list[ToolCall] = []
        for tc in message_data.get("tool_calls", []) or []:
            func_data = tc.get("function", {})
            name = func_data.get("name", "")
            if not name:
                continue
            arguments, raw = _parse_arguments(func_data.get("arguments", {}))
            parsed_tool_calls.append(
                ToolCall(
                    id=tc.get("id") or f"call_{uuid.uuid4().hex[:8]}",
                    name=name,
                    arguments=arguments,
                    raw_arguments=raw,
                )
            )

        return LLMToolResponse(
            content=message_data.get("content", "") or "",
            model=model,
            tokens_input=data.get("prompt_eval_count", 0) or 0,
            tokens_output=data.get("eval_count", 0) or 0,
            finish_reason="tool_calls" if parsed_tool_calls else "stop",
            tool_calls=parsed_tool_calls,
            raw_response=data,
        )

    def __repr__(self) -> str:
        return (
            f"LLMClient(model={self._model!r}, "
            f"timeout={self._timeout}, max_retries={self._max_retries})"
        )
