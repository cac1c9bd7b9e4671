# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Function-calling oracle.

The resolver never talks to an LLM vendor directly. It hands an utterance
and a list of tool definitions to a ``FunctionCallingOracle`` and gets
back either a ``FunctionCall`` (tool name plus arguments) or None.

Implementations:
- LLMFunctionCallingOracle: LiteLLM tool calling through LLMClient, with a
  JSON-in-text fallback for models that answer in prose
- NullOracle: never calls anything (offline mode, tests)
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from src.core.errors import MalformedLLMOutputError
from src.core.intelligence.llm.client import LLMClient, ToolCall
from src.core.resolution.json_repair import looks_like_json, parse_llm_json
from src.core.resolution.state import ConversationMessage

logger = logging.getLogger(__name__)

CLARIFICATION_TOOL_NAME = "ask_clarification"

CLARIFICATION_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": CLARIFICATION_TOOL_NAME,
        "description": "שאל שאלת הבהרה כשחסר מידע קריטי",
        "parameters": {
            "type": "object",
            "properties": {
                "question": {"type": "string", "description": "השאלה לשאול"},
                "options": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "אפשרויות תשובה מהירות (אופציונלי)",
                },
                "missingParam": {"type": "string", "description": "שם הפרמטר החסר"},
            },
            "required": ["question"],
        },
    },
}

SYSTEM_PROMPT = """אתה עוזר חכם ליצירת תוכן לימודי בעברית.

תפקידך לזהות מה המורה מבקש ולבחור את הפונקציה המתאימה עם הפרמטרים שנאמרו.

כללים:
1. בקשה עם נושא ברור ("דף עבודה על כפל") - בחר פונקציה מיד.
2. אל תמציא ערכים שהמורה לא אמר. פרמטר שלא נאמר - השמט אותו.
3. כיתה ותחום דעת הם אופציונליים - אל תשאל עליהם.
4. אם הבקשה עמומה מאוד ("תכין משהו") - השתמש ב-ask_clarification.
5. שיחה כללית או שאלה - ענה בטקסט בלבד.

אם אינך יכול לקרוא לפונקציות, החזר JSON בלבד:
{"function_call": {"name": "<שם>", "args": {...}}} או {"text": "<תשובה>"}
"""


@dataclass
class FunctionCall:
    """A tool selected by the oracle.

    Attributes:
        name: Tool name (a capability id or ``ask_clarification``).
        args: Extracted arguments.
    """

    name: str
    args: dict[str, Any] = field(default_factory=dict)

    @property
    def is_clarification(self) -> bool:
        """Whether the model asked a question instead of choosing a capability."""
        return self.name == CLARIFICATION_TOOL_NAME


class FunctionCallingOracle(Protocol):
    """Pluggable LLM function-calling pass."""

    async def resolve_function_call(
        self,
        utterance: str,
        available_tools: Sequence[dict[str, Any]],
        history: Sequence[ConversationMessage] | None = None,
        hint: str | None = None,
    ) -> FunctionCall | None:
        """Pick a tool and its arguments for the utterance, or None.

        Raises:
            MalformedLLMOutputError: Output could not be parsed or names an
                unknown tool.
            LLMError: The provider call failed.
        """
        ...


class NullOracle:
    """Oracle that never selects a tool."""

    async def resolve_function_call(
        self,
        utterance: str,
        available_tools: Sequence[dict[str, Any]],
        history: Sequence[ConversationMessage] | None = None,
        hint: str | None = None,
    ) -> FunctionCall | None:
        return None


def _tool_names(tools: Sequence[dict[str, Any]]) -> set[str]:
    return {tool.get("function", {}).get("name", "") for tool in tools}


class LLMFunctionCallingOracle:
    """Function calling through LiteLLM.

    Native tool calls are used when the model returns them. Otherwise the
    text content is read as the JSON protocol described in the system
    prompt; prose without JSON means "no call".

    Example:
        oracle = LLMFunctionCallingOracle(LLMClient(), temperature=0.3)
        call = await oracle.resolve_function_call(utterance, tools)
    """

    def __init__(
        self,
        llm_client: LLMClient,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        model: str | None = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._model = model
        self._system_prompt = system_prompt

    def _build_messages(
        self,
        utterance: str,
        history: Sequence[ConversationMessage] | None,
        hint: str | None,
    ) -> list[dict[str, Any]]:
        system = self._system_prompt
        if hint:
            system += f"\nהפונקציה הסבירה ביותר לפי ההקשר: {hint}\n"
        messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
        for message in history or []:
            messages.append({"role": message.role, "content": message.content})
        messages.append({"role": "user", "content": utterance})
        return messages

    async def resolve_function_call(
        self,
        utterance: str,
        available_tools: Sequence[dict[str, Any]],
        history: Sequence[ConversationMessage] | None = None,
        hint: str | None = None,
    ) -> FunctionCall | None:
        tools = list(available_tools)
        known = _tool_names(tools)

        response = await self._llm.complete_with_tools(
            messages=self._build_messages(utterance, history, hint),
            tools=tools,
            tool_choice="auto",
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        if response.has_tool_calls:
            return self._from_tool_call(response.tool_calls[0], known)

        return self._from_text(response.content, known)

    @staticmethod
    def _from_tool_call(tool_call: ToolCall, known: set[str]) -> FunctionCall:
        if tool_call.name not in known:
            raise MalformedLLMOutputError(
                f"Model called unknown tool '{tool_call.name}'",
                raw_output=tool_call.raw_arguments,
            )
        arguments = tool_call.arguments
        if not arguments and tool_call.raw_arguments:
            repaired = parse_llm_json(tool_call.raw_arguments)
            if not isinstance(repaired, dict):
                raise MalformedLLMOutputError(
                    "Tool arguments are not an object",
                    raw_output=tool_call.raw_arguments,
                )
            arguments = repaired
        logger.debug("Oracle selected tool %s", tool_call.name)
        return FunctionCall(name=tool_call.name, args=dict(arguments))

    @staticmethod
    def _from_text(content: str, known: set[str]) -> FunctionCall | None:
        if not content or not looks_like_json(content):
            return None

        payload = parse_llm_json(content)
        if not isinstance(payload, dict):
            raise MalformedLLMOutputError("Expected a JSON object", raw_output=content)

        call = payload.get("function_call")
        if call is None:
            return None
        if not isinstance(call, dict) or not isinstance(call.get("name"), str):
            raise MalformedLLMOutputError("Invalid function_call payload", raw_output=content)

        name = call["name"]
        if name not in known:
            raise MalformedLLMOutputError(f"Model called unknown tool '{name}'", raw_output=content)

        args = call.get("args") or call.get("arguments") or {}
        if isinstance(args, str):
            args = parse_llm_json(args)
        if not isinstance(args, dict):
            raise MalformedLLMOutputError(
                "function_call args are not an object",
                raw_output=json.dumps(call, ensure_ascii=False),
            )
        return FunctionCall(name=name, args=args)
