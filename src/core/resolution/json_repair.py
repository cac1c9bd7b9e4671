# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort parsing of JSON emitted by an LLM.

Strict parse first, then a fixed sequence of textual repairs, each
followed by exactly one parse attempt. Repairs accumulate. When the last
one fails the text is rejected with MalformedLLMOutputError.
"""

import json
import logging
import re
from typing import Any, Callable

from src.core.errors import MalformedLLMOutputError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?|```")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][\w-]*)(\s*:)")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_OPENING_SINGLE_QUOTE = re.compile(r"([{\[,:]\s*)'")
_CLOSING_SINGLE_QUOTE = re.compile(r"'(\s*[:,}\]])")


def _strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text).strip()


def _extract_outermost(text: str) -> str:
    """Cut the text down to its outermost object (or array)."""
    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            return text[start : end + 1]
    return text


def _remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def _single_to_double_quotes(text: str) -> str:
    """Swap quotes that delimit keys or values; apostrophes inside words stay."""
    text = _OPENING_SINGLE_QUOTE.sub(r'\1"', text)
    return _CLOSING_SINGLE_QUOTE.sub(r'"\1', text)


def _quote_bare_keys(text: str) -> str:
    return _BARE_KEY.sub(r'\1"\2"\3', text)


def _drop_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub("", text).replace("\n", " ").replace("\r", " ")


REPAIRS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("strip_code_fences", _strip_code_fences),
    ("extract_outermost", _extract_outermost),
    ("remove_trailing_commas", _remove_trailing_commas),
    ("single_to_double_quotes", _single_to_double_quotes),
    ("quote_bare_keys", _quote_bare_keys),
    ("drop_control_chars", _drop_control_chars),
)


def parse_llm_json(text: str) -> Any:
    """Parse JSON produced by an LLM.

    Args:
        text: Raw model output.

    Returns:
        The decoded JSON value.

    Raises:
        MalformedLLMOutputError: If no bounded repair yields valid JSON.
    """
    if text is None or not str(text).strip():
        raise MalformedLLMOutputError("Empty LLM output", raw_output=text)

    candidate = str(text)
    last_error: Exception | None = None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        last_error = e

    for name, repair in REPAIRS:
        repaired = repair(candidate)
        if repaired == candidate:
            continue
        candidate = repaired
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        logger.debug("Parsed LLM JSON after repair step %s", name)
        return value

    raise MalformedLLMOutputError(
        f"LLM output is not valid JSON: {last_error}",
        raw_output=str(text),
        original_error=last_error,
    )


def looks_like_json(text: str) -> bool:
    """Whether the text is meant as a JSON payload.

    Only text that opens with an object or a code fence, or that names a
    ``function_call``, counts. Prose that merely contains braces does not.
    """
    stripped = (text or "").strip()
    return stripped.startswith(("{", "```")) or '"function_call"' in stripped
