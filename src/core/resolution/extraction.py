# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Deterministic parameter extraction.

Used when the function-calling oracle is unavailable or returns nothing
for a field: the resolver still needs to pull a topic and grade out of
"שיעור על מחזור המים לכיתה ד", and to read a short clarification reply
("על שברים") as the value of the field it asked for.
"""

import re
from typing import Any

from src.core.capabilities.models import Capability, ParameterSpec, ParameterType

GRADE_LETTERS: tuple[str, ...] = (
    "א", "ב", "ג", "ד", "ה", "ו", "ז", "ח", "ט", "י", "יא", "יב",
)

_GRADE_VALUE = r"(י[אב]|[א-ט]|י|1[0-2]|[1-9])(?![א-ת\d])"
_GRADE_CLAUSE = re.compile(r"(?:ל|ב|של\s+)?כית(?:ה|ות)\s*" + _GRADE_VALUE + r"['׳]?")
_BARE_GRADE = re.compile(r"^" + _GRADE_VALUE + r"['׳]?$")
_TOPIC = re.compile(r"(?:^|\s)(?:על|בנושא)\s+(.+)$")
_LEADING_PREPOSITION = re.compile(r"^(?:על|בנושא|נושא:?|ל-)\s*")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_LIST_SEPARATOR = re.compile(r"\s*[,،;]\s*")
_BULLET = re.compile(r"^\s*(?:[•\-*]|\d+[.)])\s*(.+?)\s*$")

TRUE_WORDS = frozenset({"כן", "yes", "true", "1", "בטח", "כמובן"})
FALSE_WORDS = frozenset({"לא", "no", "false", "0"})

# Hebrew labels of common enum values, used to read clarification replies.
ENUM_VALUE_LABELS: dict[str, tuple[str, ...]] = {
    "short": ("קצר", "קצרה"),
    "medium": ("בינוני", "בינונית"),
    "long": ("ארוך", "ארוכה"),
    "support": ("תמיכה", "מתקשים"),
    "core": ("ליבה", "רגיל"),
    "enrichment": ("העשרה", "מתקדמים"),
    "all": ("הכל", "כל הרמות"),
    "balanced": ("מאוזן", "מאוזנת"),
    "educational": ("לימודי", "לימודית"),
    "game": ("משחק", "משחקי"),
    "formal": ("רשמי", "רשמית"),
    "friendly": ("ידידותי", "חם"),
}


def normalize_grade(value: str) -> str:
    """Normalise a grade to its Hebrew letter (``4`` → ``ד``, ``ד'`` → ``ד``)."""
    cleaned = value.strip().strip("'׳\"")
    if cleaned.isdigit():
        number = int(cleaned)
        if 1 <= number <= len(GRADE_LETTERS):
            return GRADE_LETTERS[number - 1]
    return cleaned


def extract_grade(text: str) -> str | None:
    """Find a grade clause (``כיתה ד``, ``לכיתה 4``, ``כיתות יא``)."""
    match = _GRADE_CLAUSE.search(text)
    if match:
        return normalize_grade(match.group(1))
    return None


def _strip_punctuation(text: str) -> str:
    return text.strip().strip(".,!?;:").strip()


def extract_topic(text: str) -> str | None:
    """Find the topic after ``על`` / ``בנושא``, minus any trailing grade clause."""
    match = _TOPIC.search(text.strip())
    if not match:
        return None
    topic = match.group(1)
    grade = _GRADE_CLAUSE.search(topic)
    if grade:
        topic = topic[: grade.start()]
    topic = _strip_punctuation(topic)
    return topic or None


def _match_enum(spec: ParameterSpec, text: str) -> str | None:
    options = spec.enum_values or []
    folded = text.casefold().strip()
    for option in options:
        if folded == option.casefold():
            return option
    for option in options:
        if option.casefold() in folded:
            return option
        if any(label in folded for label in ENUM_VALUE_LABELS.get(option, ())):
            return option
    return None


def extract_field_value(spec: ParameterSpec, name: str, text: str) -> Any:
    """Read a clarification reply as the value of the field that was asked.

    Args:
        spec: Schema of the field.
        name: Field name (``grade`` gets grade parsing).
        text: The user's reply.

    Returns:
        The extracted value, or None when the reply does not fit the field.
    """
    reply = _strip_punctuation(text)
    if not reply:
        return None

    if spec.enum_values:
        return _match_enum(spec, reply)

    if spec.type == ParameterType.NUMBER:
        number = _NUMBER.search(reply)
        if number is None:
            return None
        value = float(number.group())
        return int(value) if value.is_integer() else value

    if spec.type == ParameterType.BOOLEAN:
        word = reply.casefold().split()[0]
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        return None

    if name == "grade":
        grade = extract_grade(reply)
        if grade is None:
            bare = _BARE_GRADE.match(reply)
            grade = normalize_grade(bare.group(1)) if bare else None
        return grade

    if spec.type == ParameterType.ARRAY:
        parts = [p for p in (_strip_punctuation(x) for x in _LIST_SEPARATOR.split(reply)) if p]
        return parts or None

    if spec.type == ParameterType.OBJECT:
        return None

    value = _LEADING_PREPOSITION.sub("", reply)
    return _strip_punctuation(value) or None


def extract_params(capability: Capability, text: str) -> dict[str, Any]:
    """Heuristic topic/grade extraction from a full request."""
    params: dict[str, Any] = {}
    if "topic" in capability.parameters:
        topic = extract_topic(text)
        if topic:
            params["topic"] = topic
    if "grade" in capability.parameters:
        grade = extract_grade(text)
        if grade:
            params["grade"] = grade
    return params


def extract_quick_replies(text: str, limit: int = 4) -> list[str]:
    """Bullet or numbered lines of a model reply, usable as quick replies."""
    replies = []
    for line in (text or "").splitlines():
        match = _BULLET.match(line)
        if match:
            option = match.group(1).strip()
            if 2 < len(option) < 50:
                replies.append(option)
    return replies[:limit]
