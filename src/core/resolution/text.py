# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Text normalisation shared by the matcher, ranker and extractors.

Hebrew words carry attached prefixes (ל, ה, ב, ו, ש), so token comparison
treats a token as matching when one contains the other, as long as the
shorter one has at least three characters.
"""

import re

# Keep letters, digits, whitespace, quotes (תל"א) and the Hebrew geresh/gershayim.
_NON_TEXT = re.compile(r"[^\w\s\"'׳״-]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> str:
    """Casefold, drop punctuation and emoji, collapse whitespace."""
    text = _NON_TEXT.sub(" ", text.casefold())
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str, min_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    """Normalised tokens of at least ``min_length`` characters."""
    return [
        token.strip("\"'׳״-")
        for token in normalize_text(text).split()
        if len(token.strip("\"'׳״-")) >= min_length
    ]


def tokens_match(left: str, right: str) -> bool:
    """Whether two tokens are equal or one contains the other."""
    if left == right:
        return True
    shorter, longer = sorted((left, right), key=len)
    return len(shorter) >= MIN_TOKEN_LENGTH and shorter in longer


def coverage(source: list[str], target: list[str]) -> float:
    """Fraction of ``source`` tokens that match some ``target`` token."""
    if not source or not target:
        return 0.0
    hits = sum(1 for token in source if any(tokens_match(token, other) for other in target))
    return hits / len(source)
