"""Query and transcript tokenization shared by chunking and ranking."""

from __future__ import annotations

import re

_NON_WORD_RE = re.compile(r"[^a-z0-9\s']")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens; punctuation splits words and single characters are dropped."""
    cleaned = _NON_WORD_RE.sub(" ", (text or "").lower())
    return [t for t in cleaned.split() if len(t) > 1]
