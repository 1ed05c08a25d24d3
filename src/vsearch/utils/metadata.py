"""Rule-based metadata derived from video filenames."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from vsearch.core.constants import (
    CATEGORY_RULES,
    DEFAULT_CATEGORY,
    DEFAULT_DIFFICULTY,
    DEFAULT_TOPIC,
    DEFAULT_VERSION_TAG,
    DIFFICULTY_RULES,
    MAX_TAGS,
    MAX_TERM_TAGS,
    TAG_RULES,
    TOPIC_BY_CATEGORY,
    VERSION_ALIASES,
    VERSION_PATTERN,
)

# Download-tool prefixes and resolution markers that leak into filenames
_NOISE_PATTERNS = [
    (re.compile(r"^YTDown\.com_YouTube_", re.I), ""),
    (re.compile(r"^YouTube_", re.I), ""),
    (re.compile(r"_Media_[A-Za-z0-9]{6,20}", re.I), " "),
    (re.compile(r"[_-]+"), " "),
    (re.compile(r"\b\d{3,4}p\b", re.I), " "),
    (re.compile(r"\b\d{3}\b"), " "),
    (re.compile(r"\s+"), " "),
]


@dataclass
class DerivedMetadata:
    title: str
    category: str
    topic: str
    version_tag: str
    difficulty: str
    tags: list[str] = field(default_factory=list)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower())
    return slug.strip("-")[:120]


def title_case(value: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in (value or "").split())


def merge_tags(primary: Iterable[str] | None, secondary: Iterable[str] | None, limit: int = MAX_TAGS) -> list[str]:
    """Concatenate tag lists, dropping blanks and case-insensitive duplicates. First spelling wins."""
    seen: set[str] = set()
    out: list[str] = []
    for tag in [*(primary or []), *(secondary or [])]:
        clean = str(tag).strip() if tag is not None else ""
        if not clean or clean.lower() in seen:
            continue
        seen.add(clean.lower())
        out.append(clean)
        if len(out) >= limit:
            break
    return out


def normalize_basename(base_name: str) -> str:
    normalized = (base_name or "").strip()
    for pattern, repl in _NOISE_PATTERNS:
        normalized = pattern.sub(repl, normalized)
    return normalized.strip()


def _first_match(rules: list[tuple[str, str]], text: str, default: str) -> str:
    for pattern, value in rules:
        if re.search(pattern, text, re.I):
            return value
    return default


def derive_metadata(base_name: str) -> DerivedMetadata:
    """Classify a video by its filename (without extension)."""
    normalized = normalize_basename(base_name)

    tags = [tag for pattern, tag in TAG_RULES if re.search(pattern, normalized, re.I)]

    version_match = re.search(VERSION_PATTERN, normalized, re.I)
    if version_match:
        version_tag = f"Logos {version_match.group(1)}"
    else:
        version_tag = _first_match(VERSION_ALIASES, normalized, DEFAULT_VERSION_TAG)

    category = _first_match(CATEGORY_RULES, normalized, DEFAULT_CATEGORY)
    difficulty = _first_match(DIFFICULTY_RULES, normalized, DEFAULT_DIFFICULTY)
    topic = TOPIC_BY_CATEGORY.get(category, DEFAULT_TOPIC)

    term_tags = [part for part in normalized.split() if len(part) >= 4][:MAX_TERM_TAGS]

    return DerivedMetadata(
        title=title_case(normalized) or (base_name or "").strip(),
        category=category,
        topic=topic,
        version_tag=version_tag,
        difficulty=difficulty,
        tags=merge_tags(tags, term_tags),
    )
