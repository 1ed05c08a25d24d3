"""Next-step guidance, recovery passes and related content around a ranked result set."""

from __future__ import annotations

import sys

from vsearch.core.constants import (
    MAX_RECOVERY_RESULTS,
    MAX_RELATED_RESULTS,
    MAX_SUGGESTED_QUERIES,
    RECOVERY_MIN_LEXICAL,
)
from vsearch.db.models import ConfidenceReport, RecoveryPlan, RelatedVideo, SearchFilters, SearchResult
from vsearch.providers.base import LLMProvider
from vsearch.search.ranker import (
    ScoredVideo,
    lexical_score_video,
    metadata_result,
    playback_base_url,
)
from vsearch.utils.playback import timestamped_url
from vsearch.utils.text import tokenize

GUIDANCE_TOP_MATCHES = 6
RELATED_TAG_SAMPLE = 12
RELATED_TAG_BONUS = 0.06
RELATED_SCORE_WEIGHT = 0.8

GUIDANCE_SYSTEM_PROMPT = """\
You are a training librarian assistant. \
Given a user query and retrieved timestamped clips, provide concise learning guidance and practical follow-up searches.

Return strict JSON only, shaped as:
{"guidance": "string", "suggestedQueries": ["string"]}

- Refer to clips by title and timestamp
- If the confidence tier is low, say so plainly and suggest narrower or alternative phrasing
- At most 6 suggested queries
"""

RECOVERY_SYSTEM_PROMPT = """\
You are a search recovery assistant for a library of instructional videos. \
A search returned too few results. Diagnose why and propose alternate phrasings that are likely to match \
the library's titles, topics and categories.

Return strict JSON only, shaped as:
{"diagnosis": "string", "altQueries": ["string"], "expansionTerms": ["string"], "strategy": "string"}

- At most 6 altQueries and 12 expansionTerms
- The strategy is one sentence the user can act on
"""


def _clean_list(value: object, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        text = " ".join(str(item).split()) if item is not None else ""
        if text:
            out.append(text)
    return out[:limit]


def _clean_text(value: object) -> str:
    return " ".join(str(value).split()) if value is not None else ""


def dedupe(values: list[str], limit: int) -> list[str]:
    seen: set[str] = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out[:limit]


def fallback_guidance(query: str, results: list[SearchResult]) -> str:
    top = results[:3]
    if not top:
        return f'No strong matches yet for "{query}". Try broadening your terms and enabling auto-transcription.'
    steps = "  ".join(f"{i + 1}) {r.title} at {r.timestamp}" for i, r in enumerate(top))
    return f"Start with these timestamped clips: {steps}"


def fallback_suggestions(query: str, results: list[SearchResult]) -> list[str]:
    suggestions = []
    if query:
        suggestions += [f"{query} walkthrough", f"{query} step by step"]
    for row in results[:4]:
        if row.topic:
            suggestions.append(f"{row.topic} in Logos")
        if row.category:
            suggestions.append(f"{row.category} workflow")
    return dedupe(suggestions, MAX_SUGGESTED_QUERIES)


def recovery_results(
    ranked: list[ScoredVideo],
    alt_queries: list[str],
    existing: list[SearchResult],
) -> list[SearchResult]:
    """Match each alternate query lexically against the ranked videos; one new 0:00 result per query."""
    seen_ids = {r.video_id for r in existing}
    recovered: list[SearchResult] = []
    for alt in alt_queries:
        terms = tokenize(alt)
        if not terms:
            continue
        scored = sorted(
            ((lexical_score_video(row.video, terms), row.video) for row in ranked),
            key=lambda pair: pair[0],
            reverse=True,
        )
        match = next(
            ((lex, video) for lex, video in scored if lex >= RECOVERY_MIN_LEXICAL and video.id not in seen_ids),
            None,
        )
        if match is None:
            continue
        lexical, video = match
        seen_ids.add(video.id)
        recovered.append(
            metadata_result(
                video,
                lexical,
                f"Recovery pass matched alternate query: {alt}",
                result_id=f"{video.id}:recovery:{len(recovered) + 1}",
            )
        )
        if len(recovered) >= MAX_RECOVERY_RESULTS:
            break
    return recovered


def related_content(ranked: list[ScoredVideo], exclude_ids: set[str], terms: list[str]) -> list[RelatedVideo]:
    related = []
    for row in ranked:
        video = row.video
        if video.id in exclude_ids:
            continue
        tag_text = " ".join(video.tags[:RELATED_TAG_SAMPLE]).lower()
        overlap = sum(1 for t in terms if t in tag_text)
        score = row.score * RELATED_SCORE_WEIGHT + overlap * RELATED_TAG_BONUS
        base = playback_base_url(video)
        related.append(
            RelatedVideo(
                id=video.id,
                title=video.title,
                category=video.category,
                topic=video.topic,
                duration=video.duration,
                difficulty=video.difficulty,
                version_tag=video.version_tag,
                score=round(score * 100, 2),
                playback_url=base,
                hosted_url=video.hosted_url,
                source_available=video.source_available,
                url=timestamped_url(base, 0),
                tags=list(video.tags),
            )
        )
        if len(related) >= MAX_RELATED_RESULTS:
            break
    return related


class GuidanceAdvisor:
    """LLM-backed guidance and recovery. Every call degrades to a deterministic fallback."""

    def __init__(self, llm: LLMProvider | None = None):
        self.llm = llm

    def guidance(
        self,
        query: str,
        confidence: ConfidenceReport | None,
        results: list[SearchResult],
    ) -> tuple[str, list[str]]:
        text = ""
        suggestions: list[str] = []
        if self.llm is not None:
            payload = {
                "query": query,
                "confidence": confidence.model_dump() if confidence else None,
                "topMatches": [
                    {
                        "title": r.title,
                        "timestamp": r.timestamp,
                        "category": r.category,
                        "topic": r.topic,
                        "difficulty": r.difficulty,
                    }
                    for r in results[:GUIDANCE_TOP_MATCHES]
                ],
            }
            try:
                reply = self.llm.complete_json(GUIDANCE_SYSTEM_PROMPT, payload)
                text = _clean_text(reply.get("guidance"))
                suggestions = _clean_list(reply.get("suggestedQueries"), MAX_SUGGESTED_QUERIES)
            except Exception as e:
                print(f"  Warning: guidance generation failed, using fallback: {e}", file=sys.stderr)
                text, suggestions = "", []

        return (
            text or fallback_guidance(query, results),
            suggestions or fallback_suggestions(query, results),
        )

    def recover(
        self,
        query: str,
        filters: SearchFilters,
        result_count: int,
        top_videos: list[ScoredVideo],
    ) -> RecoveryPlan:
        if self.llm is None:
            return RecoveryPlan()
        payload = {
            "query": query,
            "filters": filters.model_dump(),
            "currentResultCount": result_count,
            "topMetadata": [
                {
                    "title": row.video.title,
                    "category": row.video.category,
                    "topic": row.video.topic,
                    "difficulty": row.video.difficulty,
                    "versionTag": row.video.version_tag,
                }
                for row in top_videos[:GUIDANCE_TOP_MATCHES]
            ],
        }
        try:
            reply = self.llm.complete_json(RECOVERY_SYSTEM_PROMPT, payload)
        except Exception as e:
            print(f"  Warning: recovery pass failed: {e}", file=sys.stderr)
            return RecoveryPlan()
        return RecoveryPlan(
            diagnosis=_clean_text(reply.get("diagnosis")),
            alt_queries=_clean_list(reply.get("altQueries"), MAX_SUGGESTED_QUERIES),
            expansion_terms=_clean_list(reply.get("expansionTerms"), 12),
            strategy=_clean_text(reply.get("strategy")),
        )
