"""Hybrid lexical + vector ranking over videos and their transcript passages."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from vsearch.core.config import RankingWeights
from vsearch.core.constants import FALLBACK_SNIPPET_CHARS, MAX_FALLBACK_RESULTS, SNIPPET_CHARS, SYNTHETIC_CHUNK_SEC
from vsearch.db.models import SearchResult, SortMode, VideoRecord
from vsearch.pipeline.chunker import Chunk, build_chunks
from vsearch.utils.playback import timestamped_url
from vsearch.utils.text import tokenize
from vsearch.utils.timecode import format_timestamp

FALLBACK_REASON = "Matched by title/tags metadata while transcript indexing is still in progress."

# Per-field weights for whole-video lexical scoring; a term hitting every field scores 4.35
_FIELD_WEIGHTS = (
    ("title", 1.10),
    ("tags", 0.85),
    ("topic", 0.80),
    ("category", 0.55),
    ("body", 0.40),
    ("difficulty", 0.30),
    ("version_tag", 0.35),
)
_LEXICAL_NORMALIZER = 2.45


def _video_fields(video: VideoRecord) -> dict[str, str]:
    return {
        "title": video.title.lower(),
        "tags": " ".join(video.tags).lower(),
        "topic": video.topic.lower(),
        "category": video.category.lower(),
        "body": video.transcript_text.lower(),
        "difficulty": video.difficulty.lower(),
        "version_tag": video.version_tag.lower(),
    }


def lexical_score_video(video: VideoRecord, terms: list[str]) -> float:
    """Weighted substring hits across a video's fields, normalized to 0-1."""
    if not terms:
        return 0.0
    fields = _video_fields(video)
    score = 0.0
    for term in terms:
        for name, weight in _FIELD_WEIGHTS:
            if term in fields[name]:
                score += weight
    return min(1.0, score / max(1.0, len(terms) * _LEXICAL_NORMALIZER))


def lexical_score_text(text: str, terms: list[str]) -> float:
    """Fraction of query terms that occur in the text."""
    if not terms:
        return 0.0
    lower = (text or "").lower()
    if not lower:
        return 0.0
    return min(1.0, sum(1 for t in terms if t in lower) / len(terms))


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b:
        return 0.0
    n = min(len(a), len(b))
    dot = sum(a[i] * b[i] for i in range(n))
    norm_a = math.sqrt(sum(a[i] * a[i] for i in range(n)))
    norm_b = math.sqrt(sum(b[i] * b[i] for i in range(n)))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def playback_base_url(video: VideoRecord) -> str:
    return video.hosted_url or video.playback_url or video.public_url


def build_match_reason(semantic: float, lexical: float, topic: str, terms: list[str], weights: RankingWeights) -> str:
    reasons = []
    if semantic >= weights.strong_semantic:
        reasons.append("strong semantic match")
    if lexical >= weights.direct_keyword:
        reasons.append("direct keyword overlap")
    topic_lower = topic.lower()
    if any(t in topic_lower for t in terms):
        reasons.append("topic alignment")
    if not reasons:
        reasons.append("contextual relevance")
    return ", ".join(reasons)


def make_result(
    video: VideoRecord,
    *,
    start: float,
    end: float,
    snippet: str,
    score: float,
    match_reason: str,
    result_id: str | None = None,
    lexical: float = 0.0,
    semantic: float = 0.0,
) -> SearchResult:
    """Assemble a result row. `score` is on a 0-1 scale and reported as 0-100."""
    base = playback_base_url(video)
    return SearchResult(
        id=result_id or f"{video.id}:{math.floor(start)}",
        video_id=video.id,
        title=video.title,
        category=video.category,
        topic=video.topic,
        difficulty=video.difficulty,
        version_tag=video.version_tag,
        duration=video.duration,
        duration_seconds=video.duration_seconds,
        transcript_status=video.transcript_status,
        timestamp=format_timestamp(start),
        timestamp_seconds=round(start, 2),
        end_timestamp=format_timestamp(end),
        end_seconds=round(end, 2),
        snippet=" ".join(snippet.split())[:SNIPPET_CHARS],
        tags=list(video.tags),
        playback_url=base,
        hosted_url=video.hosted_url,
        source_available=video.source_available,
        url=timestamped_url(base, start),
        match_reason=match_reason,
        score=round(max(0.0, score) * 100, 2),
        lexical_score=round(lexical, 4),
        semantic_score=round(semantic, 4),
    )


def metadata_result(video: VideoRecord, score: float, match_reason: str, result_id: str | None = None) -> SearchResult:
    """A 0:00 result built from the video's own text, for videos without usable passages."""
    end = min(float(SYNTHETIC_CHUNK_SEC), video.duration_seconds)
    snippet = " ".join((video.transcript_text or video.search_document()).split())[:FALLBACK_SNIPPET_CHARS]
    return make_result(
        video,
        start=0.0,
        end=end,
        snippet=snippet,
        score=score,
        match_reason=match_reason,
        result_id=result_id or f"{video.id}:0",
    )


@dataclass
class ScoredVideo:
    video: VideoRecord
    score: float
    semantic: float
    lexical: float


@dataclass
class ScoredChunk:
    chunk: Chunk
    scored_video: ScoredVideo
    score: float
    chunk_score: float
    semantic: float
    lexical: float


@dataclass
class RankingOutcome:
    results: list[SearchResult] = field(default_factory=list)
    ranked_videos: list[ScoredVideo] = field(default_factory=list)
    top_videos: list[ScoredVideo] = field(default_factory=list)
    semantic_enabled: bool = False
    terms: list[str] = field(default_factory=list)

    @property
    def ranking_mode(self) -> str:
        return "semantic+lexical" if self.semantic_enabled else "lexical-fallback"


def sort_videos(rows: list[ScoredVideo], sort_mode: SortMode) -> list[ScoredVideo]:
    if sort_mode == "duration":
        return sorted(rows, key=lambda r: r.video.duration_seconds)
    if sort_mode == "title":
        return sorted(rows, key=lambda r: r.video.title.casefold())
    if sort_mode == "newest":
        return sorted(rows, key=lambda r: r.video.file_mtime_ms, reverse=True)
    return sorted(rows, key=lambda r: r.score, reverse=True)


class HybridRanker:
    """Two-stage ranking.

    Stage A scores whole videos (semantic similarity of the search document
    plus weighted lexical hits and a readiness bonus) and keeps the top few.
    Stage B scores transcript passages of those videos and blends each
    passage score with its video's score. Results are capped per video.

    Vector inputs are optional: without them every semantic term is zero
    and the lexical-only weights apply.
    """

    def __init__(self, weights: RankingWeights | None = None):
        self.weights = weights or RankingWeights()

    def score_videos(
        self,
        candidates: list[VideoRecord],
        terms: list[str],
        query_vector: list[float] | None,
        video_vectors: dict[str, list[float]] | None,
    ) -> list[ScoredVideo]:
        w = self.weights
        semantic_enabled = bool(query_vector) and video_vectors is not None
        rows = []
        for video in candidates:
            semantic = (
                max(0.0, cosine_similarity(query_vector, video_vectors.get(video.id, [])))
                if semantic_enabled
                else 0.0
            )
            lexical = lexical_score_video(video, terms)
            bonus = w.ready_bonus if video.transcript_status == "ready" else w.not_ready_penalty
            if semantic_enabled:
                score = semantic * w.semantic_weight + lexical * w.lexical_weight + bonus
            else:
                score = lexical * w.lexical_only_weight + bonus * w.lexical_only_bonus_scale
            rows.append(ScoredVideo(video=video, score=score, semantic=semantic, lexical=lexical))
        return rows

    def score_chunks(
        self,
        top_videos: list[ScoredVideo],
        terms: list[str],
        query_vector: list[float] | None,
        chunk_vectors: dict[str, list[float]] | None,
    ) -> list[ScoredChunk]:
        w = self.weights
        semantic_enabled = bool(query_vector) and chunk_vectors is not None
        scored = []
        for row in top_videos:
            for chunk in build_chunks(row.video, w.max_chunks_per_video):
                semantic = (
                    max(0.0, cosine_similarity(query_vector, chunk_vectors.get(chunk.key, [])))
                    if semantic_enabled
                    else 0.0
                )
                lexical = lexical_score_text(chunk.text, terms)
                if semantic_enabled:
                    chunk_score = semantic * w.chunk_semantic_weight + lexical * w.chunk_lexical_weight
                else:
                    chunk_score = lexical
                score = row.score * w.video_blend_weight + chunk_score * w.chunk_blend_weight
                scored.append(
                    ScoredChunk(
                        chunk=chunk,
                        scored_video=row,
                        score=score,
                        chunk_score=chunk_score,
                        semantic=semantic,
                        lexical=lexical,
                    )
                )
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored

    def select_results(self, scored_chunks: list[ScoredChunk], terms: list[str]) -> list[SearchResult]:
        """Walk passages best-first, keeping at most N per video and M overall."""
        w = self.weights
        per_video: dict[str, int] = {}
        results: list[SearchResult] = []
        for row in scored_chunks:
            if row.chunk_score <= w.min_chunk_score:
                continue
            video = row.scored_video.video
            count = per_video.get(video.id, 0)
            if count >= w.max_results_per_video:
                continue
            per_video[video.id] = count + 1
            results.append(
                make_result(
                    video,
                    start=row.chunk.start,
                    end=row.chunk.end,
                    snippet=row.chunk.text,
                    score=row.score,
                    match_reason=build_match_reason(row.semantic, row.lexical, video.topic, terms, w),
                    lexical=row.lexical,
                    semantic=row.semantic,
                )
            )
            if len(results) >= w.max_results:
                break
        return results

    def fallback_results(self, top_videos: list[ScoredVideo]) -> list[SearchResult]:
        return [
            metadata_result(row.video, row.score, FALLBACK_REASON)
            for row in top_videos[:MAX_FALLBACK_RESULTS]
        ]

    def score(
        self,
        query: str,
        candidates: list[VideoRecord],
        *,
        sort_mode: SortMode = "relevance",
        query_vector: list[float] | None = None,
        video_vectors: dict[str, list[float]] | None = None,
        chunk_vectors: dict[str, list[float]] | None = None,
    ) -> RankingOutcome:
        """Rank candidates in one pass.

        `chunk_vectors` must cover the passages of the returned top videos;
        callers that fetch vectors lazily use `score_videos`, `top` and
        `score_chunks` separately (see VideoSearchEngine).
        """
        terms = tokenize(query)
        scored = self.score_videos(candidates, terms, query_vector, video_vectors)
        ranked = self.rank(scored, sort_mode)
        top = self.top(ranked, scored)
        semantic_enabled = bool(query_vector) and video_vectors is not None and chunk_vectors is not None
        chunks = self.score_chunks(top, terms, query_vector, chunk_vectors if semantic_enabled else None)
        return self.finish(terms, ranked, top, chunks, semantic_enabled)

    def rank(self, scored: list[ScoredVideo], sort_mode: SortMode) -> list[ScoredVideo]:
        kept = [r for r in scored if r.score > self.weights.min_video_score]
        return sort_videos(kept, sort_mode)

    def top(self, ranked: list[ScoredVideo], scored: list[ScoredVideo]) -> list[ScoredVideo]:
        if ranked:
            return ranked[: self.weights.top_videos]
        # Everything fell under the floor: keep the best candidates so the caller still gets clips
        return sorted(scored, key=lambda r: r.score, reverse=True)[: self.weights.top_videos]

    def finish(
        self,
        terms: list[str],
        ranked: list[ScoredVideo],
        top: list[ScoredVideo],
        scored_chunks: list[ScoredChunk],
        semantic_enabled: bool,
    ) -> RankingOutcome:
        results = self.select_results(scored_chunks, terms)
        if not results:
            results = self.fallback_results(top)
        return RankingOutcome(
            results=results,
            ranked_videos=ranked,
            top_videos=top,
            semantic_enabled=semantic_enabled,
            terms=terms,
        )
