"""Search facade: catalog refresh, on-demand transcription, hybrid ranking, confidence and guidance."""

from __future__ import annotations

import sys
import time

from vsearch.core.config import VSConfig
from vsearch.core.constants import MAX_SUGGESTED_QUERIES, RECOVERY_RESULT_THRESHOLD
from vsearch.db.catalog import CatalogStore
from vsearch.db.models import (
    IngestionReport,
    SearchFilters,
    SearchRequest,
    SearchResponse,
    VideoRecord,
)
from vsearch.pipeline.chunker import build_chunks
from vsearch.pipeline.ingest import IngestionPipeline
from vsearch.providers.base import EmbedderProvider, LLMProvider
from vsearch.providers.openai import embedder_for, llm_for
from vsearch.search.confidence import assess, build_uncertainty_prefix, should_prefix_guidance
from vsearch.search.guidance import GuidanceAdvisor, dedupe, recovery_results, related_content
from vsearch.search.ranker import HybridRanker
from vsearch.search.vector_cache import VectorCache
from vsearch.utils.text import tokenize

STRATEGY_RESULT_THRESHOLD = 5


def apply_filters(videos: list[VideoRecord], filters: SearchFilters) -> list[VideoRecord]:
    """Facet filter. Facets compare case-insensitively; "all" disables one; max_minutes 0 means no limit."""
    category = filters.category.lower()
    difficulty = filters.difficulty.lower()
    version_tag = filters.version_tag.lower()
    out = []
    for video in videos:
        if category != "all" and video.category.lower() != category:
            continue
        if difficulty != "all" and video.difficulty.lower() != difficulty:
            continue
        if version_tag != "all" and video.version_tag.lower() != version_tag:
            continue
        if filters.max_minutes > 0 and video.duration_seconds / 60 > filters.max_minutes:
            continue
        out.append(video)
    return out


class VideoSearchEngine:
    def __init__(
        self,
        config: VSConfig,
        catalog: CatalogStore,
        *,
        embedder: EmbedderProvider | None = None,
        llm: LLMProvider | None = None,
        pipeline: IngestionPipeline | None = None,
    ):
        self.config = config
        self.catalog = catalog
        self.vectors = VectorCache(embedder) if embedder is not None else None
        self.advisor = GuidanceAdvisor(llm)
        self.pipeline = pipeline if pipeline is not None else IngestionPipeline(catalog, config)
        self.ranker = HybridRanker(config.ranking)

    @classmethod
    def from_config(cls, config: VSConfig) -> "VideoSearchEngine":
        catalog = CatalogStore(config)
        return cls(
            config,
            catalog,
            embedder=embedder_for(config),
            llm=llm_for(config),
            pipeline=IngestionPipeline(catalog, config),
        )

    def _empty_response(
        self,
        request: SearchRequest,
        reason: str,
        guidance: str,
        ingestion: IngestionReport | None = None,
        started: float = 0.0,
    ) -> SearchResponse:
        return SearchResponse(
            query=request.query,
            stats=self.catalog.stats(),
            ingestion=ingestion or IngestionReport(mode=request.transcribe_mode),
            filters=request.filters,
            guidance=guidance,
            no_results_reason=reason,
            search_time_ms=int((time.time() - started) * 1000) if started else 0,
        )

    def search(self, request: SearchRequest) -> SearchResponse:
        started = time.time()
        query = request.query
        if not query:
            return self._empty_response(request, "empty_query", "Enter a search query.", started=started)

        self.catalog.refresh(force_full=request.refresh_catalog)
        rows = apply_filters(self.catalog.videos, request.filters)
        if not rows:
            return self._empty_response(
                request,
                "no_matching_videos",
                "No videos are available for the current filter combination.",
                started=started,
            )

        ingestion = self.pipeline.transcribe_missing(
            rows,
            request.transcribe_mode,
            request.auto_transcribe_max_minutes,
            request.max_auto_transcribe_videos or 1,
        )
        if ingestion.completed:
            # New transcripts change documents and passages
            if self.vectors is not None:
                self.vectors.invalidate()
            rows = apply_filters(self.catalog.videos, request.filters)
            if not rows:
                return self._empty_response(
                    request,
                    "no_matching_videos",
                    "Filters currently exclude every discovered video.",
                    ingestion=ingestion,
                    started=started,
                )

        # Stage A vectors: query + whole-catalog documents
        query_vector: list[float] | None = None
        video_vectors: dict[str, list[float]] | None = None
        if self.vectors is not None:
            try:
                query_vector = self.vectors.embed_query(query)
                video_vectors = self.vectors.video_vectors(
                    self.catalog.videos, self.catalog.fingerprint(self.config.embed_model)
                )
            except Exception as e:
                print(f"  Warning: semantic ranking unavailable, using lexical fallback: {e}", file=sys.stderr)
                query_vector, video_vectors = None, None

        terms = tokenize(query)
        scored = self.ranker.score_videos(rows, terms, query_vector, video_vectors)
        ranked = self.ranker.rank(scored, request.sort_mode)
        top = self.ranker.top(ranked, scored)

        # Stage B vectors: only the passages of the top videos
        chunk_vectors: dict[str, list[float]] | None = None
        semantic_enabled = bool(query_vector) and video_vectors is not None
        if semantic_enabled:
            chunks = [c for row in top for c in build_chunks(row.video, self.config.ranking.max_chunks_per_video)]
            try:
                chunk_vectors = self.vectors.chunk_vectors(chunks)
            except Exception as e:
                print(f"  Warning: passage embeddings unavailable, using lexical fallback: {e}", file=sys.stderr)
                semantic_enabled = False

        scored_chunks = self.ranker.score_chunks(top, terms, query_vector, chunk_vectors)
        outcome = self.ranker.finish(terms, ranked, top, scored_chunks, semantic_enabled)
        results = outcome.results

        recovery = None
        if len(results) < RECOVERY_RESULT_THRESHOLD:
            recovery = self.advisor.recover(query, request.filters, len(results), top)
            extra = recovery_results(ranked or scored, recovery.alt_queries, results)
            results = (results + extra)[: self.config.ranking.max_results]

        related = related_content(ranked, {row.video.id for row in top}, terms)
        stats = self.catalog.stats()
        confidence = assess(
            query,
            results,
            stats,
            outcome.semantic_enabled,
            top_row_count=len(top),
            thresholds=self.config.confidence,
        )

        guidance, suggestions = self.advisor.guidance(query, confidence, results)
        if should_prefix_guidance(confidence):
            guidance = build_uncertainty_prefix(confidence, guidance)
        if recovery is not None:
            if recovery.alt_queries:
                suggestions = dedupe(suggestions + recovery.alt_queries, MAX_SUGGESTED_QUERIES)
            if recovery.strategy and len(results) < STRATEGY_RESULT_THRESHOLD:
                guidance = f"{guidance} {recovery.strategy}".strip()

        response = SearchResponse(
            query=query,
            stats=stats,
            ingestion=ingestion,
            filters=request.filters,
            ranking_mode=outcome.ranking_mode,
            confidence=confidence,
            results=results,
            related_content=related,
            guidance=guidance,
            suggested_queries=suggestions,
            search_time_ms=int((time.time() - started) * 1000),
        )
        if recovery is not None:
            response.recovery = recovery
        return response
