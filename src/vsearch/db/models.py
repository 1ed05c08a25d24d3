"""Pydantic models for catalog entities and search API payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from vsearch.core.constants import DOCUMENT_TRANSCRIPT_PREVIEW_CHARS, INDEX_VERSION

TranscriptStatus = Literal["pending", "ready", "error"]
SortMode = Literal["relevance", "duration", "title", "newest"]
TranscribeMode = Literal["skip", "auto", "force"]
ConfidenceTier = Literal["low", "medium", "high"]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


# --- Catalog ---


class Segment(BaseModel):
    start: float
    end: float
    text: str


class VideoRecord(BaseModel):
    id: str
    file_name: str = ""
    relative_path: str = ""
    public_url: str = ""
    hosted_url: str = ""
    playback_url: str = ""
    source_available: bool = True
    title: str = ""
    category: str = ""
    topic: str = ""
    version_tag: str = ""
    difficulty: str = ""
    tags: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    duration: str = ""
    transcript_status: TranscriptStatus = "pending"
    transcript_language: str = "unknown"
    transcript_text: str = ""
    transcript_segments: list[Segment] = Field(default_factory=list)
    transcription_updated_at: str = ""
    file_size_bytes: int = 0
    file_mtime_ms: int = 0
    last_error: str = ""
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_ready(self) -> bool:
        return self.transcript_status == "ready" and bool(self.transcript_text)

    @property
    def fingerprint(self) -> str:
        """Cheap staleness signature; changes whenever file or transcript content changes."""
        return ":".join(
            [
                self.id,
                str(self.file_mtime_ms),
                str(self.file_size_bytes),
                self.transcript_status,
                self.transcription_updated_at,
            ]
        )

    def search_document(self) -> str:
        """Text representation used for whole-video embeddings and metadata snippets."""
        preview = self.transcript_text[:DOCUMENT_TRANSCRIPT_PREVIEW_CHARS].strip()
        parts = [
            self.title,
            f"Category: {self.category}",
            f"Topic: {self.topic}",
            f"Difficulty: {self.difficulty}",
            f"Version: {self.version_tag}",
            f"Tags: {', '.join(self.tags)}",
            f"Transcript: {preview}" if preview else "",
        ]
        return "\n".join(p for p in parts if p)


class IndexFile(BaseModel):
    version: int = INDEX_VERSION
    updated_at: str = ""
    videos: list[VideoRecord] = Field(default_factory=list)


class CatalogStats(BaseModel):
    total_videos: int = 0
    transcribed_videos: int = 0
    pending_videos: int = 0
    errored_videos: int = 0
    total_duration_seconds: float = 0.0
    total_duration_hours: float = 0.0

    @property
    def transcript_coverage(self) -> float:
        return self.transcribed_videos / max(1, self.total_videos)


# --- Search request ---


class SearchFilters(BaseModel):
    category: str = "all"
    difficulty: str = "all"
    version_tag: str = "all"
    max_minutes: float = 0.0

    @field_validator("category", "difficulty", "version_tag", mode="before")
    @classmethod
    def _default_all(cls, v: object) -> str:
        text = str(v).strip() if v is not None else ""
        return text or "all"

    @field_validator("max_minutes", mode="before")
    @classmethod
    def _clamp_minutes(cls, v: object) -> float:
        try:
            return _clamp(float(v or 0), 0, 600)
        except (TypeError, ValueError):
            return 0.0


class SearchRequest(BaseModel):
    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort_mode: SortMode = "relevance"
    transcribe_mode: TranscribeMode = "auto"
    refresh_catalog: bool = False
    auto_transcribe_max_minutes: float = 35
    max_auto_transcribe_videos: int | None = None

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, v: object) -> str:
        return str(v).strip() if v is not None else ""

    @model_validator(mode="after")
    def _clamp_limits(self) -> "SearchRequest":
        self.auto_transcribe_max_minutes = _clamp(float(self.auto_transcribe_max_minutes or 35), 5, 240)
        default_videos = 2 if self.transcribe_mode == "force" else 1
        self.max_auto_transcribe_videos = int(
            _clamp(self.max_auto_transcribe_videos or default_videos, 1, 4)
        )
        return self


# --- Search response ---


class SearchResult(BaseModel):
    id: str
    video_id: str
    title: str
    category: str = ""
    topic: str = ""
    difficulty: str = ""
    version_tag: str = ""
    duration: str = ""
    duration_seconds: float = 0.0
    transcript_status: TranscriptStatus = "pending"
    timestamp: str
    timestamp_seconds: float
    end_timestamp: str
    end_seconds: float
    snippet: str
    tags: list[str] = Field(default_factory=list)
    playback_url: str = ""
    hosted_url: str = ""
    source_available: bool = True
    url: str = ""
    match_reason: str = ""
    score: float  # 0-100
    lexical_score: float = 0.0
    semantic_score: float = 0.0


class RelatedVideo(BaseModel):
    id: str
    title: str
    category: str = ""
    topic: str = ""
    duration: str = ""
    difficulty: str = ""
    version_tag: str = ""
    score: float = 0.0
    playback_url: str = ""
    hosted_url: str = ""
    source_available: bool = True
    url: str = ""
    tags: list[str] = Field(default_factory=list)


class ConfidenceDiagnostics(BaseModel):
    top_score: float
    avg_top3_score: float
    term_overlap: float
    transcript_coverage: float
    unique_videos: int
    top_row_count: int


class ConfidenceReport(BaseModel):
    tier: ConfidenceTier
    score: int
    reason_codes: list[str] = Field(default_factory=list)
    summary: str = ""
    diagnostics: ConfidenceDiagnostics


class IngestionItem(BaseModel):
    id: str
    title: str = ""
    duration: str = ""
    error: str = ""
    reason: str = ""


class IngestionReport(BaseModel):
    mode: str = "auto"
    attempted: list[IngestionItem] = Field(default_factory=list)
    completed: list[IngestionItem] = Field(default_factory=list)
    failed: list[IngestionItem] = Field(default_factory=list)
    unavailable: list[IngestionItem] = Field(default_factory=list)


class RecoveryPlan(BaseModel):
    diagnosis: str = ""
    alt_queries: list[str] = Field(default_factory=list)
    expansion_terms: list[str] = Field(default_factory=list)
    strategy: str = ""


class SearchResponse(BaseModel):
    query: str = ""
    stats: CatalogStats
    ingestion: IngestionReport
    filters: SearchFilters
    ranking_mode: str = "none"
    confidence: ConfidenceReport | None = None
    results: list[SearchResult] = Field(default_factory=list)
    related_content: list[RelatedVideo] = Field(default_factory=list)
    guidance: str = ""
    suggested_queries: list[str] = Field(default_factory=list)
    recovery: RecoveryPlan = Field(default_factory=RecoveryPlan)
    no_results_reason: str | None = None
    search_time_ms: int = 0
