"""End-to-end search flow over a temporary library with in-process providers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from vsearch.core.config import VSConfig
from vsearch.db.catalog import CatalogStore
from vsearch.db.models import SearchFilters, SearchRequest
from vsearch.pipeline.ingest import IngestionPipeline
from vsearch.search.engine import VideoSearchEngine, apply_filters

from conftest import FakeEmbedder, FakeLLM, FakeTranscriber, make_video, touch_video


def _library(root: Path, videos: dict[str, str]) -> None:
    """Create videos with plain-text sidecar transcripts (empty text means no sidecar)."""
    for name, text in videos.items():
        touch_video(root, f"{name}.mp4")
        if text:
            (root / f"{name}.txt").write_text(text)


def _engine(catalog: CatalogStore, config: VSConfig, *, embedder=None, llm=None, transcriber=None) -> VideoSearchEngine:
    return VideoSearchEngine(
        config,
        catalog,
        embedder=embedder,
        llm=llm,
        pipeline=IngestionPipeline(catalog, config, transcriber or FakeTranscriber()),
    )


def test_word_study_query_finds_the_right_clip(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(
        library,
        {
            "Logos Word Study Basics": "Open the passage guide and run a word study on the Greek lemma.",
            "Printing Layouts": "",
        },
    )
    engine = _engine(catalog, config, embedder=FakeEmbedder())

    response = engine.search(SearchRequest(query="word study", transcribe_mode="skip"))

    assert response.no_results_reason is None
    assert response.ranking_mode == "semantic+lexical"
    top = response.results[0]
    assert top.video_id == "logos-word-study-basics"
    assert top.transcript_status == "ready"
    assert top.timestamp == "0:00"
    assert top.url.endswith("#t=0")
    assert response.confidence is not None
    assert response.stats.total_videos == 2
    assert response.stats.transcribed_videos == 1
    assert response.stats.pending_videos == 1
    assert response.guidance
    assert response.suggested_queries


def test_empty_query(catalog: CatalogStore, config: VSConfig) -> None:
    response = _engine(catalog, config).search(SearchRequest(query="   "))
    assert response.no_results_reason == "empty_query"
    assert response.results == []
    assert response.confidence is None


def test_filters_exclude_everything(catalog: CatalogStore, config: VSConfig, library: Path, probe) -> None:
    probe.return_value = 1200.0
    _library(library, {"Sermon Outline": "Drag the blocks.", "Greek Lemma": "Open the lemma report."})
    transcriber = FakeTranscriber()

    response = _engine(catalog, config, transcriber=transcriber).search(
        SearchRequest(query="sermon", filters=SearchFilters(max_minutes=10))
    )

    assert response.no_results_reason == "no_matching_videos"
    assert response.results == []
    assert response.guidance == "No videos are available for the current filter combination."
    assert transcriber.calls == []


def test_embedder_failure_falls_back_to_lexical(catalog: CatalogStore, config: VSConfig, library: Path, capsys) -> None:
    _library(library, {"Sermon Outline": "Build a sermon outline from your notes."})
    engine = _engine(catalog, config, embedder=FakeEmbedder(fail=True))

    response = engine.search(SearchRequest(query="sermon outline"))

    assert response.ranking_mode == "lexical-fallback"
    assert response.results
    assert "semantic_ranker_unavailable" in response.confidence.reason_codes
    assert "lexical fallback" in capsys.readouterr().err


def test_recovery_pass_adds_results_and_suggestions(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(
        library,
        {
            "Printing Layouts": "Adjust the page margins before printing.",
            "Sermon Outline": "Drag the blocks into order.",
        },
    )
    llm = FakeLLM(
        {
            "recovery": {
                "diagnosis": "Query is about print settings.",
                "altQueries": ["sermon outline", "  "],
                "expansionTerms": ["homiletics"],
                "strategy": "Search by the feature name shown in the menu.",
            }
        }
    )

    response = _engine(catalog, config, llm=llm).search(SearchRequest(query="margins"))

    ids = [r.id for r in response.results]
    assert ids[0].startswith("printing-layouts:")
    assert "sermon-outline:recovery:1" in ids
    recovered = response.results[ids.index("sermon-outline:recovery:1")]
    assert recovered.match_reason == "Recovery pass matched alternate query: sermon outline"
    assert response.recovery.alt_queries == ["sermon outline"]
    assert response.recovery.expansion_terms == ["homiletics"]
    assert "sermon outline" in response.suggested_queries
    assert len(response.suggested_queries) <= 6
    assert response.guidance.endswith("Search by the feature name shown in the menu.")


def test_llm_failure_uses_fallback_guidance(catalog: CatalogStore, config: VSConfig, library: Path, capsys) -> None:
    _library(library, {"Sermon Outline": "Build a sermon outline from your notes."})

    response = _engine(catalog, config, llm=FakeLLM(fail=True)).search(SearchRequest(query="sermon outline"))

    assert response.results
    assert "Start with these timestamped clips" in response.guidance
    assert "sermon outline walkthrough" in response.suggested_queries
    assert response.recovery.alt_queries == []
    assert "Warning:" in capsys.readouterr().err


def test_low_confidence_prefixes_guidance(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(library, {"Printing Layouts": "Adjust margins."})
    llm = FakeLLM({"guidance": {"guidance": "Try the layout panel.", "suggestedQueries": ["page layout"]}})

    response = _engine(catalog, config, llm=llm).search(SearchRequest(query="hebrew syntax"))

    assert response.confidence.tier == "low"
    assert response.guidance.startswith("Search confidence is low")
    assert "Try the layout panel." in response.guidance
    assert response.suggested_queries[0] == "page layout"


def test_search_transcribes_pending_video(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(library, {"Passage Guide Tour": ""})
    transcriber = FakeTranscriber()

    def extract(video_path, output_path, start, length, bitrate=32):
        output_path.write_bytes(b"\x00" * 16)
        return output_path

    with patch("vsearch.pipeline.ingest.extract_audio_chunk", side_effect=extract):
        response = _engine(catalog, config, transcriber=transcriber).search(
            SearchRequest(query="greek term", transcribe_mode="auto")
        )

    assert [i.id for i in response.ingestion.completed] == ["passage-guide-tour"]
    assert response.results[0].video_id == "passage-guide-tour"
    assert "greek term" in response.results[0].snippet.lower()
    assert catalog.get("passage-guide-tour").transcript_status == "ready"


def test_new_transcript_resets_embedding_caches(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(library, {"Passage Guide Tour": "", "Sermon Outline": "Build a sermon outline from your notes."})
    engine = _engine(catalog, config, embedder=FakeEmbedder(), transcriber=FakeTranscriber())
    engine.search(SearchRequest(query="sermon outline", transcribe_mode="skip"))
    assert engine.vectors.chunk_cache_size > 0

    def extract(video_path, output_path, start, length, bitrate=32):
        output_path.write_bytes(b"\x00" * 16)
        return output_path

    with patch("vsearch.pipeline.ingest.extract_audio_chunk", side_effect=extract), patch.object(
        engine.vectors, "invalidate", wraps=engine.vectors.invalidate
    ) as invalidate:
        response = engine.search(SearchRequest(query="greek term", transcribe_mode="auto"))
        engine.search(SearchRequest(query="greek term", transcribe_mode="skip"))

    assert [i.id for i in response.ingestion.completed] == ["passage-guide-tour"]
    invalidate.assert_called_once_with()


def test_skip_mode_never_transcribes(catalog: CatalogStore, config: VSConfig, library: Path) -> None:
    _library(library, {"Passage Guide Tour": ""})
    transcriber = FakeTranscriber()

    response = _engine(catalog, config, transcriber=transcriber).search(
        SearchRequest(query="passage guide", transcribe_mode="skip")
    )

    assert transcriber.calls == []
    assert response.ingestion.attempted == []
    # Pending video still reachable through its metadata
    assert response.results[0].video_id == "passage-guide-tour"


@pytest.mark.parametrize(
    "filters,expected",
    [
        (SearchFilters(), ["a", "b", "c"]),
        (SearchFilters(category="sermon prep"), ["a"]),
        (SearchFilters(difficulty="ADVANCED"), ["b"]),
        (SearchFilters(version_tag="Logos 9"), ["c"]),
        (SearchFilters(max_minutes=5), ["a", "c"]),
    ],
)
def test_apply_filters(filters: SearchFilters, expected: list[str]) -> None:
    videos = [
        make_video("a", "A", category="Sermon Prep", difficulty="Beginner", version_tag="Logos 10", duration=120),
        make_video("b", "B", category="Research", difficulty="Advanced", version_tag="Logos 10", duration=900),
        make_video("c", "C", category="Research", difficulty="Beginner", version_tag="Logos 9", duration=300),
    ]
    assert [v.id for v in apply_filters(videos, filters)] == expected
