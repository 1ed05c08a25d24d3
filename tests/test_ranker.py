"""Tests for hybrid ranking: lexical scoring, fusion, diversity and degradation."""

from __future__ import annotations

import pytest

from vsearch.core.config import RankingWeights
from vsearch.pipeline.chunker import build_chunks
from vsearch.search.ranker import (
    FALLBACK_REASON,
    HybridRanker,
    cosine_similarity,
    lexical_score_text,
    lexical_score_video,
)
from vsearch.utils.text import tokenize

from conftest import FakeEmbedder, make_video


def test_tokenize() -> None:
    assert tokenize("What's the Greek-word STUDY? a") == ["what's", "the", "greek", "word", "study"]
    assert tokenize("   ") == []


def test_lexical_score_video_field_weights() -> None:
    video = make_video("v", "Greek Word Study", category="", topic="", difficulty="", version_tag="")
    assert lexical_score_video(video, ["greek"]) == pytest.approx(1.10 / 2.45)
    assert lexical_score_video(video, []) == 0.0

    rich = make_video(
        "r",
        "Greek",
        text="greek greek",
        tags=["Greek"],
        topic="Greek",
        category="Greek",
        difficulty="Greek",
        version_tag="Greek",
    )
    assert lexical_score_video(rich, ["greek"]) == 1.0


def test_lexical_score_text_is_term_fraction() -> None:
    assert lexical_score_text("open the passage guide", ["passage", "guide", "sermon"]) == pytest.approx(2 / 3)
    assert lexical_score_text("", ["x"]) == 0.0


def test_cosine_similarity() -> None:
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == 0.0
    assert cosine_similarity([], [1.0]) == 0.0
    assert cosine_similarity([0, 0], [1, 1]) == 0.0


def _vectors(videos, query: str):
    embedder = FakeEmbedder()
    qv = embedder.embed([query])[0]
    video_vectors = dict(zip([v.id for v in videos], embedder.embed([v.search_document() for v in videos])))
    chunks = [c for v in videos for c in build_chunks(v)]
    chunk_vectors = dict(zip([c.key for c in chunks], embedder.embed([c.text for c in chunks])))
    return qv, video_vectors, chunk_vectors


def test_semantic_ranking_prefers_matching_video() -> None:
    a = make_video("a", "Word Study Basics", text="Run a word study on any Greek lemma from the passage guide.")
    b = make_video("b", "Printing Layouts", text="Adjust margins before you print your notes.")
    qv, vv, cv = _vectors([a, b], "word study")

    outcome = HybridRanker().score("word study", [a, b], query_vector=qv, video_vectors=vv, chunk_vectors=cv)

    assert outcome.ranking_mode == "semantic+lexical"
    assert outcome.results[0].video_id == "a"
    top = outcome.results[0]
    assert top.id == "a:0"
    assert top.timestamp == "0:00"
    assert 0 < top.score <= 100
    assert "direct keyword overlap" in top.match_reason


def test_lexical_fallback_without_vectors() -> None:
    a = make_video("a", "Word Study Basics", text="Run a word study on a Greek lemma.")
    b = make_video("b", "Printing Layouts", text="Adjust margins.")

    outcome = HybridRanker().score("word study", [a, b])

    assert outcome.ranking_mode == "lexical-fallback"
    assert outcome.semantic_enabled is False
    assert [r.video_id for r in outcome.results] == ["a"]
    assert outcome.results[0].semantic_score == 0.0


def test_metadata_fallback_when_no_passage_matches() -> None:
    # Title matches, transcript does not: passages score zero, video-level representative returned
    a = make_video("a", "Sermon Outline", text="Drag the blocks into order.")
    outcome = HybridRanker().score("sermon", [a])

    assert len(outcome.results) == 1
    row = outcome.results[0]
    assert row.match_reason == FALLBACK_REASON
    assert row.timestamp == "0:00"
    assert row.id == "a:0"
    assert len(row.snippet) <= 320


def test_nonempty_candidates_never_yield_empty_results() -> None:
    videos = [make_video(f"v{i}", f"Unrelated {i}") for i in range(3)]
    outcome = HybridRanker().score("zzz qqq", videos)
    # Every row fell under the floor, yet the best candidates still come back
    assert outcome.ranked_videos == []
    assert len(outcome.results) == 3


def test_diversity_caps() -> None:
    segments = [(i * 60.0, i * 60.0 + 30.0, f"greek lemma study part {i}") for i in range(10)]
    videos = [make_video(f"v{n}", f"Greek Video {n}", segments=segments) for n in range(6)]

    outcome = HybridRanker().score("greek lemma", videos)

    assert len(outcome.results) == 12
    per_video: dict[str, int] = {}
    for r in outcome.results:
        per_video[r.video_id] = per_video.get(r.video_id, 0) + 1
    assert max(per_video.values()) == 3
    assert len({r.id for r in outcome.results}) == 12


def test_results_sorted_by_score_in_relevance_mode() -> None:
    a = make_video("a", "Greek Lemma Study", text="greek lemma study")
    b = make_video("b", "Greek Notes", text="greek notes only")
    outcome = HybridRanker().score("greek lemma study", [a, b])
    scores = [r.score for r in outcome.results]
    assert scores == sorted(scores, reverse=True)
    assert outcome.results[0].video_id == "a"


@pytest.mark.parametrize(
    "mode,expected",
    [
        ("duration", ["short", "mid", "long"]),
        ("title", ["long", "mid", "short"]),
        ("newest", ["mid", "short", "long"]),
    ],
)
def test_sort_modes(mode: str, expected: list[str]) -> None:
    videos = [
        make_video("long", "Alpha greek", text="greek", duration=900, file_mtime_ms=1),
        make_video("short", "Charlie greek", text="greek", duration=60, file_mtime_ms=2),
        make_video("mid", "Bravo greek", text="greek", duration=300, file_mtime_ms=3),
    ]
    outcome = HybridRanker().score("greek", videos, sort_mode=mode)
    assert [r.video.id for r in outcome.ranked_videos] == expected


def test_top_videos_limit() -> None:
    videos = [make_video(f"v{i}", f"Greek {i}", text="greek") for i in range(12)]
    outcome = HybridRanker().score("greek", videos)
    assert len(outcome.top_videos) == 8
    assert len(outcome.ranked_videos) == 12


def test_weights_are_tunable() -> None:
    videos = [make_video(f"v{i}", f"Greek {i}", text="greek greek") for i in range(5)]
    ranker = HybridRanker(RankingWeights(max_results=2, max_results_per_video=1))
    assert len(ranker.score("greek", videos).results) == 2


def test_timestamped_urls() -> None:
    v = make_video(
        "yt",
        "Greek",
        segments=[(0.0, 10.0, "intro"), (75.4, 90.0, "greek lemma")],
        hosted_url="https://www.youtube.com/watch?v=abc",
    )
    outcome = HybridRanker().score("greek lemma", [v])
    row = outcome.results[0]
    assert row.timestamp_seconds == 75.4
    assert row.timestamp == "1:15"
    assert row.url == "https://www.youtube.com/watch?v=abc&t=75s"
    assert row.id == "yt:75"
