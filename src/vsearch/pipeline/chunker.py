"""Transcript chunking for passage-level retrieval."""

from __future__ import annotations

from dataclasses import dataclass

from vsearch.core.constants import (
    CHUNK_MAX_CHARS,
    CHUNK_MAX_SPAN_SEC,
    CHUNK_MAX_WORDS,
    DEFAULT_MAX_CHUNKS_PER_VIDEO,
    SYNTHETIC_CHUNK_SEC,
)
from vsearch.db.models import VideoRecord
from vsearch.utils.hashing import chunk_key
from vsearch.utils.text import tokenize


@dataclass(frozen=True)
class Chunk:
    key: str
    video_id: str
    start: float
    end: float
    text: str


def _make_chunk(video_id: str, start: float, end: float, text: str) -> Chunk:
    end = max(start, end)
    return Chunk(
        key=chunk_key(video_id, start, end, text),
        video_id=video_id,
        start=round(start, 2),
        end=round(end, 2),
        text=text,
    )


def build_chunks(video: VideoRecord, max_chunks: int = DEFAULT_MAX_CHUNKS_PER_VIDEO) -> list[Chunk]:
    """Group consecutive transcript segments into retrieval-sized passages.

    Segments are accumulated greedily. Before a segment is appended the
    current passage is flushed if adding it would span 55s or more, reach
    165 tokens, or reach 750 characters of segment text (joining spaces
    are not counted); the next passage starts at that segment. A video without segments gets one synthetic passage covering
    its first minute, built from the search document so it stays findable.
    """
    limit = max(1, int(max_chunks))
    segments = [s for s in video.transcript_segments if s.text.strip()]

    if not segments:
        end = min(float(SYNTHETIC_CHUNK_SEC), video.duration_seconds or SYNTHETIC_CHUNK_SEC)
        return [_make_chunk(video.id, 0.0, end, video.search_document())]

    chunks: list[Chunk] = []
    texts: list[str] = []
    start = segments[0].start
    end = segments[0].end
    words = 0
    chars = 0

    for seg in segments:
        text = " ".join(seg.text.split())
        seg_words = len(tokenize(text))
        if texts and (
            seg.end - start >= CHUNK_MAX_SPAN_SEC
            or words + seg_words >= CHUNK_MAX_WORDS
            or chars + len(text) >= CHUNK_MAX_CHARS
        ):
            chunks.append(_make_chunk(video.id, start, end, " ".join(texts)))
            if len(chunks) >= limit:
                return chunks
            texts = []
            start = seg.start
            words = 0
            chars = 0

        texts.append(text)
        end = seg.end
        words += seg_words
        chars += len(text)

    if texts:
        chunks.append(_make_chunk(video.id, start, end, " ".join(texts)))

    return chunks[:limit]
