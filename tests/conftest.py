"""Shared fakes and fixtures: in-process providers, library layout helpers."""

from __future__ import annotations

import threading
import zlib
from pathlib import Path
from unittest.mock import patch

import pytest

from vsearch.core.config import VSConfig
from vsearch.core.exceptions import APIError
from vsearch.db.catalog import CatalogStore
from vsearch.db.models import Segment, VideoRecord
from vsearch.providers.base import (
    EmbedderProvider,
    LLMProvider,
    Transcript,
    TranscriberProvider,
    TranscriptSegment,
)
from vsearch.utils.text import tokenize

DIM = 64


class FakeEmbedder(EmbedderProvider):
    """Hashed bag-of-words vectors, so cosine similarity follows shared vocabulary."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[list[str]] = []

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise APIError("embedding service unavailable", provider="fake")
        vectors = []
        for text in texts:
            vec = [0.0] * DIM
            for token in tokenize(text):
                vec[zlib.crc32(token.encode()) % DIM] += 1.0
            vectors.append(vec)
        return vectors


class FakeTranscriber(TranscriberProvider):
    """Returns one segment per audio window; optionally blocks until released."""

    def __init__(
        self,
        text: str = "Open the passage guide and run a word study on the Greek term.",
        language: str = "english",
        gate: threading.Event | None = None,
        fail: bool = False,
    ):
        self.text = text
        self.language = language
        self.gate = gate
        self.fail = fail
        self.calls: list[Path] = []
        self._lock = threading.Lock()

    def transcribe(self, audio_path: Path) -> Transcript:
        with self._lock:
            self.calls.append(audio_path)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise APIError("upstream 500", provider="fake", status_code=500)
        return Transcript(
            text=self.text,
            segments=[TranscriptSegment(start_sec=0.0, end_sec=530.0, text=self.text)] if self.text else [],
            language=self.language,
        )


class FakeLLM(LLMProvider):
    def __init__(self, replies: dict[str, dict] | None = None, fail: bool = False):
        self.replies = replies or {}
        self.fail = fail
        self.calls: list[tuple[str, dict]] = []

    def complete_json(self, system_prompt: str, payload: dict) -> dict:
        self.calls.append((system_prompt, payload))
        if self.fail:
            raise APIError("chat unavailable", provider="fake")
        key = "recovery" if "recovery" in system_prompt.lower() else "guidance"
        return self.replies.get(key, {})


def make_video(
    video_id: str,
    title: str,
    *,
    text: str = "",
    segments: list[tuple[float, float, str]] | None = None,
    duration: float = 600.0,
    **extra,
) -> VideoRecord:
    segs = [Segment(start=s, end=e, text=t) for s, e, t in (segments or [])]
    if text and not segs:
        segs = [Segment(start=0.0, end=min(30.0, duration), text=text)]
    fields = {
        "id": video_id,
        "title": title,
        "file_name": f"{video_id}.mp4",
        "relative_path": f"{video_id}.mp4",
        "public_url": f"/{video_id}.mp4",
        "playback_url": f"/{video_id}.mp4",
        "transcript_text": text or " ".join(s.text for s in segs),
        "transcript_segments": segs,
        "transcript_status": "ready" if (text or segs) else "pending",
        "duration_seconds": duration,
    }
    fields.update(extra)
    return VideoRecord(**fields)


def touch_video(root: Path, name: str, size: int = 256) -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


@pytest.fixture()
def library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture()
def config(library: Path) -> VSConfig:
    return VSConfig(
        library_root=library,
        api_key="sk-test",
        video_public_base_url="",
        max_staleness_ms=20_000,
    )


@pytest.fixture()
def probe():
    """Every file probes as ten minutes long unless a test says otherwise."""
    with patch("vsearch.db.catalog.probe_duration_seconds", return_value=600.0) as mock_probe:
        yield mock_probe


@pytest.fixture()
def catalog(config: VSConfig, probe) -> CatalogStore:
    return CatalogStore(config)
