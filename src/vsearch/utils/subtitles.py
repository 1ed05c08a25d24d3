"""Sidecar transcript parsing (plain text, SRT, VTT, JSON)."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from vsearch.core.constants import (
    MAX_TRANSCRIPT_SEGMENTS,
    MIN_SECONDS_PER_DERIVED_SEGMENT,
    SIDECAR_SUFFIXES,
)
from vsearch.db.models import Segment
from vsearch.utils.timecode import subtitle_time_to_seconds

_CUE_RE = re.compile(r"(\d{2}:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}[,.]\d{3})")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class SidecarTranscript:
    text: str
    segments: list[Segment] = field(default_factory=list)
    language: str = "unknown"


def _clean(value: object) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _to_float(value: object) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def sanitize_segments(raw: object, max_segments: int = MAX_TRANSCRIPT_SEGMENTS) -> list[Segment]:
    """Coerce loosely shaped segment dicts into ordered Segments; drop empty text."""
    if not isinstance(raw, list):
        return []
    out: list[Segment] = []
    for item in raw[:max_segments]:
        if isinstance(item, Segment):
            item = item.model_dump()
        if not isinstance(item, dict):
            continue
        text = _clean(item.get("text"))
        if not text:
            continue
        start = _to_float(item.get("start"))
        end = _to_float(item.get("end")) or start
        out.append(Segment(start=round(start, 2), end=round(max(end, start), 2), text=text))
    return out


def derive_segments_from_text(text: str, duration_seconds: float) -> list[Segment]:
    """Spread sentences evenly over the duration when no timing information exists."""
    clean = _clean(text)
    if not clean:
        return []
    parts = [p.strip() for p in _SENTENCE_SPLIT_RE.split(clean) if p.strip()] or [clean]
    total = max(float(duration_seconds or 0), len(parts) * MIN_SECONDS_PER_DERIVED_SEGMENT)
    step = total / len(parts)
    return [
        Segment(start=round(i * step, 2), end=round((i + 1) * step, 2), text=part)
        for i, part in enumerate(parts)
    ]


def parse_subtitles(raw: str) -> list[Segment]:
    """Parse SRT or WebVTT cue blocks. Cue numbers, headers and styling lines are skipped."""
    lines = raw.replace("\r", "").split("\n")
    segments: list[dict] = []
    idx = 0
    while idx < len(lines):
        match = _CUE_RE.search(lines[idx].strip())
        idx += 1
        if not match:
            continue
        start = subtitle_time_to_seconds(match.group(1))
        end = subtitle_time_to_seconds(match.group(2))
        text_lines: list[str] = []
        while idx < len(lines) and lines[idx].strip():
            text_lines.append(lines[idx].strip())
            idx += 1
        segments.append({"start": start, "end": end, "text": " ".join(text_lines)})
    return sanitize_segments(segments)


def parse_sidecar_file(path: Path, duration_seconds: float) -> SidecarTranscript | None:
    """Parse one sidecar file. Returns None if unreadable, empty, or of unknown shape."""
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    if not raw.strip():
        return None

    name = path.name.lower()
    if name.endswith(".txt"):
        text = _clean(raw)
        return SidecarTranscript(text=text, segments=derive_segments_from_text(text, duration_seconds))

    if name.endswith((".srt", ".vtt")):
        segments = parse_subtitles(raw)
        return SidecarTranscript(text=" ".join(s.text for s in segments), segments=segments)

    if name.endswith(".json"):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if isinstance(data, list):
            segments = sanitize_segments(data)
            return SidecarTranscript(text=" ".join(s.text for s in segments), segments=segments)
        if not isinstance(data, dict):
            return None
        text = _clean(data.get("text") or data.get("transcript") or data.get("content"))
        segments = sanitize_segments(data.get("segments") or data.get("captions") or [])
        if not segments:
            duration = _to_float(data.get("duration_seconds") or data.get("durationSeconds")) or duration_seconds
            segments = derive_segments_from_text(text, duration)
        if not text:
            text = " ".join(s.text for s in segments)
        return SidecarTranscript(
            text=text,
            segments=segments,
            language=_clean(data.get("language")) or "unknown",
        )

    return None


def load_sidecar_transcript(video_path: Path, duration_seconds: float) -> SidecarTranscript | None:
    """Find the first sidecar next to the video that yields non-empty text."""
    base = video_path.stem
    for suffix in SIDECAR_SUFFIXES:
        candidate = video_path.with_name(f"{base}{suffix}")
        if not candidate.is_file():
            continue
        loaded = parse_sidecar_file(candidate, duration_seconds)
        if loaded and loaded.text:
            return loaded
    return None
