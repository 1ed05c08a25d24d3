"""Transcription pipeline: audio extraction, chunked transcription, catalog write-back."""

from __future__ import annotations

import math
import shutil
import sys
import tempfile
import threading
from concurrent.futures import Future
from pathlib import Path

from vsearch.core.config import VSConfig
from vsearch.core.constants import (
    AUDIO_BITRATE_KBPS,
    DEFAULT_AUTO_TRANSCRIBE_MAX_MINUTES,
    FALLBACK_AUDIO_BITRATE_KBPS,
    MAX_AUDIO_CHUNK_BYTES,
    MAX_TRANSCRIBE_CHUNK_SEC,
    MIN_TRANSCRIBE_CHUNK_SEC,
)
from vsearch.core.exceptions import IngestError, SourceUnavailableError
from vsearch.db.catalog import CatalogStore
from vsearch.db.models import IngestionItem, IngestionReport, TranscribeMode, VideoRecord
from vsearch.pipeline.ffmpeg import extract_audio_chunk, probe_duration_seconds
from vsearch.providers.base import Transcript, TranscriberProvider, TranscriptSegment
from vsearch.providers.openai import transcriber_for

UNAVAILABLE_REASON = "Source video unavailable on this server."


def clamp_chunk_seconds(value: int | float | None) -> int:
    try:
        seconds = int(value or 0)
    except (TypeError, ValueError):
        seconds = 0
    if seconds <= 0:
        return 540
    return max(MIN_TRANSCRIBE_CHUNK_SEC, min(MAX_TRANSCRIBE_CHUNK_SEC, seconds))


def plan_audio_chunks(duration_sec: float, chunk_sec: int) -> list[tuple[float, float]]:
    """(start, duration) windows covering the whole soundtrack.

    An unknown duration gets a single full-length window; ffmpeg simply
    stops at end of stream.
    """
    chunk_sec = clamp_chunk_seconds(chunk_sec)
    if duration_sec <= 0:
        return [(0.0, float(chunk_sec))]
    count = math.ceil(max(duration_sec, 1.0) / chunk_sec)
    windows = []
    for i in range(count):
        start = float(i * chunk_sec)
        windows.append((start, float(max(1.0, min(chunk_sec, duration_sec - start)))))
    return windows


def _item(video: VideoRecord, *, error: str = "", reason: str = "") -> IngestionItem:
    return IngestionItem(id=video.id, title=video.title, duration=video.duration, error=error, reason=reason)


class IngestionPipeline:
    """Turns pending catalog rows into transcribed ones.

    At most one transcription per video id is in flight; concurrent callers
    for the same id wait on the same Future and share its outcome.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        config: VSConfig,
        transcriber: TranscriberProvider | None = None,
    ):
        self.catalog = catalog
        self.config = config
        self.transcriber = transcriber if transcriber is not None else transcriber_for(config)
        self._lock = threading.Lock()
        self._inflight: dict[str, Future] = {}

    # --- Single video ---

    def ensure_transcript_ready(self, video_id: str) -> VideoRecord:
        video = self.catalog.get(video_id)
        if video.is_ready:
            return video

        with self._lock:
            future = self._inflight.get(video.id)
            owner = future is None
            if owner:
                # Another caller may have finished between the first read and the lock
                video = self.catalog.get(video.id)
                if video.is_ready:
                    return video
                future = Future()
                self._inflight[video.id] = future

        if not owner:
            return future.result()

        try:
            result = self._transcribe(video)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._inflight.pop(video.id, None)

    def _source_path(self, video: VideoRecord) -> Path:
        if not video.source_available or not video.relative_path:
            raise SourceUnavailableError(f"{UNAVAILABLE_REASON} ({video.id})")
        path = self.catalog.root / video.relative_path
        if not path.is_file():
            raise SourceUnavailableError(f"{UNAVAILABLE_REASON} ({video.id})")
        return path

    def _transcribe(self, video: VideoRecord) -> VideoRecord:
        path = self._source_path(video)
        if self.transcriber is None:
            raise IngestError(f"Transcription disabled (provider={self.config.provider or 'current'}).")

        try:
            duration = video.duration_seconds or probe_duration_seconds(path)
            transcript = self.transcribe_video_file(path, duration, label=video.title or video.id)
            if not transcript.text.strip():
                raise IngestError("Transcription returned no text")
        except Exception as e:
            self.catalog.set_transcription_error(video.id, str(e))
            raise IngestError(f"Transcription failed for {video.id}: {e}") from e

        print(f"  Transcribed {video.id}: {len(transcript.segments)} segments.", file=sys.stderr)
        return self.catalog.set_transcript(video.id, transcript)

    def transcribe_video_file(self, path: Path, duration_sec: float, *, label: str = "") -> Transcript:
        """Transcribe a video window by window and stitch the results onto one timeline."""
        if self.transcriber is None:
            raise IngestError("No transcriber configured")

        windows = plan_audio_chunks(duration_sec, self.config.transcribe_chunk_seconds)
        work_dir = Path(tempfile.mkdtemp(prefix="vsearch_audio_"))
        texts: list[str] = []
        segments: list[TranscriptSegment] = []
        language = "unknown"

        try:
            for i, (start, length) in enumerate(windows):
                print(f"  Transcribing {label or path.name} [{i + 1}/{len(windows)}]...", file=sys.stderr)
                audio_path = work_dir / f"chunk_{i:03d}.mp3"
                extract_audio_chunk(path, audio_path, start, length, AUDIO_BITRATE_KBPS)
                if audio_path.stat().st_size > MAX_AUDIO_CHUNK_BYTES:
                    print(
                        f"  Audio chunk exceeds {MAX_AUDIO_CHUNK_BYTES // (1024 * 1024)}MB; "
                        f"re-extracting at {FALLBACK_AUDIO_BITRATE_KBPS}kbps.",
                        file=sys.stderr,
                    )
                    extract_audio_chunk(path, audio_path, start, length, FALLBACK_AUDIO_BITRATE_KBPS)

                part = self.transcriber.transcribe(audio_path)
                audio_path.unlink(missing_ok=True)

                if part.text.strip():
                    texts.append(part.text.strip())
                for seg in part.segments:
                    segments.append(
                        TranscriptSegment(
                            start_sec=round(start + seg.start_sec, 2),
                            end_sec=round(start + seg.end_sec, 2),
                            text=seg.text.strip(),
                        )
                    )
                if language == "unknown" and part.language and part.language != "unknown":
                    language = part.language
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        return Transcript(text=" ".join(texts), segments=segments, language=language, duration_sec=duration_sec)

    # --- Batches ---

    def _select(
        self,
        videos: list[VideoRecord],
        mode: TranscribeMode,
        auto_max_minutes: float,
        max_videos: int,
    ) -> tuple[list[VideoRecord], list[VideoRecord]]:
        """Pick the shortest pending videos. Returns (candidates, unavailable)."""
        pending = [v for v in videos if not v.is_ready]
        unavailable = [v for v in pending if not v.source_available]
        candidates = sorted((v for v in pending if v.source_available), key=lambda v: (v.duration_seconds, v.id))
        if mode == "auto":
            limit = auto_max_minutes * 60
            candidates = [v for v in candidates if v.duration_seconds <= limit]
        return candidates[: max(1, int(max_videos))], unavailable

    def transcribe_missing(
        self,
        videos: list[VideoRecord],
        mode: TranscribeMode = "auto",
        auto_max_minutes: float = DEFAULT_AUTO_TRANSCRIBE_MAX_MINUTES,
        max_videos: int = 1,
    ) -> IngestionReport:
        """Transcribe a bounded number of pending videos. Failures are reported, never raised."""
        report = IngestionReport(mode=mode)
        if mode == "skip":
            return report

        candidates, unavailable = self._select(videos, mode, auto_max_minutes, max_videos)
        report.unavailable = [_item(v, reason=UNAVAILABLE_REASON) for v in unavailable]

        if self.transcriber is None:
            if candidates:
                print(f"  Transcription disabled (provider={self.config.provider or 'current'}).", file=sys.stderr)
            return report

        for video in candidates:
            report.attempted.append(_item(video))
            try:
                self.ensure_transcript_ready(video.id)
            except SourceUnavailableError:
                report.unavailable.append(_item(video, reason=UNAVAILABLE_REASON))
            except IngestError as e:
                print(f"  Warning: {e}", file=sys.stderr)
                report.failed.append(_item(video, error=str(e)))
            else:
                report.completed.append(_item(video))
        return report

    def ingest_next(self, max_videos: int = 1, *, refresh: bool = True, dry_run: bool = False) -> IngestionReport:
        """Batch entry point: transcribe the shortest pending videos regardless of length."""
        videos = self.catalog.refresh(force_full=refresh)
        if dry_run:
            candidates, unavailable = self._select(videos, "force", 0, max_videos)
            return IngestionReport(
                mode="dry_run",
                attempted=[_item(v) for v in candidates],
                unavailable=[_item(v, reason=UNAVAILABLE_REASON) for v in unavailable],
            )
        return self.transcribe_missing(videos, "force", max_videos=max_videos)
