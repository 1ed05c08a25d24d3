"""Catalog store: filesystem discovery merged with the persisted index."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from typing import Callable

from vsearch.core.config import VSConfig
from vsearch.core.constants import MAX_PERSISTED_SEGMENTS, MAX_TRANSCRIPT_SEGMENTS
from vsearch.core.exceptions import CatalogError, VideoNotFoundError
from vsearch.db.index import read_index, utc_now_iso, write_index
from vsearch.db.models import CatalogStats, Segment, TranscriptStatus, VideoRecord
from vsearch.pipeline.ffmpeg import probe_duration_seconds
from vsearch.providers.base import Transcript
from vsearch.utils.hashing import catalog_key
from vsearch.utils.metadata import derive_metadata, merge_tags, slugify
from vsearch.utils.playback import derive_hosted_url
from vsearch.utils.subtitles import derive_segments_from_text, load_sidecar_transcript, sanitize_segments
from vsearch.utils.timecode import seconds_to_duration
from vsearch.utils.video import discover_videos


def _normalize_status(text: str, previous: str) -> TranscriptStatus:
    if text:
        return "ready"
    return "error" if previous == "error" else "pending"


class CatalogStore:
    """In-memory table of VideoRecords with a throttled `refresh` entry point.

    The filesystem is authoritative for existence, duration and file stats;
    the persisted index for ids, transcripts, tags and explicit metadata.
    """

    def __init__(
        self,
        config: VSConfig,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.root = Path(config.library_root).expanduser().resolve()
        self.index_path = Path(config.resolved_index_path).expanduser()
        self._clock = clock
        self._lock = threading.RLock()
        self._videos: list[VideoRecord] = []
        self._last_refresh_ms: float | None = None
        # Set while the on-disk index lags the in-memory table
        self._unsaved = False

    @property
    def videos(self) -> list[VideoRecord]:
        with self._lock:
            return list(self._videos)

    # --- Hydration ---

    def refresh(self, force_full: bool = False, max_staleness_ms: int | None = None) -> list[VideoRecord]:
        """Re-scan the library unless the last sweep is younger than the staleness window."""
        staleness = self.config.max_staleness_ms if max_staleness_ms is None else max_staleness_ms
        with self._lock:
            now_ms = self._clock() * 1000
            if (
                not force_full
                and self._last_refresh_ms is not None
                and (now_ms - self._last_refresh_ms) < staleness
            ):
                return list(self._videos)

            if self._unsaved and self._videos:
                persisted = list(self._videos)
            else:
                persisted = read_index(self.index_path) or list(self._videos)
            rows = self._reconcile(persisted)
            rows.sort(key=lambda r: (r.title.casefold(), r.id))

            self._videos = rows
            self._last_refresh_ms = now_ms
            self._unsaved = not write_index(self.index_path, rows)
            return list(rows)

    def _reconcile(self, persisted: list[VideoRecord]) -> list[VideoRecord]:
        by_path = {r.relative_path: r for r in persisted if r.relative_path}
        by_id = {r.id: r for r in persisted if r.id}

        files = discover_videos(self.root)
        discovered_paths = {self._relative(f) for f in files}
        discovered: list[VideoRecord] = []
        used_ids: set[str] = set()
        # Rows still at their indexed path keep their ids; new files must not claim them
        reserved = {by_path[p].id for p in discovered_paths if p in by_path}

        for file_path in files:
            rel = self._relative(file_path)
            fallback_id = slugify(file_path.stem) or slugify(file_path.name)
            prev = by_path.get(rel)
            if prev is None:
                candidate = by_id.get(fallback_id)
                # Only adopt an id match when that row's own file is gone (i.e. it moved)
                if (
                    candidate is not None
                    and candidate.relative_path not in discovered_paths
                    and candidate.id not in reserved
                    and candidate.id not in used_ids
                ):
                    prev = candidate
            if prev is not None and prev.id not in used_ids:
                video_id = prev.id
            else:
                video_id = self._unique_id(fallback_id or "video", used_ids | reserved)
            row = self._hydrate_file(file_path, rel, video_id, prev)
            used_ids.add(row.id)
            discovered.append(row)

        orphans = [
            self._hydrate_orphan(r)
            for r in persisted
            if r.relative_path not in discovered_paths and r.id not in used_ids
        ]
        return discovered + orphans

    def _relative(self, file_path: Path) -> str:
        return file_path.relative_to(self.root).as_posix()

    def _hydrate_file(
        self,
        file_path: Path,
        rel: str,
        video_id: str,
        prev: VideoRecord | None,
    ) -> VideoRecord:
        try:
            stat = file_path.stat()
            size, mtime_ms = int(stat.st_size), int(stat.st_mtime * 1000)
        except OSError:
            size, mtime_ms = 0, 0

        stats_changed = prev is None or prev.file_size_bytes != size or prev.file_mtime_ms != mtime_ms
        if stats_changed or not prev.duration_seconds:
            duration = probe_duration_seconds(file_path)
        else:
            duration = prev.duration_seconds

        text = prev.transcript_text if prev else ""
        segments = prev.transcript_segments[:MAX_PERSISTED_SEGMENTS] if prev else []
        language = prev.transcript_language if prev else "unknown"
        previous_status = prev.transcript_status if prev else "pending"
        last_error = prev.last_error if prev else ""
        touched = stats_changed

        if not text:
            sidecar = load_sidecar_transcript(file_path, duration)
            if sidecar:
                text, segments, language = sidecar.text, sidecar.segments, sidecar.language
                previous_status, last_error = "pending", ""
                touched = True

        if text and not segments:
            segments = derive_segments_from_text(text, duration)

        derived = derive_metadata(file_path.stem)

        hosted_url = derive_hosted_url(
            rel,
            file_path.name,
            base_url=self.config.video_public_base_url,
            path_mode=self.config.video_public_path_mode,
            strip_prefix=self.config.video_public_strip_prefix,
            explicit=prev.hosted_url if prev else "",
        )
        public_url = (prev.public_url if prev else "") or f"/{rel}"
        now = utc_now_iso()

        return VideoRecord(
            id=video_id,
            file_name=file_path.name,
            relative_path=rel,
            public_url=public_url,
            hosted_url=hosted_url,
            playback_url=(prev.playback_url if prev else "") or hosted_url or public_url,
            source_available=True,
            title=(prev.title if prev else "") or derived.title or file_path.name,
            category=(prev.category if prev else "") or derived.category,
            topic=(prev.topic if prev else "") or derived.topic,
            version_tag=(prev.version_tag if prev else "") or derived.version_tag,
            difficulty=(prev.difficulty if prev else "") or derived.difficulty,
            tags=merge_tags(prev.tags if prev else [], derived.tags),
            duration_seconds=float(duration or 0),
            duration=seconds_to_duration(duration),
            transcript_status=_normalize_status(text, previous_status),
            transcript_language=language or "unknown",
            transcript_text=text,
            transcript_segments=segments,
            transcription_updated_at=prev.transcription_updated_at if prev else "",
            file_size_bytes=size,
            file_mtime_ms=mtime_ms,
            last_error=last_error,
            created_at=(prev.created_at if prev else "") or now,
            updated_at=now if touched or not prev else (prev.updated_at or now),
        )

    def _hydrate_orphan(self, prev: VideoRecord) -> VideoRecord:
        """A persisted row whose file is gone: keep its history, flag the source unavailable."""
        base = Path(prev.file_name or prev.relative_path or prev.id).stem
        derived = derive_metadata(base)
        segments = prev.transcript_segments
        if prev.transcript_text and not segments:
            segments = derive_segments_from_text(prev.transcript_text, prev.duration_seconds)
        hosted_url = derive_hosted_url(
            prev.relative_path,
            prev.file_name,
            base_url=self.config.video_public_base_url,
            path_mode=self.config.video_public_path_mode,
            strip_prefix=self.config.video_public_strip_prefix,
            explicit=prev.hosted_url,
        )
        public_url = prev.public_url or (f"/{prev.relative_path}" if prev.relative_path else "")
        return prev.model_copy(
            update={
                "source_available": False,
                "hosted_url": hosted_url,
                "public_url": public_url,
                "playback_url": prev.playback_url or hosted_url or public_url,
                "title": prev.title or derived.title or prev.id,
                "category": prev.category or derived.category,
                "topic": prev.topic or derived.topic,
                "version_tag": prev.version_tag or derived.version_tag,
                "difficulty": prev.difficulty or derived.difficulty,
                "tags": merge_tags(prev.tags, derived.tags),
                "duration": prev.duration or seconds_to_duration(prev.duration_seconds),
                "transcript_segments": segments,
                "transcript_status": _normalize_status(prev.transcript_text, prev.transcript_status),
            }
        )

    @staticmethod
    def _unique_id(base: str, used: set[str]) -> str:
        if base not in used:
            return base
        n = 2
        while f"{base}-{n}" in used:
            n += 1
        return f"{base}-{n}"

    # --- Lookups ---

    def check_root(self) -> None:
        """Raise CatalogError when the configured library root is not a directory."""
        if not self.root.is_dir():
            raise CatalogError(f"Library root is not a directory: {self.root}")

    def get(self, video_id: str) -> VideoRecord:
        with self._lock:
            for row in self._videos:
                if row.id == video_id.strip():
                    return row
        raise VideoNotFoundError(f"Video not found: {video_id}")

    def stats(self) -> CatalogStats:
        with self._lock:
            rows = list(self._videos)
        ready = sum(1 for r in rows if r.transcript_status == "ready")
        errored = sum(1 for r in rows if r.transcript_status == "error")
        total_sec = sum(r.duration_seconds for r in rows)
        return CatalogStats(
            total_videos=len(rows),
            transcribed_videos=ready,
            pending_videos=max(0, len(rows) - ready - errored),
            errored_videos=errored,
            total_duration_seconds=round(total_sec, 2),
            total_duration_hours=round(total_sec / 3600, 2),
        )

    def fingerprint(self, namespace: str = "") -> str:
        """Catalog-wide staleness key; dependents compare it instead of re-reading content."""
        with self._lock:
            return catalog_key([r.fingerprint for r in self._videos], namespace)

    # --- Mutations (ingestion results) ---

    def _replace(self, video_id: str, update: dict) -> VideoRecord:
        with self._lock:
            for i, row in enumerate(self._videos):
                if row.id == video_id:
                    updated = row.model_copy(update=update)
                    self._videos[i] = updated
                    self._unsaved = not write_index(self.index_path, self._videos)
                    return updated
        raise VideoNotFoundError(f"Video not found: {video_id}")

    def set_transcript(self, video_id: str, transcript: Transcript) -> VideoRecord:
        row = self.get(video_id)
        text = " ".join((transcript.text or "").split())
        duration = float(transcript.duration_sec or 0) or row.duration_seconds
        segments: list[Segment] = sanitize_segments(
            [{"start": s.start_sec, "end": s.end_sec, "text": s.text} for s in transcript.segments],
            MAX_TRANSCRIPT_SEGMENTS,
        ) or derive_segments_from_text(text, duration)
        now = utc_now_iso()
        return self._replace(
            row.id,
            {
                "transcript_text": text,
                "transcript_segments": segments,
                "transcript_language": transcript.language or "unknown",
                "transcript_status": _normalize_status(text, row.transcript_status),
                "transcription_updated_at": now,
                "last_error": "",
                "duration_seconds": duration,
                "duration": seconds_to_duration(duration),
                "updated_at": now,
            },
        )

    def set_transcription_error(self, video_id: str, message: str) -> VideoRecord:
        """Record a failed attempt. Existing transcript text (if any) is left untouched."""
        row = self.get(video_id)
        status: TranscriptStatus = "ready" if row.transcript_text else "error"
        if status == "ready":
            print(f"  Warning: re-transcription of {row.id} failed; keeping previous transcript.", file=sys.stderr)
        return self._replace(
            row.id,
            {
                "transcript_status": status,
                "last_error": message.strip() or "Transcription failed",
                "updated_at": utc_now_iso(),
            },
        )
