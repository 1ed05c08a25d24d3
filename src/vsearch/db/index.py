"""Persisted catalog index: one JSON file mirroring the in-memory VideoRecord table."""

from __future__ import annotations

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from vsearch.db.models import IndexFile, VideoRecord


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def read_index(path: Path) -> list[VideoRecord]:
    """Load and validate the index file.

    A missing file, unreadable file, malformed JSON or any row that fails
    validation yields an empty list. Partially valid files are never used.
    """
    if not path.exists():
        return []
    try:
        raw = path.read_text(encoding="utf-8")
        return IndexFile.model_validate_json(raw).videos
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        print(f"  Warning: ignoring unreadable catalog index {path}: {e}", file=sys.stderr)
        return []


def write_index(path: Path, videos: list[VideoRecord]) -> bool:
    """Atomically rewrite the index file. Returns False (after a warning) if the write failed."""
    payload = IndexFile(updated_at=utc_now_iso(), videos=videos)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".index-", suffix=".json", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload.model_dump_json(indent=2) + "\n")
        os.replace(tmp_name, path)
        tmp_name = None
        return True
    except OSError as e:
        print(f"  Warning: could not persist catalog index {path}: {e}", file=sys.stderr)
        return False
    finally:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)
