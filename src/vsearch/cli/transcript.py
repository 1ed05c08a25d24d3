"""vsearch transcript command — output transcript in VTT/SRT/text."""

from __future__ import annotations

from pathlib import Path

import typer

from vsearch.cli.output import error, output_text
from vsearch.core.config import get_config
from vsearch.core.exceptions import VideoNotFoundError
from vsearch.db.catalog import CatalogStore


def _split_time(secs: float) -> tuple[int, int, int, int]:
    total_ms = int(round(max(0.0, secs) * 1000))
    h, rem = divmod(total_ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms = divmod(rem, 1000)
    return h, m, s, ms


def _fmt_vtt_time(secs: float) -> str:
    h, m, s, ms = _split_time(secs)
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def _fmt_srt_time(secs: float) -> str:
    h, m, s, ms = _split_time(secs)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def register(app: typer.Typer) -> None:
    @app.command("transcript")
    def transcript_cmd(
        video_id: str = typer.Argument(..., help="Video ID"),
        format: str = typer.Option("vtt", "--format", "-f", help="Output format: vtt, srt, text"),
        library: str = typer.Option(None, "--library", "-l", help="Library root override"),
    ) -> None:
        """Output transcript for a video in VTT, SRT, or plain text."""
        config = get_config(library_root=Path(library).expanduser() if library else None)
        catalog = CatalogStore(config)
        catalog.refresh()

        try:
            video = catalog.get(video_id)
        except VideoNotFoundError:
            error(f"Video not found: {video_id}")
            raise typer.Exit(1)

        segments = video.transcript_segments
        if not video.transcript_text:
            error(f"No transcript found for video: {video_id}")
            raise typer.Exit(1)

        if format == "vtt":
            lines = ["WEBVTT", ""]
            for seg in segments:
                lines.append(f"{_fmt_vtt_time(seg.start)} --> {_fmt_vtt_time(seg.end)}")
                lines.append(seg.text)
                lines.append("")
            output_text("\n".join(lines))

        elif format == "srt":
            lines: list[str] = []
            for i, seg in enumerate(segments, 1):
                lines.append(str(i))
                lines.append(f"{_fmt_srt_time(seg.start)} --> {_fmt_srt_time(seg.end)}")
                lines.append(seg.text)
                lines.append("")
            output_text("\n".join(lines))

        elif format == "text":
            output_text(video.transcript_text)

        else:
            error(f"Unknown format: {format}. Use vtt, srt, or text.")
            raise typer.Exit(1)
