"""vsearch ingest command."""

from __future__ import annotations

from pathlib import Path

import typer

from vsearch.cli.output import error, output_json, progress
from vsearch.core.config import get_config
from vsearch.core.exceptions import VSError
from vsearch.db.catalog import CatalogStore
from vsearch.pipeline.ingest import IngestionPipeline


def register(app: typer.Typer) -> None:
    @app.command("ingest")
    def ingest(
        video_id: str = typer.Argument(None, help="Transcribe this video; omit to take the next pending ones"),
        max_videos: int = typer.Option(1, "--next", "-n", help="How many pending videos to transcribe"),
        dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be transcribed"),
        no_refresh: bool = typer.Option(False, "--no-refresh", help="Skip the full catalog re-scan"),
        library: str = typer.Option(None, "--library", "-l", help="Library root override"),
    ) -> None:
        """Transcribe library videos and store the transcripts in the catalog index."""
        config = get_config(library_root=Path(library).expanduser() if library else None)
        catalog = CatalogStore(config)
        pipeline = IngestionPipeline(catalog, config)

        if video_id:
            catalog.refresh(force_full=not no_refresh)
            try:
                video = catalog.get(video_id)
                if dry_run:
                    output_json({"status": "dry_run", "video_id": video.id, "transcript_status": video.transcript_status})
                    return
                progress(f"Ingesting: {video.title or video.id}")
                video = pipeline.ensure_transcript_ready(video.id)
            except VSError as e:
                error(str(e))
                raise typer.Exit(1)
            output_json({
                "status": "complete",
                "video_id": video.id,
                "transcript_language": video.transcript_language,
                "segments": len(video.transcript_segments),
            })
            return

        report = pipeline.ingest_next(max_videos, refresh=not no_refresh, dry_run=dry_run)
        output_json(report.model_dump())
        if report.failed:
            raise typer.Exit(1)
