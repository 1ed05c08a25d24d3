"""vsearch info command."""

from __future__ import annotations

from pathlib import Path

import typer

from vsearch.cli.output import error, output_json
from vsearch.core.config import get_config
from vsearch.core.exceptions import VideoNotFoundError
from vsearch.db.catalog import CatalogStore


def register(app: typer.Typer) -> None:
    @app.command("info")
    def info_cmd(
        video_id: str = typer.Argument(..., help="Video ID to inspect"),
        library: str = typer.Option(None, "--library", "-l", help="Library root override"),
    ) -> None:
        """Show the catalog record for a video (transcript segments omitted)."""
        config = get_config(library_root=Path(library).expanduser() if library else None)
        catalog = CatalogStore(config)
        catalog.refresh()

        try:
            video = catalog.get(video_id)
        except VideoNotFoundError:
            error(f"Video not found: {video_id}")
            raise typer.Exit(1)

        data = video.model_dump(exclude={"transcript_segments"})
        data["segment_count"] = len(video.transcript_segments)
        output_json(data)
