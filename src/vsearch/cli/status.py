"""vsearch status command."""

from __future__ import annotations

from pathlib import Path

import typer

from vsearch.cli.output import error, output_json, warn
from vsearch.core.config import get_config
from vsearch.core.exceptions import VSError
from vsearch.db.catalog import CatalogStore


def register(app: typer.Typer) -> None:
    @app.command("status")
    def status_cmd(
        library: str = typer.Option(None, "--library", "-l", help="Library root override"),
        pending_only: bool = typer.Option(False, "--pending", help="Only list videos without a transcript"),
    ) -> None:
        """Scan the library and list catalog rows with transcript status."""
        config = get_config(library_root=Path(library).expanduser() if library else None)
        catalog = CatalogStore(config)
        try:
            catalog.check_root()
        except VSError as e:
            error(str(e))
            raise typer.Exit(1)

        videos = catalog.refresh(force_full=True)
        if not videos:
            warn(f"No videos found under {catalog.root}")
        if pending_only:
            videos = [v for v in videos if not v.is_ready]

        output_json({
            "library_root": str(catalog.root),
            "index_path": str(catalog.index_path),
            "stats": catalog.stats().model_dump(),
            "videos": [
                {
                    "id": v.id,
                    "title": v.title,
                    "duration": v.duration,
                    "category": v.category,
                    "transcript_status": v.transcript_status,
                    "source_available": v.source_available,
                    "last_error": v.last_error,
                }
                for v in videos
            ],
            "total": len(videos),
        })
