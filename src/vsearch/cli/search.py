"""vsearch search command."""

from __future__ import annotations

from pathlib import Path

import typer

from vsearch.cli.output import error, output_json
from vsearch.core.config import get_config
from vsearch.core.constants import DEFAULT_AUTO_TRANSCRIBE_MAX_MINUTES, SORT_MODES, TRANSCRIBE_MODES
from vsearch.core.exceptions import VSError
from vsearch.db.models import SearchFilters, SearchRequest
from vsearch.search.engine import VideoSearchEngine


def register(app: typer.Typer) -> None:
    @app.command("search")
    def search_cmd(
        query: str = typer.Argument(..., help="Natural-language search query"),
        category: str = typer.Option("all", "--category", help="Category facet"),
        difficulty: str = typer.Option("all", "--difficulty", help="Difficulty facet"),
        version_tag: str = typer.Option("all", "--version-tag", help="Version facet, e.g. 'Logos 10'"),
        max_minutes: float = typer.Option(0, "--max-minutes", help="Only videos up to this length (0 = any)"),
        sort: str = typer.Option("relevance", "--sort", help=f"One of: {', '.join(SORT_MODES)}"),
        transcribe: str = typer.Option("auto", "--transcribe", help=f"One of: {', '.join(TRANSCRIBE_MODES)}"),
        auto_max_minutes: float = typer.Option(
            DEFAULT_AUTO_TRANSCRIBE_MAX_MINUTES, "--auto-max-minutes", help="Longest video auto mode transcribes"
        ),
        max_videos: int = typer.Option(None, "--max-transcribe", help="Videos to transcribe before ranking (1-4)"),
        refresh: bool = typer.Option(False, "--refresh", help="Force a full catalog re-scan"),
        library: str = typer.Option(None, "--library", "-l", help="Library root override"),
        pretty: bool = typer.Option(False, "--pretty", help="Indent JSON output"),
    ) -> None:
        """Search the library and print timestamped clips as JSON."""
        if sort not in SORT_MODES:
            error(f"Unknown sort mode: {sort}. Use {', '.join(SORT_MODES)}.")
            raise typer.Exit(1)
        if transcribe not in TRANSCRIBE_MODES:
            error(f"Unknown transcribe mode: {transcribe}. Use {', '.join(TRANSCRIBE_MODES)}.")
            raise typer.Exit(1)

        config = get_config(library_root=Path(library).expanduser() if library else None)
        request = SearchRequest(
            query=query,
            filters=SearchFilters(
                category=category,
                difficulty=difficulty,
                version_tag=version_tag,
                max_minutes=max_minutes,
            ),
            sort_mode=sort,
            transcribe_mode=transcribe,
            refresh_catalog=refresh,
            auto_transcribe_max_minutes=auto_max_minutes,
            max_auto_transcribe_videos=max_videos,
        )

        try:
            engine = VideoSearchEngine.from_config(config)
            engine.catalog.check_root()
            response = engine.search(request)
        except VSError as e:
            error(str(e))
            raise typer.Exit(1)
        output_json(response.model_dump(), pretty=pretty)
