"""Typer root app — wires all subcommands together."""

from __future__ import annotations

import json

import typer

from vsearch import __version__

app = typer.Typer(
    name="vsearch",
    help="vsearch — timestamped search over a local training-video library.",
    add_completion=False,
    no_args_is_help=True,
)


@app.command("version")
def version_cmd() -> None:
    """Print version info as JSON."""
    print(json.dumps({"version": __version__, "package": "vsearch"}))


# --- Register direct commands ---

from vsearch.cli.search import register as register_search  # noqa: E402
from vsearch.cli.status import register as register_status  # noqa: E402
from vsearch.cli.info import register as register_info  # noqa: E402
from vsearch.cli.transcript import register as register_transcript  # noqa: E402
from vsearch.cli.ingest import register as register_ingest  # noqa: E402
from vsearch.cli.config_cmd import config_app  # noqa: E402

register_search(app)
register_status(app)
register_info(app)
register_transcript(app)
register_ingest(app)
app.add_typer(config_app, name="config", help="Show/set configuration")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
