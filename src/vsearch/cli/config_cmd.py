"""vsearch config command — show/set configuration."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from vsearch.cli.output import error, output_json
from vsearch.core.config import _FILE_KEYS, VSConfig, _load_config_file, get_config, save_config
from vsearch.core.constants import PROVIDER_PRESETS

config_app = typer.Typer()

_console = Console(stderr=True)

_PROVIDER_MENU = [
    ("openai", "OpenAI (API key)", "transcription, embeddings and guidance"),
    ("anthropic", "Anthropic (Claude)", "guidance only; lexical ranking"),
    ("gemini", "Google (Gemini)", "embeddings and guidance; no transcription"),
]


def _validate_key(provider: str, config_data: dict) -> bool:
    """Make a lightweight API call to verify the key works. Returns True on success."""
    from vsearch.providers.openai import _client

    temp_config = VSConfig(
        provider=provider,
        api_base_url=config_data["api_base_url"],
        api_key=config_data.get("api_key", ""),
        chat_model=config_data["chat_model"],
        api_max_retries=0,
    )
    client = _client(temp_config)
    try:
        client.chat.completions.create(
            model=config_data["chat_model"],
            messages=[{"role": "user", "content": "hi"}],
            max_tokens=1,
        )
        return True
    except Exception as e:
        _console.print(f"  [red]✗[/red] Validation failed: {e}")
        return False


def _parse_value(raw: str):
    """Config values are JSON when they parse as JSON (numbers, objects), plain strings otherwise."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@config_app.command("show")
def config_show() -> None:
    """Show current configuration."""
    config = get_config()
    output_json({
        "provider": config.provider or "(not set)",
        "api_base_url": config.api_base_url,
        "api_key": "***" if config.api_key else "(not set)",
        "api_max_retries": config.api_max_retries,
        "transcribe_model": config.transcribe_model or "(disabled)",
        "embed_model": config.embed_model or "(disabled)",
        "chat_model": config.chat_model or "(disabled)",
        "library_root": str(config.library_root),
        "index_path": str(config.resolved_index_path),
        "video_public_base_url": config.video_public_base_url or "(not set)",
        "video_public_path_mode": config.video_public_path_mode,
        "transcribe_chunk_seconds": config.transcribe_chunk_seconds,
        "ranking": config.ranking.model_dump(),
        "confidence": config.confidence.model_dump(),
    }, pretty=True)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help=f"One of: {', '.join(_FILE_KEYS)}"),
    value: str = typer.Argument(..., help="New value (JSON for nested ranking/confidence objects)"),
) -> None:
    """Persist one setting to the config file."""
    if key not in _FILE_KEYS:
        error(f"Unknown config key: {key}")
        raise typer.Exit(1)

    data = _load_config_file()
    data[key] = _parse_value(value)
    try:
        # Validate the merged result before writing it
        VSConfig(**{k: v for k, v in data.items() if k in _FILE_KEYS})
    except ValueError as e:
        error(f"Invalid value for {key}: {e}")
        raise typer.Exit(1)

    path = save_config(data)
    output_json({"key": key, "value": data[key] if key != "api_key" else "***", "path": str(path)})


@config_app.command("setup")
def config_setup() -> None:
    """Interactive setup wizard — choose AI provider and configure API keys."""
    _console.print()
    _console.print("[bold]Choose your AI provider:[/bold]")
    _console.print()
    for i, (_, label, desc) in enumerate(_PROVIDER_MENU, 1):
        rec = " [dim](Recommended)[/dim]" if i == 1 else ""
        _console.print(f"  {i}. {label} — {desc}{rec}")
    _console.print()

    choice = IntPrompt.ask(
        "  Enter choice",
        console=_console,
        choices=[str(i) for i in range(1, len(_PROVIDER_MENU) + 1)],
        default=1,
    )
    provider_key = _PROVIDER_MENU[choice - 1][0]
    preset = PROVIDER_PRESETS[provider_key]

    config_data = {**_load_config_file(), "provider": provider_key, **preset}
    api_key = Prompt.ask(f"  Enter your {_PROVIDER_MENU[choice - 1][1]} key", console=_console, default="")
    config_data["api_key"] = api_key.strip()

    if not preset["transcribe_model"]:
        _console.print(
            "  [yellow]Note:[/yellow] This provider cannot transcribe. "
            "Add sidecar transcripts (.srt/.vtt/.txt) next to your videos instead."
        )

    library = Prompt.ask("  Library root", console=_console, default=str(config_data.get("library_root", ".")))
    config_data["library_root"] = library.strip() or "."

    if config_data["api_key"]:
        _console.print("  Validating API key...", end="")
        if _validate_key(provider_key, config_data):
            _console.print(" [green]✓[/green]")
        else:
            if not Confirm.ask("  Save anyway?", console=_console, default=False):
                _console.print("  Setup cancelled.")
                raise typer.Exit(1)

    path = save_config(config_data)

    _console.print()
    _console.print(f"  [green]✓[/green] Config saved to {path}")
    _console.print("  [green]✓[/green] Ready! Try: [bold]vsearch search \"sermon outline\"[/bold]")
    _console.print()
