"""Tests for config loading: env vars > config.json > defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from vsearch.core.config import VSConfig, _load_config_file, get_config, save_config
from vsearch.core.constants import PROVIDER_PRESETS


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in list(os.environ):
        if key.startswith("VS_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# save / load round-trip
# ---------------------------------------------------------------------------

def test_save_and_load_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake_config = tmp_path / "config.json"
    monkeypatch.setattr("vsearch.core.config.CONFIG_FILE_PATH", fake_config)

    data = {"provider": "gemini", "api_key": "test-key-123", "library_root": "/srv/videos"}
    result = save_config(data)
    assert result == fake_config
    assert fake_config.exists()

    loaded = json.loads(fake_config.read_text())
    assert loaded["provider"] == "gemini"
    assert loaded["library_root"] == "/srv/videos"


def test_load_config_file_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("vsearch.core.config.CONFIG_FILE_PATH", tmp_path / "nope.json")
    assert _load_config_file() == {}


def test_load_config_file_invalid_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    bad = tmp_path / "config.json"
    bad.write_text("not json {{{")
    monkeypatch.setattr("vsearch.core.config.CONFIG_FILE_PATH", bad)
    assert _load_config_file() == {}


# ---------------------------------------------------------------------------
# Priority: env vars > config.json > defaults
# ---------------------------------------------------------------------------

def test_defaults_without_config_file(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setattr("vsearch.core.config.CONFIG_FILE_PATH", tmp_path / "nope.json")

    config = get_config()
    assert config.provider == ""
    assert config.api_base_url == "https://api.openai.com/v1"
    assert config.transcribe_model == "whisper-1"
    assert config.embed_model == "text-embedding-3-small"
    assert config.chat_model == "gpt-4.1"
    assert config.api_max_retries == 4
    assert config.transcribe_chunk_seconds == 540
    assert config.ranking.max_results == 12
    assert config.resolved_index_path == Path(".") / ".vsearch" / "video-library-index.json"


def test_config_file_overrides_defaults(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
    cfg_file = tmp_path / "config.json"
    cfg_file.write_text(json.dumps({
        "provider": "anthropic",
        "api_base_url": "https://api.anthropic.com/v1/",
        "chat_model": "claude-sonnet-4-5-20250929",
        "transcribe_model": "",
        "ranking": {"max_results": 6},
    }))
    clean_env.setattr("vsearch.core.config.CONFIG_FILE_PATH", cfg_file)

    config = get_config()
    assert config.provider == "anthropic"
    assert config.chat_model == "claude-sonnet-4-5-20250929"
    assert config.transcribe_model == ""
    assert config.ranking.max_results == 6
    assert config.ranking.max_results_per_video == 3


def test_env_var_overrides_config_file(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
    cfg_file = tmp_path / "config.json"
    cfg_file.write_text(json.dumps({
        "provider": "anthropic",
        "chat_model": "claude-sonnet-4-5-20250929",
    }))
    clean_env.setattr("vsearch.core.config.CONFIG_FILE_PATH", cfg_file)
    clean_env.setenv("VS_CHAT_MODEL", "my-custom-model")

    config = get_config()
    # Env var wins
    assert config.chat_model == "my-custom-model"
    # Config file value still applies for non-overridden fields
    assert config.provider == "anthropic"


def test_nested_env_var_overrides_config_file(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
    cfg_file = tmp_path / "config.json"
    cfg_file.write_text(json.dumps({"ranking": {"semantic_weight": 0.5}}))
    clean_env.setattr("vsearch.core.config.CONFIG_FILE_PATH", cfg_file)
    clean_env.setenv("VS_RANKING__SEMANTIC_WEIGHT", "0.9")

    config = get_config()
    assert config.ranking.semantic_weight == 0.9


def test_library_root_override(tmp_path: Path) -> None:
    config = get_config(library_root=tmp_path)
    assert config.library_root == tmp_path
    assert config.resolved_index_path == tmp_path / ".vsearch" / "video-library-index.json"


def test_explicit_index_path_wins(tmp_path: Path) -> None:
    config = VSConfig(library_root=tmp_path, index_path=tmp_path / "elsewhere.json")
    assert config.resolved_index_path == tmp_path / "elsewhere.json"


# ---------------------------------------------------------------------------
# Provider presets
# ---------------------------------------------------------------------------

def test_all_provider_presets_have_required_keys() -> None:
    required = {"api_base_url", "transcribe_model", "embed_model", "chat_model"}
    for name, preset in PROVIDER_PRESETS.items():
        assert required.issubset(preset.keys()), f"Preset {name!r} missing keys: {required - preset.keys()}"


def test_openai_preset_has_transcription() -> None:
    assert PROVIDER_PRESETS["openai"]["transcribe_model"] == "whisper-1"


def test_anthropic_preset_disables_transcription_and_embed() -> None:
    p = PROVIDER_PRESETS["anthropic"]
    assert p["transcribe_model"] == ""
    assert p["embed_model"] == ""


def test_gemini_preset_disables_transcription() -> None:
    p = PROVIDER_PRESETS["gemini"]
    assert p["transcribe_model"] == ""
    assert p["embed_model"] == "text-embedding-004"  # Gemini supports embeddings
