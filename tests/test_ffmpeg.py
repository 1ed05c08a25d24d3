"""Tests for the ffprobe duration lookup."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from vsearch.core.exceptions import FFmpegError
from vsearch.pipeline.ffmpeg import get_duration, probe_duration_seconds


def _completed(stdout: str) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["ffprobe"], returncode=0, stdout=stdout, stderr="")


def test_duration_from_format_block(tmp_path: Path) -> None:
    with patch("vsearch.pipeline.ffmpeg.subprocess.run", return_value=_completed('{"format": {"duration": "61.237"}}')) as run:
        assert probe_duration_seconds(tmp_path / "a.mp4") == 61.24

    cmd = run.call_args.args[0]
    assert "-show_format" in cmd
    assert "-show_streams" not in cmd


@pytest.mark.parametrize("stdout", ["not json", '{"format": {"duration": "N/A"}}', '{"format": {}}', ""])
def test_unusable_output_gives_zero(tmp_path: Path, stdout: str) -> None:
    with patch("vsearch.pipeline.ffmpeg.subprocess.run", return_value=_completed(stdout)):
        assert probe_duration_seconds(tmp_path / "a.mp4") == 0.0


def test_missing_ffprobe(tmp_path: Path) -> None:
    with patch("vsearch.pipeline.ffmpeg.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
        with pytest.raises(FFmpegError, match="ffprobe not found"):
            get_duration(tmp_path / "a.mp4")
        assert probe_duration_seconds(tmp_path / "a.mp4") == 0.0


def test_ffprobe_failure(tmp_path: Path) -> None:
    error = subprocess.CalledProcessError(1, ["ffprobe"], stderr="moov atom not found")
    with patch("vsearch.pipeline.ffmpeg.subprocess.run", side_effect=error):
        assert probe_duration_seconds(tmp_path / "a.mp4") == 0.0
