"""FFmpeg/ffprobe utilities for video processing."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from vsearch.core.exceptions import FFmpegError


def get_duration(path: Path) -> float:
    """Container duration in seconds as reported by ffprobe."""
    cmd = [
        "ffprobe", "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=30)
    except FileNotFoundError:
        raise FFmpegError("ffprobe not found. Install ffmpeg: brew install ffmpeg", cmd=" ".join(cmd))
    except subprocess.CalledProcessError as e:
        raise FFmpegError(f"ffprobe failed: {e.stderr}", cmd=" ".join(cmd), returncode=e.returncode)
    except subprocess.TimeoutExpired:
        raise FFmpegError("ffprobe timed out", cmd=" ".join(cmd))

    try:
        data = json.loads(result.stdout or "{}")
        return float(data.get("format", {}).get("duration", 0) or 0)
    except (ValueError, TypeError, AttributeError) as e:
        raise FFmpegError(f"ffprobe returned unusable output: {e}", cmd=" ".join(cmd))


def probe_duration_seconds(path: Path) -> float:
    """Container duration in seconds, or 0 when ffprobe is missing or the file is unreadable."""
    try:
        duration = get_duration(path)
    except (FFmpegError, OSError):
        return 0.0
    return round(duration, 2) if duration > 0 else 0.0


def extract_audio_chunk(
    video_path: Path,
    output_path: Path,
    start_sec: float,
    duration_sec: float,
    bitrate_kbps: int = 32,
) -> Path:
    """Extract one mono 16kHz MP3 window of the soundtrack for transcription."""
    cmd = [
        "ffmpeg", "-hide_banner", "-loglevel", "error", "-y",
        "-ss", f"{max(0.0, start_sec):.2f}",
        "-t", f"{max(1.0, duration_sec):.2f}",
        "-i", str(video_path),
        "-vn", "-ac", "1", "-ar", "16000",
        "-c:a", "libmp3lame",
        "-b:a", f"{max(8, int(bitrate_kbps))}k",
        str(output_path),
    ]
    try:
        subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=600)
    except FileNotFoundError:
        raise FFmpegError("ffmpeg not found. Install ffmpeg: brew install ffmpeg", cmd=" ".join(cmd))
    except subprocess.CalledProcessError as e:
        raise FFmpegError(f"Audio extraction failed: {e.stderr.strip()}", cmd=" ".join(cmd), returncode=e.returncode)
    except subprocess.TimeoutExpired:
        raise FFmpegError("Audio extraction timed out", cmd=" ".join(cmd))

    if not output_path.exists():
        raise FFmpegError("Audio extraction produced no output", cmd=" ".join(cmd))
    return output_path
