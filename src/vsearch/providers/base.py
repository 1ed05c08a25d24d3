"""Abstract provider interfaces — all OpenAI-compatible, swappable via base_url."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class TranscriptSegment:
    start_sec: float
    end_sec: float
    text: str


@dataclass
class Transcript:
    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: str = "unknown"
    duration_sec: float = 0.0


class TranscriberProvider(ABC):
    @abstractmethod
    def transcribe(self, audio_path: Path) -> Transcript:
        ...


class EmbedderProvider(ABC):
    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        ...


class LLMProvider(ABC):
    @abstractmethod
    def complete_json(self, system_prompt: str, payload: dict) -> dict:
        """Send a system prompt plus a JSON payload; return the parsed JSON object reply."""
        ...
