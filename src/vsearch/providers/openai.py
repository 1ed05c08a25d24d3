"""OpenAI-compatible provider implementations."""

from __future__ import annotations

import json
import os
from pathlib import Path

from openai import OpenAI

from vsearch.core.config import VSConfig
from vsearch.core.exceptions import APIError
from vsearch.providers.base import (
    EmbedderProvider,
    LLMProvider,
    Transcript,
    TranscriberProvider,
    TranscriptSegment,
)


def _resolve_api_key(config: VSConfig) -> str:
    """Resolve API key, preferring explicit VS_API_KEY then the SDK's OPENAI_API_KEY."""
    configured = (config.api_key or "").strip()
    if configured and configured.lower() != "no-key":
        return configured
    return os.environ.get("OPENAI_API_KEY", "").strip() or configured or "no-key"


def _client(config: VSConfig) -> OpenAI:
    kwargs: dict = {
        "base_url": config.api_base_url,
        "api_key": _resolve_api_key(config),
        # Transient failures (429, 5xx, timeouts) are retried with backoff by the SDK
        "max_retries": max(0, config.api_max_retries),
    }
    # Anthropic's OpenAI-compatible endpoint requires anthropic-version header
    if config.provider == "anthropic":
        kwargs["default_headers"] = {"anthropic-version": "2023-06-01"}
    return OpenAI(**kwargs)


def _field(obj: object, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class OpenAITranscriber(TranscriberProvider):
    def __init__(self, config: VSConfig):
        self.config = config
        self.client = _client(config)

    def transcribe(self, audio_path: Path) -> Transcript:
        try:
            with open(audio_path, "rb") as f:
                response = self.client.audio.transcriptions.create(
                    model=self.config.transcribe_model,
                    file=f,
                    response_format="verbose_json",
                    timestamp_granularities=["segment"],
                )
        except Exception as e:
            raise APIError(f"Transcription failed: {e}", provider=self.config.provider or "openai") from e

        segments = [
            TranscriptSegment(
                start_sec=float(_field(seg, "start", 0.0) or 0.0),
                end_sec=float(_field(seg, "end", 0.0) or 0.0),
                text=str(_field(seg, "text", "") or "").strip(),
            )
            for seg in (_field(response, "segments") or [])
        ]
        text = str(_field(response, "text", "") or "").strip()
        if not text:
            text = " ".join(s.text for s in segments if s.text)
        return Transcript(
            text=text,
            segments=segments,
            language=str(_field(response, "language") or "unknown"),
            duration_sec=float(_field(response, "duration", 0.0) or 0.0),
        )


class OpenAIEmbedder(EmbedderProvider):
    def __init__(self, config: VSConfig):
        self.config = config
        self.client = _client(config)

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = self.client.embeddings.create(
                model=self.config.embed_model,
                input=texts,
            )
        except Exception as e:
            raise APIError(f"Embedding failed: {e}", provider=self.config.provider or "openai") from e
        vecs = [item.embedding for item in response.data]
        if len(vecs) != len(texts):
            raise APIError(
                f"Embedding returned {len(vecs)} vectors for {len(texts)} inputs",
                provider=self.config.provider or "openai",
            )
        return vecs


class OpenAILLM(LLMProvider):
    def __init__(self, config: VSConfig):
        self.config = config
        self.client = _client(config)

    def complete_json(self, system_prompt: str, payload: dict) -> dict:
        try:
            response = self.client.chat.completions.create(
                model=self.config.chat_model,
                temperature=0.2,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": json.dumps(payload)},
                ],
            )
            content = (response.choices[0].message.content or "").strip()
        except Exception as e:
            raise APIError(f"Chat completion failed: {e}", provider=self.config.provider or "openai") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise APIError(f"Model returned invalid JSON: {e}", provider=self.config.provider or "openai") from e
        if not isinstance(data, dict):
            raise APIError("Model returned a non-object JSON reply", provider=self.config.provider or "openai")
        return data


# --- Factories (an empty model name disables the capability) ---


def transcriber_for(config: VSConfig) -> TranscriberProvider | None:
    return OpenAITranscriber(config) if config.transcribe_model else None


def embedder_for(config: VSConfig) -> EmbedderProvider | None:
    return OpenAIEmbedder(config) if config.embed_model else None


def llm_for(config: VSConfig) -> LLMProvider | None:
    return OpenAILLM(config) if config.chat_model else None
