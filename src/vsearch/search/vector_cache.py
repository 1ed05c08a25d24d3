"""Process-lifetime embedding caches for video documents and transcript chunks."""

from __future__ import annotations

import threading
from collections import OrderedDict

from vsearch.core.constants import CHUNK_EMBED_BATCH_SIZE, MAX_CHUNK_CACHE_ENTRIES, VIDEO_EMBED_BATCH_SIZE
from vsearch.db.models import VideoRecord
from vsearch.pipeline.chunker import Chunk
from vsearch.providers.base import EmbedderProvider


def _embed_batched(embedder: EmbedderProvider, texts: list[str], batch_size: int) -> list[list[float]]:
    vectors: list[list[float]] = []
    for i in range(0, len(texts), batch_size):
        vectors.extend(embedder.embed(texts[i : i + batch_size]))
    return vectors


class VectorCache:
    """Two independent caches.

    Video-document vectors are computed for the whole catalog at once and
    stored under the catalog fingerprint; any change in the catalog drops
    them all. Chunk vectors are keyed by chunk content hash, so only misses
    are embedded, and the oldest entries are evicted beyond the cap.

    Embedder errors propagate unchanged. Retrying is the client's job.
    """

    def __init__(self, embedder: EmbedderProvider, max_chunk_entries: int = MAX_CHUNK_CACHE_ENTRIES):
        self.embedder = embedder
        self.max_chunk_entries = max_chunk_entries
        self._lock = threading.Lock()
        self._video_key: str | None = None
        self._video_vectors: dict[str, list[float]] = {}
        self._chunk_vectors: OrderedDict[str, list[float]] = OrderedDict()

    def embed_query(self, query: str) -> list[float]:
        vecs = self.embedder.embed([query])
        if not vecs:
            return []
        return vecs[0]

    def video_vectors(self, videos: list[VideoRecord], catalog_fingerprint: str) -> dict[str, list[float]]:
        with self._lock:
            if self._video_key == catalog_fingerprint:
                return dict(self._video_vectors)

        docs = [v.search_document() for v in videos]
        vectors = _embed_batched(self.embedder, docs, VIDEO_EMBED_BATCH_SIZE)
        table = {v.id: vec for v, vec in zip(videos, vectors)}

        with self._lock:
            self._video_key = catalog_fingerprint
            self._video_vectors = table
        return dict(table)

    def chunk_vectors(self, chunks: list[Chunk]) -> dict[str, list[float]]:
        with self._lock:
            missing: dict[str, str] = {}
            for chunk in chunks:
                if chunk.key in self._chunk_vectors:
                    self._chunk_vectors.move_to_end(chunk.key)
                else:
                    missing.setdefault(chunk.key, chunk.text)

        if missing:
            keys = list(missing)
            vectors = _embed_batched(self.embedder, [missing[k] for k in keys], CHUNK_EMBED_BATCH_SIZE)
            with self._lock:
                for key, vec in zip(keys, vectors):
                    self._chunk_vectors[key] = vec
                while len(self._chunk_vectors) > self.max_chunk_entries:
                    self._chunk_vectors.popitem(last=False)

        with self._lock:
            return {c.key: self._chunk_vectors[c.key] for c in chunks if c.key in self._chunk_vectors}

    @property
    def chunk_cache_size(self) -> int:
        with self._lock:
            return len(self._chunk_vectors)

    def invalidate(self) -> None:
        """Drop both caches; called once newly stored transcripts change the catalog."""
        with self._lock:
            self._video_key = None
            self._video_vectors = {}
            self._chunk_vectors.clear()
