"""Deterministic content hashing for cache keys."""

from __future__ import annotations

import hashlib

from vsearch.core.constants import CHUNK_KEY_HASH_CHARS, CHUNK_KEY_TEXT_PREFIX


def chunk_key(video_id: str, start: float, end: float, text: str) -> str:
    """Short SHA-1 over a chunk's identity.

    Identical segments always reproduce the same key, so the vector cache
    needs no explicit change tracking: edited text simply misses.
    """
    payload = f"{video_id.strip()}|{start:.2f}|{end:.2f}|{text.strip()[:CHUNK_KEY_TEXT_PREFIX]}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:CHUNK_KEY_HASH_CHARS]


def catalog_key(fingerprints: list[str], namespace: str = "") -> str:
    """Collapse per-video fingerprints into one key for the whole catalog."""
    h = hashlib.sha256(namespace.encode("utf-8"))
    for fp in fingerprints:
        h.update(b"|")
        h.update(fp.encode("utf-8"))
    return h.hexdigest()
