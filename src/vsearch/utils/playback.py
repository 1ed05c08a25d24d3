"""Playback URL derivation and time-offset encoding."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, quote, urlencode

_YOUTUBE_RE = re.compile(r"youtu\.be/|youtube\.com/", re.I)
_VIMEO_RE = re.compile(r"vimeo\.com/", re.I)


def _posix(path: str) -> str:
    return (path or "").replace("\\", "/")


def join_url_path(base_url: str, target_path: str) -> str:
    base = (base_url or "").strip().rstrip("/")
    if not base:
        return ""
    target = _posix(target_path).strip().lstrip("/")
    if not target:
        return base
    encoded = "/".join(quote(part, safe="") for part in target.split("/") if part)
    return f"{base}/{encoded}"


def derive_hosted_url(
    relative_path: str,
    file_name: str,
    *,
    base_url: str,
    path_mode: str = "relative",
    strip_prefix: str = "",
    explicit: str = "",
) -> str:
    """Hosted URL for a catalog row.

    An explicit persisted URL always wins. Otherwise the public base URL is
    combined with the relative path (minus strip_prefix), the bare file name
    ('basename'), or nothing ('none').
    """
    if explicit.strip():
        return explicit.strip()
    if not base_url.strip():
        return ""

    mode = (path_mode or "relative").strip().lower()
    if mode == "basename":
        target = file_name
    elif mode == "none":
        target = ""
    else:
        target = _posix(relative_path).lstrip("/")
        prefix = _posix(strip_prefix).strip("/")
        if prefix:
            if target.lower() == prefix.lower():
                target = ""
            elif target.lower().startswith(prefix.lower() + "/"):
                target = target[len(prefix) + 1 :]
    return join_url_path(base_url, target)


def _set_query_param(url: str, key: str, value: str) -> str:
    base, sep, fragment = url.partition("#")
    path, qsep, query = base.partition("?")
    params = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k.lower() != key.lower()]
    params.append((key, value))
    out = f"{path}?{urlencode(params)}"
    return f"{out}#{fragment}" if sep else out


def _set_fragment_param(url: str, key: str, value: str) -> str:
    base, _, fragment = url.partition("#")
    if not fragment:
        return f"{base}#{key}={quote(value, safe='')}"
    params = [(k, v) for k, v in parse_qsl(fragment, keep_blank_values=True) if k != key]
    params.append((key, value))
    return f"{base}#{urlencode(params)}"


def timestamped_url(base_url: str, seconds: float) -> str:
    """Encode a seek offset the way each player family expects it.

    YouTube reads a ``t=<n>s`` query parameter, Vimeo a ``#t=<n>s`` fragment,
    and plain HTML5 media URLs a ``#t=<n>`` media fragment.
    """
    clean = (base_url or "").strip()
    if not clean:
        return ""
    start = max(0, int(seconds or 0))
    if _YOUTUBE_RE.search(clean):
        return _set_query_param(clean, "t", f"{start}s")
    if _VIMEO_RE.search(clean):
        return _set_fragment_param(clean, "t", f"{start}s")
    return _set_fragment_param(clean, "t", str(start))
