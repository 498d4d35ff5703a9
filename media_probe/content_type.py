# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Content classification and header parsing helpers.

Pure functions used by the probe engine to turn raw response headers into
normalized values:

- :func:`is_video_content` / :func:`is_audio_content` classify a resource
  from its MIME type and/or URL path extension.
- :func:`extract_size_from_content_range` and
  :func:`extract_size_from_content_length` read the total byte size.
- :func:`normalize_content_type` strips MIME parameters and lowercases.

None of these functions perform I/O or raise on malformed input; they return
``None`` / ``False`` instead.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

__all__ = [
    "AUDIO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "extract_size_from_content_length",
    "extract_size_from_content_range",
    "is_audio_content",
    "is_video_content",
    "normalize_content_type",
]

VIDEO_EXTENSIONS: frozenset[str] = frozenset(
    {"mp4", "webm", "mov", "avi", "mkv", "ogv", "mpg", "mpeg", "m4v", "flv", "3gp", "wmv", "ts", "m3u8"}
)

AUDIO_EXTENSIONS: frozenset[str] = frozenset({"mp3", "m4a", "wav", "webm", "ogg", "flac", "aac", "opus"})

_CONTENT_RANGE_RE = re.compile(r"bytes\s+\d+-\d+/(\d+)", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _has_top_level_type(content_type: str | None, top_level: str) -> bool:
    """Return ``True`` if *content_type* is ``<top_level>/<subtype>`` with a non-empty subtype.

    Every well-known media subtype (``video/mp4``, ``video/quicktime``,
    ``audio/x-flac`` and so on) lives under its top-level type, so the prefix
    check alone decides the MIME half of the classification.
    """
    if not content_type:
        return False
    major, sep, minor = content_type.strip().lower().partition("/")
    if not sep or major != top_level:
        return False
    return bool(minor)


def _url_extension(url: str) -> str:
    """Return the lowercase extension of the URL path, ignoring query and fragment."""
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url.split("?", 1)[0].split("#", 1)[0]
    filename = path.rsplit("/", 1)[-1]
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def is_video_content(content_type: str | None, url: str) -> bool:
    """Return ``True`` if the MIME type or URL extension indicates video."""
    if _has_top_level_type(content_type, "video"):
        return True
    return _url_extension(url) in VIDEO_EXTENSIONS


def is_audio_content(content_type: str | None, url: str) -> bool:
    """Return ``True`` if the MIME type or URL extension indicates audio."""
    if _has_top_level_type(content_type, "audio"):
        return True
    return _url_extension(url) in AUDIO_EXTENSIONS


# ---------------------------------------------------------------------------
# Header parsers
# ---------------------------------------------------------------------------


def extract_size_from_content_range(value: str | None) -> int | None:
    """Extract the total size from a ``Content-Range`` header.

    Accepts ``bytes <start>-<end>/<total>`` with a case-insensitive unit
    token.  An unknown total (``*``) or a missing ``/total`` segment yields
    ``None``.

    Args:
        value: Raw header value, or ``None``.

    Returns:
        The total resource size in bytes, or ``None``.

    """
    if not value:
        return None
    match = _CONTENT_RANGE_RE.search(value)
    if match is None:
        return None
    return int(match.group(1))


def extract_size_from_content_length(value: str | None) -> int | None:
    """Extract the size from a ``Content-Length`` header.

    Uses integer-prefix parsing rather than strict validation: ``"12.5"``
    parses as ``12`` and ``"42abc"`` as ``42``.  Values without a leading
    integer, and negative values, yield ``None``.
    """
    if not value:
        return None
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return None
    size = int(match.group(1))
    return size if size >= 0 else None


def normalize_content_type(value: str | None) -> str | None:
    """Strip MIME parameters, surrounding whitespace and case.

    ``'video/mp4; codecs="avc1"'`` becomes ``'video/mp4'``.  Returns ``None``
    for ``None``, empty, or parameter-only input.
    """
    if not value:
        return None
    normalized = value.split(";", 1)[0].strip().lower()
    return normalized or None
