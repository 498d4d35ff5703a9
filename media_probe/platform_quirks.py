# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Content-type corrections for CDNs known to misreport ``Content-Type``.

Some media CDNs embed the real MIME type of the asset in the URL query
string while the server answers with a generic or wrong ``Content-Type``:

- **TikTok CDN** (``*.tiktokcdn*``) sometimes serves MP3 audio as
  ``video/mp4``.  The query value is trusted only when its top-level type
  (``audio`` / ``video``) conflicts with the server's.
- **Google video CDN** (``*.googlevideo.com``) carries an accurate ``mime``
  parameter; it is trusted unconditionally.

Both functions are pure and never raise; unparseable URLs leave the server
type untouched.
"""

from __future__ import annotations

from enum import StrEnum
from urllib.parse import parse_qs, urlsplit

__all__ = [
    "Platform",
    "apply_platform_quirks",
    "detect_platform",
    "get_quirk_reason",
]

# Query parameter names carrying a declared MIME type, in lookup order.
_MIME_PARAM_NAMES: tuple[str, ...] = ("mime_type", "mimetype", "mime", "type", "content_type", "contenttype")

_MIME_SHORT_CODES: dict[str, str] = {
    "audio_mpeg": "audio/mpeg",
    "audio_mp3": "audio/mpeg",
    "video_mp4": "video/mp4",
    "video_webm": "video/webm",
    "audio_aac": "audio/aac",
    "audio_wav": "audio/wav",
    "audio_flac": "audio/flac",
    "audio_ogg": "audio/ogg",
    "video_ogg": "video/ogg",
}


class Platform(StrEnum):
    """CDN platforms with known content-type quirks."""

    tiktok = "tiktok"
    google_video = "google_video"


_PLATFORM_HOST_TOKENS: dict[Platform, str] = {
    Platform.tiktok: "tiktokcdn",
    Platform.google_video: "googlevideo.com",
}

_PLATFORM_LABELS: dict[Platform, str] = {
    Platform.tiktok: "TikTok CDN",
    Platform.google_video: "Google CDN",
}


def _split(url: str) -> tuple[str, dict[str, list[str]]] | None:
    """Return ``(hostname, query_params)`` or ``None`` if *url* does not parse."""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname or ""
    except ValueError:
        return None
    return hostname, parse_qs(parts.query)


def detect_platform(url: str) -> Platform | None:
    """Return the quirky CDN platform serving *url*, if any."""
    split = _split(url)
    if split is None:
        return None
    hostname = split[0]
    for platform, token in _PLATFORM_HOST_TOKENS.items():
        if token in hostname:
            return platform
    return None


def _declared_mime_type(params: dict[str, list[str]]) -> str | None:
    """Look up the MIME type declared in the query string.

    Short codes such as ``audio_mpeg`` are mapped to canonical MIME strings;
    values already containing ``/`` are accepted verbatim (lowercased).
    """
    for name in _MIME_PARAM_NAMES:
        values = params.get(name)
        if not values or not values[0]:
            continue
        value = values[0].lower()
        mapped = _MIME_SHORT_CODES.get(value)
        if mapped is not None:
            return mapped
        if "/" in value:
            return value
    return None


def _top_level(content_type: str) -> str:
    return content_type.split("/", 1)[0]


def apply_platform_quirks(url: str, server_content_type: str | None) -> str | None:
    """Return the corrected content type for *url*.

    Args:
        url: The probed URL (its host and query string are inspected).
        server_content_type: The normalized ``Content-Type`` the server sent.

    Returns:
        The declared type when a platform quirk applies, otherwise
        *server_content_type* unchanged.

    """
    split = _split(url)
    if split is None:
        return server_content_type
    hostname, params = split

    if _PLATFORM_HOST_TOKENS[Platform.tiktok] in hostname:
        declared = _declared_mime_type(params)
        if declared and server_content_type and _top_level(declared) != _top_level(server_content_type):
            return declared
        return server_content_type

    if _PLATFORM_HOST_TOKENS[Platform.google_video] in hostname:
        declared = _declared_mime_type(params)
        return declared or server_content_type

    return server_content_type


def get_quirk_reason(url: str, original: str | None, corrected: str | None) -> str | None:
    """Describe why *original* was replaced by *corrected*, for logging.

    Returns ``None`` when nothing changed, when *corrected* is ``None``, or
    when *url* is not served by a known platform.
    """
    if original == corrected or not corrected:
        return None
    platform = detect_platform(url)
    if platform is None:
        return None
    label = _PLATFORM_LABELS[platform]
    if platform is Platform.tiktok:
        return f"{label} quirk: Server returned '{original}' but query parameter specified '{corrected}'"
    suffix = f" instead of server's '{original}'" if original else ""
    return f"{label} quirk: Using MIME type from query parameter '{corrected}'{suffix}"
