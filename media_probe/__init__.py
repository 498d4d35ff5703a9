# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Probe remote audio/video resources for content type, size and range support."""

import contextlib
import logging

from media_probe.content_type import (
    extract_size_from_content_length,
    extract_size_from_content_range,
    is_audio_content,
    is_video_content,
    normalize_content_type,
)
from media_probe.errors import ErrorKind, ProbeError
from media_probe.platform_quirks import Platform, apply_platform_quirks, detect_platform, get_quirk_reason
from media_probe.probe import (
    ProbeMethod,
    ProbeOptions,
    ProbeResult,
    probe_many,
    probe_media,
    probe_media_sync,
)
from media_probe.transport import AiohttpTransport, Transport, TransportRequest, TransportResponse

__version__ = "0.1.0"

# httpx adapter (optional, requires `pip install media-probe[httpx]`)
with contextlib.suppress(ImportError):
    from media_probe.httpx_transport import HttpxTransport

__all__ = [
    # Probing
    "probe_media",
    "probe_media_sync",
    "probe_many",
    "ProbeMethod",
    "ProbeOptions",
    "ProbeResult",
    # Errors
    "ErrorKind",
    "ProbeError",
    # Classification
    "extract_size_from_content_length",
    "extract_size_from_content_range",
    "is_audio_content",
    "is_video_content",
    "normalize_content_type",
    # Platform quirks
    "Platform",
    "apply_platform_quirks",
    "detect_platform",
    "get_quirk_reason",
    # Transports
    "AiohttpTransport",
    "Transport",
    "TransportRequest",
    "TransportResponse",
]

# Conditionally include optional names only when actually imported
if "HttpxTransport" in dir():
    __all__.append("HttpxTransport")

# Attach NullHandler so library users don't get "No handler found" warnings.
logging.getLogger("media_probe").addHandler(logging.NullHandler())
