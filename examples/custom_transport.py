"""Probe media through an injected in-memory transport.

Demonstrates the range-first fallback strategy, platform quirk correction
and error classification without touching the network: every request is
answered by ``FakeCdn``, which plays a few servers with different habits.

Run::

    python examples/custom_transport.py
"""

from __future__ import annotations

import asyncio

from media_probe import (
    ErrorKind,
    ProbeError,
    ProbeMethod,
    ProbeOptions,
    TransportRequest,
    TransportResponse,
    probe_many,
    probe_media,
)

# ---------------------------------------------------------------------------
# 1. A transport is any async callable taking a TransportRequest
# ---------------------------------------------------------------------------


class FakeCdn:
    """Answers requests for a handful of paths, recording what it saw."""

    def __init__(self) -> None:
        self.seen: list[str] = []

    async def __call__(self, request: TransportRequest, /) -> TransportResponse:
        """Return a canned response for *request*."""
        ranged = "Range" in request.headers
        self.seen.append(f"{request.method}{' (ranged)' if ranged else ''} {request.url}")

        if request.url.endswith("/ranged.mp4"):
            # Honors Range: one byte reveals the total size.
            return TransportResponse.build(206, {"Content-Type": "video/mp4", "Content-Range": "bytes 0-0/5242880"})
        if request.url.endswith("/plain.mp3"):
            # Ignores Range but answers HEAD.
            return TransportResponse.build(
                200, {"Content-Type": "audio/mpeg", "Content-Length": "3145728", "Accept-Ranges": "none"}
            )
        if "tiktokcdn" in request.url:
            # Serves MP3 audio labelled as video.
            return TransportResponse.build(206, {"Content-Type": "video/mp4", "Content-Range": "bytes 0-0/48000"})
        return TransportResponse.build(404)


# ---------------------------------------------------------------------------
# 2. Probe through it
# ---------------------------------------------------------------------------


async def run() -> None:
    """Probe several URLs and print what was learned."""
    cdn = FakeCdn()
    options = ProbeOptions(transport=cdn, allow_platform_quirks=True)

    ranged = await probe_media("https://media.example.com/ranged.mp4", options)
    assert ranged.method is ProbeMethod.RANGE
    print(f"ranged.mp4: {ranged.content_type}, {ranged.size} bytes via {ranged.method}")

    plain = await probe_media("https://media.example.com/plain.mp3", options)
    assert plain.method is ProbeMethod.HEAD
    assert not plain.supports_range_requests
    print(f"plain.mp3: {plain.content_type}, {plain.size} bytes via {plain.method}")

    quirky = await probe_media("https://v16m.tiktokcdn.com/obj/a1b2?mime_type=audio_mpeg", options)
    assert quirky.content_type == "audio/mpeg"
    print(f"tiktok: corrected to {quirky.content_type} (is_audio={quirky.is_audio})")

    try:
        await probe_media("https://media.example.com/gone.webm", options)
    except ProbeError as e:
        assert e.kind is ErrorKind.NOT_FOUND
        print(f"gone.webm: {e.kind} ({e.status_code})")

    # --- Batch ---------------------------------------------------------------
    urls = ["https://media.example.com/ranged.mp4", "ftp://media.example.com/x", "https://media.example.com/plain.mp3"]
    outcomes = await probe_many(urls, options, concurrency=2)
    for url, outcome in zip(urls, outcomes, strict=True):
        status = outcome.kind if isinstance(outcome, ProbeError) else outcome.method
        print(f"batch {url}: {status}")

    print(f"{len(cdn.seen)} requests sent")


def main() -> None:
    """Run the custom transport example."""
    asyncio.run(run())
    print("All assertions passed!")


if __name__ == "__main__":
    main()
