"""Probe many URLs over one shared aiohttp session.

By default each probe request opens a short-lived ``ClientSession``.  For
batch work, inject a session so connections are pooled across probes, and
let :func:`~media_probe.probe_many` bound the concurrency.

Requires network access.

Run::

    python examples/shared_session.py https://example.com/a.mp4 https://example.com/b.mp3
"""

from __future__ import annotations

import asyncio
import sys

import aiohttp

from media_probe import AiohttpTransport, ProbeError, ProbeOptions, probe_many
from media_probe.logging_utils import configure_logging


async def run(urls: list[str]) -> int:
    """Probe *urls* and print one line per URL; return the failure count."""
    connector = aiohttp.TCPConnector(limit_per_host=4)
    async with aiohttp.ClientSession(connector=connector) as session:
        options = ProbeOptions(
            transport=AiohttpTransport(session),
            timeout_ms=5_000,
            total_timeout_ms=30_000,
            headers={"User-Agent": "media-probe-example/1.0"},
        )
        outcomes = await probe_many(urls, options, concurrency=4)

    failures = 0
    for url, outcome in zip(urls, outcomes, strict=True):
        if isinstance(outcome, ProbeError):
            failures += 1
            print(f"FAIL  {url}: {outcome.kind} {outcome.message}")
        else:
            print(f"OK    {url}: {outcome.content_type} size={outcome.size} range={outcome.supports_range_requests}")
    return failures


def main() -> None:
    """Probe the URLs given on the command line."""
    configure_logging("INFO")
    urls = sys.argv[1:]
    if not urls:
        print(__doc__)
        return
    sys.exit(1 if asyncio.run(run(urls)) else 0)


if __name__ == "__main__":
    main()
