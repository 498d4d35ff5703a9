"""Shared test fixtures for media-probe tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping

import pytest

from media_probe.transport import TransportRequest, TransportResponse

Handler = Callable[[TransportRequest], Awaitable[TransportResponse]]
"""Async function producing a response for one request."""

ScriptEntry = TransportResponse | BaseException | Handler
"""One scripted reply: a response, an exception to raise, or a handler."""


def response(status: int, headers: Mapping[str, str] | None = None) -> TransportResponse:
    """Build a ``TransportResponse`` with the given status and headers."""
    return TransportResponse.build(status, headers)


def partial(total: int, content_type: str = "video/mp4", **extra: str) -> TransportResponse:
    """Build a ``206`` response for ``bytes=0-0`` of a *total*-byte resource."""
    headers = {"Content-Type": content_type, "Content-Range": f"bytes 0-0/{total}", "Content-Length": "1"}
    headers.update(extra)
    return TransportResponse.build(206, headers)


class ScriptedTransport:
    """Transport replaying a fixed script, one entry per request.

    The last entry repeats once the script runs out.  Every request is
    recorded in ``requests``.
    """

    def __init__(self, *script: ScriptEntry) -> None:
        if not script:
            raise ValueError("script must not be empty")
        self._script = list(script)
        self.requests: list[TransportRequest] = []

    async def __call__(self, request: TransportRequest, /) -> TransportResponse:
        self.requests.append(request)
        entry = self._script[min(len(self.requests), len(self._script)) - 1]
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, TransportResponse):
            return entry
        return await entry(request)

    @property
    def calls(self) -> list[tuple[str, str | None]]:
        """``(method, Range header)`` for every recorded request."""
        return [(r.method, r.headers.get("Range")) for r in self.requests]


class SleepRecorder:
    """Async ``_sleep`` replacement that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


async def hang(request: TransportRequest) -> TransportResponse:
    """Handler that never answers."""
    await asyncio.Event().wait()
    raise AssertionError("unreachable")


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    """Provide a fresh ``SleepRecorder``."""
    return SleepRecorder()


@pytest.fixture(autouse=True)
def _reset_media_probe_logger() -> Iterator[None]:
    """Undo handler and level changes made by ``configure_logging``."""
    logger = logging.getLogger("media_probe")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
