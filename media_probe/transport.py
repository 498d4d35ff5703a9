# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""HTTP transport adapters used by the probe engine.

The engine only needs four capabilities from the network: choose a method
(``GET`` / ``HEAD``), send headers, pick a redirect policy, and give up after
a deadline.  Any ``async`` callable matching :class:`Transport` can be
injected through :class:`~media_probe.probe.ProbeOptions`.

Two adapters ship with the package:

- :class:`AiohttpTransport` (the default) built on ``aiohttp``.
- :class:`~media_probe.httpx_transport.HttpxTransport` built on
  ``httpx.AsyncClient`` (requires ``pip install media-probe[httpx]``).

Adapters never read response bodies; only the status line and headers are
returned, and the connection is released as soon as they arrive.  Library
specific timeout exceptions are re-raised as the builtin ``TimeoutError`` so
the engine can classify them without knowing the HTTP library.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal, Protocol

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

__all__ = [
    "AiohttpTransport",
    "Transport",
    "TransportRequest",
    "TransportResponse",
]

_logger = logging.getLogger("media_probe.transport")

HttpMethod = Literal["GET", "HEAD"]


# ---------------------------------------------------------------------------
# Request / response values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransportRequest:
    """A single outbound request.

    Attributes:
        url: Absolute request URL.
        method: ``"GET"`` or ``"HEAD"``.
        headers: Request headers, sent as given.
        follow_redirects: Follow redirects automatically (``True``) or return
            the 3xx response for manual handling (``False``).
        timeout_seconds: Deadline for receiving the response headers.

    """

    url: str
    method: HttpMethod
    headers: Mapping[str, str] = field(default_factory=dict)
    follow_redirects: bool = True
    timeout_seconds: float = 10.0


def _freeze_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]] | None) -> CIMultiDictProxy[str]:
    if headers is None:
        return CIMultiDictProxy(CIMultiDict())
    return CIMultiDictProxy(CIMultiDict(headers))


@dataclass(frozen=True)
class TransportResponse:
    """Status and headers of a response; the body is never read.

    ``headers`` is case-insensitive, so ``headers.get("content-range")`` and
    ``headers.get("Content-Range")`` are equivalent.
    """

    status: int
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: _freeze_headers(None))
    url: str = ""

    @classmethod
    def build(
        cls,
        status: int,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        *,
        url: str = "",
    ) -> TransportResponse:
        """Create a response from a plain mapping or ``(name, value)`` pairs."""
        return cls(status=status, headers=_freeze_headers(headers), url=url)

    @property
    def ok(self) -> bool:
        """Whether the status is in the 2xx success class."""
        return 200 <= self.status < 300


class Transport(Protocol):
    """Async callable performing one HTTP exchange."""

    async def __call__(self, request: TransportRequest, /) -> TransportResponse: ...


# ---------------------------------------------------------------------------
# aiohttp
# ---------------------------------------------------------------------------


class AiohttpTransport:
    """Transport backed by ``aiohttp``.

    When no *session* is injected, a short-lived ``ClientSession`` is opened
    for each request and closed right after the headers arrive.  Inject a
    session to control connectors, proxies or TLS settings; its lifetime is
    then owned by the caller.
    """

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        """Initialize with an optional caller-owned session."""
        self._session = session

    async def __call__(self, request: TransportRequest, /) -> TransportResponse:
        """Send *request* and return its status and headers."""
        if self._session is not None:
            return await self._send(self._session, request)
        async with aiohttp.ClientSession() as session:
            return await self._send(session, request)

    @staticmethod
    async def _send(session: aiohttp.ClientSession, request: TransportRequest) -> TransportResponse:
        timeout = aiohttp.ClientTimeout(total=request.timeout_seconds)
        async with session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            allow_redirects=request.follow_redirects,
            timeout=timeout,
        ) as resp:
            _logger.debug(
                "%s %s -> %d",
                request.method,
                request.url,
                resp.status,
                extra={"url": request.url, "method": request.method, "status": resp.status},
            )
            return TransportResponse.build(resp.status, resp.headers.items(), url=str(resp.url))
