# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""httpx transport adapter.

Requires ``pip install media-probe[httpx]``.

Usage::

    from media_probe import ProbeOptions, probe_media
    from media_probe.httpx_transport import HttpxTransport

    async with httpx.AsyncClient(proxy=PROXY_URL) as client:
        options = ProbeOptions(transport=HttpxTransport(client))
        result = await probe_media(url, options)
"""

from __future__ import annotations

import logging

import httpx

from media_probe.transport import TransportRequest, TransportResponse

__all__ = ["HttpxTransport"]

_logger = logging.getLogger("media_probe.transport")


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Responses are opened in streaming mode and closed without reading the
    body.  ``httpx.TimeoutException`` is re-raised as ``TimeoutError``.
    Without an injected *client*, a short-lived client is created per request.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize with an optional caller-owned client."""
        self._client = client

    async def __call__(self, request: TransportRequest, /) -> TransportResponse:
        """Send *request* and return its status and headers."""
        if self._client is not None:
            return await self._send(self._client, request)
        async with httpx.AsyncClient() as client:
            return await self._send(client, request)

    @staticmethod
    async def _send(client: httpx.AsyncClient, request: TransportRequest) -> TransportResponse:
        try:
            async with client.stream(
                request.method,
                request.url,
                headers=dict(request.headers),
                follow_redirects=request.follow_redirects,
                timeout=request.timeout_seconds,
            ) as resp:
                _logger.debug(
                    "%s %s -> %d",
                    request.method,
                    request.url,
                    resp.status_code,
                    extra={"url": request.url, "method": request.method, "status": resp.status_code},
                )
                return TransportResponse.build(resp.status_code, resp.headers.multi_items(), url=str(resp.url))
        except httpx.TimeoutException as exc:
            raise TimeoutError(str(exc) or f"{request.method} {request.url} timed out") from exc
