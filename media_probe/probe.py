# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Remote media probing with a range-first fallback strategy.

Learns the content type, size and range support of a remote media resource
while transferring as few bytes as possible.  Each attempt cycle tries three
methods in order:

1. A **range probe**: ``GET`` with ``Range: bytes=0-0``.  A ``206`` response
   with a usable ``Content-Range`` reveals the total size for one byte.
2. A **head probe**: ``HEAD``, reading ``Content-Length`` and
   ``Accept-Ranges`` without a body.
3. A **get probe**: ``GET`` with the same one-byte range.  This step is the
   only one allowed to turn an HTTP status into an error; earlier steps defer
   so that a server which merely rejects ``Range`` or ``HEAD`` is not
   reported as failing.

Retryable failures (5xx, timeouts, connection errors) repeat the whole cycle
with a linear, capped backoff; 4xx responses and invalid URLs fail at once.
See :mod:`media_probe.errors` for the taxonomy.

Every request is bounded by ``timeout_ms``.  Cancelling the task awaiting
:func:`probe_media` aborts the probe, including backoff sleeps, and
``total_timeout_ms`` puts a deadline on the whole retry loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import re
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from urllib.parse import urlsplit

from media_probe._retry import RetryPolicy, Sleep, run_with_retry
from media_probe.content_type import (
    extract_size_from_content_length,
    extract_size_from_content_range,
    is_audio_content,
    is_video_content,
    normalize_content_type,
)
from media_probe.errors import ErrorKind, ProbeError
from media_probe.platform_quirks import apply_platform_quirks, get_quirk_reason
from media_probe.transport import (
    AiohttpTransport,
    HttpMethod,
    Transport,
    TransportRequest,
    TransportResponse,
)

__all__ = [
    "ProbeMethod",
    "ProbeOptions",
    "ProbeResult",
    "probe_many",
    "probe_media",
    "probe_media_sync",
]

_logger = logging.getLogger("media_probe.probe")

_RANGE_HEADER_VALUE = "bytes=0-0"

# Characters that can never appear in a host name, control characters included.
_FORBIDDEN_HOST_RE = re.compile(r"[\x00-\x20\x7f#%/<>?@\[\\\]^|]")


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class ProbeMethod(StrEnum):
    """The probe step whose response produced a result."""

    RANGE = "range"
    HEAD = "head"
    GET = "get"


@dataclass(frozen=True)
class ProbeResult:
    """Normalized metadata of a probed media resource.

    Attributes:
        content_type: Lowercase MIME type without parameters, or ``None``.
        size: Total size in bytes, or ``None`` when unknown.
        supports_range_requests: Whether the server showed partial-content
            support during this probe.
        is_video: The type or URL extension indicates video.
        is_audio: The type or URL extension indicates audio.
        method: The step that produced this result.

    """

    content_type: str | None
    size: int | None
    supports_range_requests: bool
    is_video: bool
    is_audio: bool
    method: ProbeMethod

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready mapping of the result."""
        return {
            "content_type": self.content_type,
            "size": self.size,
            "supports_range_requests": self.supports_range_requests,
            "is_video": self.is_video,
            "is_audio": self.is_audio,
            "method": self.method.value,
        }


@dataclass(frozen=True)
class ProbeOptions:
    """Configuration for :func:`probe_media`.

    Attributes:
        max_retries: Number of full attempt cycles before giving up.
        timeout_ms: Deadline for each individual request.
        headers: Extra request headers sent with every request.
        follow_redirects: Let the transport follow redirects, or hand 3xx
            responses back unfollowed.
        allow_platform_quirks: Correct known CDN content-type misreporting
            (see :mod:`media_probe.platform_quirks`).
        transport: Transport to use; ``None`` selects
            :class:`~media_probe.transport.AiohttpTransport`.
        backoff_step_ms: Backoff grows by this much per failed attempt.
        backoff_max_ms: Upper bound on a single backoff delay.
        total_timeout_ms: Optional deadline for the whole probe, retries
            included.

    Raises:
        ValueError: On negative retry or backoff values, or non-positive
            timeouts.

    """

    max_retries: int = 3
    timeout_ms: int = 10_000
    headers: Mapping[str, str] = field(default_factory=dict)
    follow_redirects: bool = True
    allow_platform_quirks: bool = False
    transport: Transport | None = field(default=None, compare=False)
    backoff_step_ms: int = 1000
    backoff_max_ms: int = 5000
    total_timeout_ms: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if self.total_timeout_ms is not None and self.total_timeout_ms <= 0:
            raise ValueError(f"total_timeout_ms must be > 0, got {self.total_timeout_ms}")
        if self.backoff_step_ms < 0:
            raise ValueError(f"backoff_step_ms must be >= 0, got {self.backoff_step_ms}")
        if self.backoff_max_ms < 0:
            raise ValueError(f"backoff_max_ms must be >= 0, got {self.backoff_max_ms}")

    @property
    def retry_policy(self) -> RetryPolicy:
        """The retry policy described by these options."""
        return RetryPolicy(
            max_attempts=self.max_retries,
            backoff_step_ms=self.backoff_step_ms,
            backoff_max_ms=self.backoff_max_ms,
        )


# ---------------------------------------------------------------------------
# Step outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Success:
    result: ProbeResult


@dataclass(frozen=True)
class _Defer:
    reason: str


@dataclass(frozen=True)
class _Fail:
    error: ProbeError


_StepOutcome = _Success | _Defer | _Fail


@dataclass(frozen=True)
class _ProbeContext:
    """Per-call state shared by the three probe steps."""

    url: str
    options: ProbeOptions
    transport: Transport
    headers: Mapping[str, str]
    range_headers: Mapping[str, str]

    @property
    def timeout_seconds(self) -> float:
        return self.options.timeout_ms / 1000


def _validate_url(url: object) -> str:
    """Return *url* if it is an absolute http(s) URL, else raise ``INVALID_URL``."""
    if not isinstance(url, str) or not url.strip():
        raise ProbeError.invalid_url(str(url))
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        parts.port  # noqa: B018 - raises ValueError for a non-numeric or out of range port
    except ValueError:
        raise ProbeError.invalid_url(url) from None
    if parts.scheme.lower() not in ("http", "https") or not hostname or _FORBIDDEN_HOST_RE.search(hostname):
        raise ProbeError.invalid_url(url)
    return url


def _merge_headers(url: str, caller_headers: Mapping[str, str]) -> tuple[dict[str, str], dict[str, str]]:
    """Return ``(plain_headers, range_headers)`` built from the caller's headers.

    A caller-supplied ``Range`` header is dropped from every request, and the
    probe's own one-byte ``Range`` is used on the range and get steps.  The
    replacement is logged.
    """
    plain: dict[str, str] = {}
    for name, value in caller_headers.items():
        if name.lower() == "range":
            _logger.warning(
                "Caller Range header %r replaced by %r",
                value,
                _RANGE_HEADER_VALUE,
                extra={"url": url, "header_value": value},
            )
            continue
        plain[name] = value
    return plain, {**plain, "Range": _RANGE_HEADER_VALUE}


async def _send(ctx: _ProbeContext, method: HttpMethod, headers: Mapping[str, str]) -> TransportResponse:
    """Perform one request under the per-request deadline.

    Raises:
        ProbeError: ``TIMEOUT`` when the deadline elapses, ``NETWORK`` for any
            other transport failure.

    """
    request = TransportRequest(
        url=ctx.url,
        method=method,
        headers=headers,
        follow_redirects=ctx.options.follow_redirects,
        timeout_seconds=ctx.timeout_seconds,
    )
    try:
        async with asyncio.timeout(ctx.timeout_seconds):
            return await ctx.transport(request)
    except TimeoutError as exc:
        raise ProbeError.timeout(ctx.options.timeout_ms, url=ctx.url) from exc
    except ProbeError:
        raise
    except Exception as exc:
        raise ProbeError.network(str(exc) or type(exc).__name__, url=ctx.url) from exc


def _accepts_byte_ranges(value: str | None) -> bool:
    if not value:
        return False
    return any(token.strip().lower() == "bytes" for token in value.split(","))


def _build_result(
    ctx: _ProbeContext,
    resp: TransportResponse,
    *,
    size: int | None,
    supports_range_requests: bool,
    method: ProbeMethod,
) -> ProbeResult:
    content_type = normalize_content_type(resp.headers.get("content-type"))
    if ctx.options.allow_platform_quirks:
        corrected = apply_platform_quirks(ctx.url, content_type)
        reason = get_quirk_reason(ctx.url, content_type, corrected)
        if reason is not None:
            _logger.info(reason, extra={"url": ctx.url, "original": content_type, "corrected": corrected})
        content_type = normalize_content_type(corrected)
    return ProbeResult(
        content_type=content_type,
        size=size,
        supports_range_requests=supports_range_requests,
        is_video=is_video_content(content_type, ctx.url),
        is_audio=is_audio_content(content_type, ctx.url),
        method=method,
    )


# ---------------------------------------------------------------------------
# Probe steps
# ---------------------------------------------------------------------------


async def _probe_with_range(ctx: _ProbeContext) -> _StepOutcome:
    """Range step: succeed only on ``206`` with a parseable ``Content-Range``."""
    try:
        resp = await _send(ctx, "GET", ctx.range_headers)
    except ProbeError as exc:
        return _Defer(f"range request failed: {exc.message}")
    if resp.status != 206:
        return _Defer(f"range request returned {resp.status}")
    size = extract_size_from_content_range(resp.headers.get("content-range"))
    if size is None:
        return _Defer("206 response without a usable Content-Range")
    return _Success(_build_result(ctx, resp, size=size, supports_range_requests=True, method=ProbeMethod.RANGE))


async def _probe_with_head(ctx: _ProbeContext) -> _StepOutcome:
    """Head step: any non-2xx, including ``405``, defers to the get step."""
    try:
        resp = await _send(ctx, "HEAD", ctx.headers)
    except ProbeError as exc:
        return _Defer(f"HEAD request failed: {exc.message}")
    if resp.status == 405:
        return _Defer("HEAD not allowed")
    if not resp.ok:
        return _Defer(f"HEAD request returned {resp.status}")
    return _Success(
        _build_result(
            ctx,
            resp,
            size=extract_size_from_content_length(resp.headers.get("content-length")),
            supports_range_requests=_accepts_byte_ranges(resp.headers.get("accept-ranges")),
            method=ProbeMethod.HEAD,
        )
    )


async def _probe_with_get(ctx: _ProbeContext) -> _Success | _Fail:
    """Get step: the final fallback, and the only step that fails."""
    try:
        resp = await _send(ctx, "GET", ctx.range_headers)
    except ProbeError as exc:
        return _Fail(exc)
    if not resp.ok:
        return _Fail(ProbeError.from_status(resp.status, ctx.url, method="GET"))

    size = extract_size_from_content_range(resp.headers.get("content-range"))
    if size is None:
        size = extract_size_from_content_length(resp.headers.get("content-length"))
    supports_range = _accepts_byte_ranges(resp.headers.get("accept-ranges")) or resp.status == 206
    return _Success(_build_result(ctx, resp, size=size, supports_range_requests=supports_range, method=ProbeMethod.GET))


async def _attempt_cycle(ctx: _ProbeContext) -> ProbeResult:
    """Run range, head and get in order; return the first success."""
    for method, step in ((ProbeMethod.RANGE, _probe_with_range), (ProbeMethod.HEAD, _probe_with_head)):
        outcome = await step(ctx)
        if isinstance(outcome, _Success):
            return outcome.result
        if isinstance(outcome, _Fail):
            raise outcome.error
        _logger.debug(
            "%s probe deferred for %s: %s",
            method.value,
            ctx.url,
            outcome.reason,
            extra={"url": ctx.url, "method": method.value},
        )

    final = await _probe_with_get(ctx)
    if isinstance(final, _Fail):
        raise final.error
    return final.result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def probe_media(
    url: str,
    options: ProbeOptions | None = None,
    *,
    _sleep: Sleep = asyncio.sleep,
) -> ProbeResult:
    """Probe *url* for its content type, size and range support.

    Args:
        url: Absolute ``http`` or ``https`` URL of the media resource.
        options: Probe configuration; defaults to :class:`ProbeOptions()`.
        _sleep: Async sleep used for backoff (injectable for tests).

    Returns:
        The metadata produced by the first step that succeeded.

    Raises:
        ProbeError: Classified failure; see :class:`~media_probe.errors.ErrorKind`.

    Example::

        result = await probe_media("https://example.com/video.mp4")
        result.size                      # 1048576
        result.content_type              # "video/mp4"
        result.supports_range_requests   # True

    """
    if options is None:
        options = ProbeOptions()
    url = _validate_url(url)

    headers, range_headers = _merge_headers(url, options.headers)
    ctx = _ProbeContext(
        url=url,
        options=options,
        transport=options.transport if options.transport is not None else AiohttpTransport(),
        headers=headers,
        range_headers=range_headers,
    )

    t0 = time.monotonic()
    total_timeout = options.total_timeout_ms / 1000 if options.total_timeout_ms is not None else None
    try:
        async with asyncio.timeout(total_timeout):
            result = await run_with_retry(
                lambda: _attempt_cycle(ctx),
                policy=options.retry_policy,
                url=url,
                _sleep=_sleep,
            )
    except TimeoutError as exc:
        raise ProbeError(
            ErrorKind.TIMEOUT,
            f"Probe timed out after {options.total_timeout_ms}ms overall",
            url=url,
        ) from exc

    duration_ms = (time.monotonic() - t0) * 1000
    _logger.debug(
        "Probe completed: %s via %s (%s bytes, %.1fms)",
        url,
        result.method.value,
        result.size,
        duration_ms,
        extra={
            "url": url,
            "method": result.method.value,
            "size_bytes": result.size,
            "duration_ms": round(duration_ms, 2),
        },
    )
    return result


def probe_media_sync(url: str, options: ProbeOptions | None = None) -> ProbeResult:
    """Blocking wrapper around :func:`probe_media`.

    Safe to call from inside a running event loop: the probe then runs on a
    private loop in a worker thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(probe_media(url, options))
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, probe_media(url, options)).result()


async def probe_many(
    urls: Iterable[str],
    options: ProbeOptions | None = None,
    *,
    concurrency: int = 8,
    _sleep: Sleep = asyncio.sleep,
) -> list[ProbeResult | ProbeError]:
    """Probe several URLs concurrently.

    Probes are independent; at most *concurrency* run at once.  Results are
    returned in input order, with classified failures in place of results.

    Raises:
        ValueError: If *concurrency* < 1.

    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    semaphore = asyncio.Semaphore(concurrency)

    async def _probe_one(url: str) -> ProbeResult | ProbeError:
        async with semaphore:
            try:
                return await probe_media(url, options, _sleep=_sleep)
            except ProbeError as exc:
                return exc

    return list(await asyncio.gather(*(_probe_one(url) for url in urls)))
