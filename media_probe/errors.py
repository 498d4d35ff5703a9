# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Classified probe failures.

Every failure surfaced by :func:`media_probe.probe_media` is a
:class:`ProbeError` tagged with an :class:`ErrorKind`.  Callers dispatch on
``error.kind`` rather than on exception subclasses::

    try:
        result = await probe_media(url)
    except ProbeError as e:
        if e.kind is ErrorKind.NOT_FOUND:
            ...

Retry eligibility is a property of the error (:attr:`ProbeError.is_retryable`)
so the retry loop and callers share one definition.
"""

from __future__ import annotations

from enum import StrEnum

__all__ = [
    "ErrorKind",
    "ProbeError",
]


class ErrorKind(StrEnum):
    """Closed taxonomy of probe failures.

    Attributes:
        INVALID_URL: The URL failed syntactic validation.  Never retried.
        TIMEOUT: A request exceeded its deadline.  Retried.
        UNAUTHORIZED: HTTP 401.  Never retried.
        FORBIDDEN: HTTP 403.  Never retried.
        NOT_FOUND: HTTP 404.  Never retried.
        CLIENT_ERROR: Any other HTTP 4xx.  Never retried.
        SERVER_ERROR: HTTP 5xx.  Retried.
        NETWORK: Transport failure.  Retried only when no status code is
            attached.
        RETRIES_EXHAUSTED: The retry loop ended without recording an error.

    """

    INVALID_URL = "invalid_url"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    RETRIES_EXHAUSTED = "retries_exhausted"


_CLIENT_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN, ErrorKind.NOT_FOUND, ErrorKind.CLIENT_ERROR}
)

_STATUS_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
}


class ProbeError(Exception):
    """Raised when a probe fails.

    Attributes:
        kind: The failure classification.
        message: Human-readable description.
        status_code: HTTP status code for HTTP-derived failures, else ``None``.
        url: The probed URL, when known.

    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize with a kind, message and optional HTTP context."""
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(message)

    def __repr__(self) -> str:
        """Return a debug representation including kind and status."""
        return f"ProbeError(kind={self.kind.value!r}, message={self.message!r}, status_code={self.status_code!r})"

    # -- Classification -------------------------------------------------------

    @property
    def is_client_error(self) -> bool:
        """Whether the server rejected the request itself (4xx)."""
        return self.kind in _CLIENT_KINDS

    @property
    def is_retryable(self) -> bool:
        """Whether another attempt cycle could succeed.

        Server errors and timeouts are retried; generic network errors only
        when they carry no status code.  Everything else is terminal.
        """
        if self.kind in (ErrorKind.SERVER_ERROR, ErrorKind.TIMEOUT):
            return True
        return self.kind is ErrorKind.NETWORK and self.status_code is None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready description of the error."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "url": self.url,
        }

    # -- Constructors ---------------------------------------------------------

    @classmethod
    def invalid_url(cls, url: str) -> ProbeError:
        """Build an ``INVALID_URL`` error."""
        return cls(ErrorKind.INVALID_URL, f"Invalid URL: {url}", url=url)

    @classmethod
    def timeout(cls, timeout_ms: float, *, url: str | None = None) -> ProbeError:
        """Build a ``TIMEOUT`` error for a deadline of *timeout_ms*."""
        shown = int(timeout_ms) if float(timeout_ms).is_integer() else timeout_ms
        return cls(ErrorKind.TIMEOUT, f"Request timed out after {shown}ms", url=url)

    @classmethod
    def network(cls, message: str, *, url: str | None = None, status_code: int | None = None) -> ProbeError:
        """Build a ``NETWORK`` error."""
        return cls(ErrorKind.NETWORK, message or "Network request failed", url=url, status_code=status_code)

    @classmethod
    def retries_exhausted(cls, attempts: int, *, url: str | None = None) -> ProbeError:
        """Build a ``RETRIES_EXHAUSTED`` error."""
        return cls(ErrorKind.RETRIES_EXHAUSTED, f"Max retries exceeded after {attempts} attempts", url=url)

    @classmethod
    def from_status(cls, status: int, url: str, *, method: str = "GET") -> ProbeError:
        """Classify a non-success HTTP status.

        401/403/404 map to their dedicated kinds, other 4xx to
        ``CLIENT_ERROR`` and 5xx to ``SERVER_ERROR``.  Any other non-2xx
        status (an unfollowed redirect, for instance) becomes a ``NETWORK``
        error that keeps its status code and is therefore not retried.
        """
        message = f"{method} request failed with status {status}"
        kind = _STATUS_KINDS.get(status)
        if kind is ErrorKind.NOT_FOUND:
            message = f"Media not found: {url}"
        elif kind is ErrorKind.FORBIDDEN:
            message = f"Access forbidden: {url}"
        elif kind is ErrorKind.UNAUTHORIZED:
            message = f"Unauthorized access: {url}"
        elif 400 <= status < 500:
            kind = ErrorKind.CLIENT_ERROR
        elif 500 <= status < 600:
            kind = ErrorKind.SERVER_ERROR
        else:
            kind = ErrorKind.NETWORK
        return cls(kind, message, status_code=status, url=url)
