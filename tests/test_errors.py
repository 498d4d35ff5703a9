"""Tests for the ProbeError taxonomy in errors.py."""

from __future__ import annotations

import pytest

from media_probe.errors import ErrorKind, ProbeError

URL = "https://example.com/a.mp4"


class TestFromStatus:
    """Tests for ProbeError.from_status classification."""

    @pytest.mark.parametrize(
        ("status", "kind", "message"),
        [
            (401, ErrorKind.UNAUTHORIZED, f"Unauthorized access: {URL}"),
            (403, ErrorKind.FORBIDDEN, f"Access forbidden: {URL}"),
            (404, ErrorKind.NOT_FOUND, f"Media not found: {URL}"),
            (400, ErrorKind.CLIENT_ERROR, "GET request failed with status 400"),
            (429, ErrorKind.CLIENT_ERROR, "GET request failed with status 429"),
            (500, ErrorKind.SERVER_ERROR, "GET request failed with status 500"),
            (599, ErrorKind.SERVER_ERROR, "GET request failed with status 599"),
            (304, ErrorKind.NETWORK, "GET request failed with status 304"),
        ],
    )
    def test_mapping(self, status: int, kind: ErrorKind, message: str) -> None:
        """Each status class maps to one kind and keeps the status code."""
        err = ProbeError.from_status(status, URL)
        assert err.kind is kind
        assert err.message == message
        assert str(err) == message
        assert err.status_code == status
        assert err.url == URL

    def test_method_in_message(self) -> None:
        """The request method appears in generic messages."""
        assert ProbeError.from_status(502, URL, method="HEAD").message == "HEAD request failed with status 502"


class TestRetryable:
    """Tests for the retryable partition."""

    @pytest.mark.parametrize("status", [401, 403, 404, 400, 451])
    def test_client_errors_terminal(self, status: int) -> None:
        """4xx errors are never retried and are client errors."""
        err = ProbeError.from_status(status, URL)
        assert not err.is_retryable
        assert err.is_client_error

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_retryable(self, status: int) -> None:
        """5xx errors are retried."""
        err = ProbeError.from_status(status, URL)
        assert err.is_retryable
        assert not err.is_client_error

    def test_timeout_retryable(self) -> None:
        """Timeouts are retried."""
        assert ProbeError.timeout(500, url=URL).is_retryable

    def test_network_without_status_retryable(self) -> None:
        """Transport failures without a status are retried."""
        assert ProbeError.network("connection reset", url=URL).is_retryable

    def test_network_with_status_terminal(self) -> None:
        """A NETWORK error carrying a status code is not retried."""
        assert not ProbeError.from_status(302, URL).is_retryable

    def test_invalid_url_terminal(self) -> None:
        """INVALID_URL is never retried."""
        assert not ProbeError.invalid_url("nope").is_retryable

    def test_retries_exhausted_terminal(self) -> None:
        """RETRIES_EXHAUSTED is terminal."""
        assert not ProbeError.retries_exhausted(3).is_retryable


class TestConstructors:
    """Tests for the message-building constructors."""

    def test_timeout_message(self) -> None:
        """The deadline is rendered in milliseconds."""
        assert ProbeError.timeout(10_000).message == "Request timed out after 10000ms"
        assert ProbeError.timeout(12.5).message == "Request timed out after 12.5ms"
        assert ProbeError.timeout(1_000_000).message == "Request timed out after 1000000ms"
        assert ProbeError.timeout(2000.0).message == "Request timed out after 2000ms"

    def test_invalid_url_message(self) -> None:
        """The offending URL is echoed back."""
        err = ProbeError.invalid_url("ftp://x")
        assert err.kind is ErrorKind.INVALID_URL
        assert err.message == "Invalid URL: ftp://x"
        assert err.url == "ftp://x"

    def test_network_default_message(self) -> None:
        """An empty message is replaced by a generic one."""
        assert ProbeError.network("").message == "Network request failed"

    def test_retries_exhausted_message(self) -> None:
        """The attempt count appears in the message."""
        assert ProbeError.retries_exhausted(4).message == "Max retries exceeded after 4 attempts"


class TestSerialization:
    """Tests for to_dict and repr."""

    def test_to_dict(self) -> None:
        """``to_dict`` is JSON-ready with the kind as a string."""
        assert ProbeError.from_status(404, URL).to_dict() == {
            "kind": "not_found",
            "message": f"Media not found: {URL}",
            "status_code": 404,
            "url": URL,
        }

    def test_repr(self) -> None:
        """The repr shows kind and status."""
        text = repr(ProbeError.from_status(503, URL))
        assert "server_error" in text
        assert "503" in text

    def test_is_exception(self) -> None:
        """ProbeError can be raised and caught as an Exception."""
        with pytest.raises(Exception, match="Media not found"):
            raise ProbeError.from_status(404, URL)
