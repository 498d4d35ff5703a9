# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Command-line interface for media-probe.

Usage::

    media-probe probe https://example.com/video.mp4
    media-probe probe --format table a.mp3 b.mp4 --concurrency 4
    media-probe --log-level debug --log-format json probe -H "Authorization: Bearer x" URL

Each URL produces one JSON object on stdout (or a table row).  Failures are
written to stderr as ``{"error": {...}}`` and make the command exit with 1.
"""

from __future__ import annotations

import asyncio
import json
from enum import StrEnum
from typing import Annotated

import typer

from media_probe import __version__
from media_probe.errors import ProbeError
from media_probe.logging_utils import configure_logging
from media_probe.probe import ProbeOptions, ProbeResult, probe_many

# ---------------------------------------------------------------------------
# Option enums
# ---------------------------------------------------------------------------


class OutputFormat(StrEnum):
    """Output format for probe results."""

    json = "json"
    table = "table"


class LogFormat(StrEnum):
    """Format of diagnostic log lines written to stderr."""

    text = "text"
    json = "json"


class LogLevel(StrEnum):
    """Log threshold for the ``media_probe`` logger."""

    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"


app = typer.Typer(
    name="media-probe",
    help="Probe remote media URLs for content type, size and range support.",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"media-probe {__version__}")
        raise typer.Exit()


@app.callback()
def _main(
    log_level: Annotated[
        LogLevel, typer.Option("--log-level", "-l", envvar="MEDIA_PROBE_LOG_LEVEL", help="Log threshold")
    ] = LogLevel.warning,
    log_format: Annotated[
        LogFormat, typer.Option("--log-format", envvar="MEDIA_PROBE_LOG_FORMAT", help="Log line format")
    ] = LogFormat.text,
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Configure logging for all commands."""
    configure_logging(log_level.value.upper(), json_format=log_format is LogFormat.json)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_headers(values: list[str]) -> dict[str, str]:
    """Parse repeated ``Name: Value`` options into a header mapping.

    Raises:
        typer.BadParameter: If an entry has no ``:`` or an empty name.

    """
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: Value', got {raw!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def _table_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _is_count(value: object) -> bool:
    return value is None or (isinstance(value, int) and not isinstance(value, bool))


def _format_table(rows: list[dict[str, object]]) -> str:
    """Render result rows as a column-aligned table.

    Columns follow the key order of the first row.  Integer columns (sizes)
    are right-aligned.  Booleans print as ``yes``/``no``; ``None`` leaves the
    cell empty.
    """
    if not rows:
        return "(empty)"
    columns = list(rows[0])
    cells = [[_table_cell(row.get(col)) for col in columns] for row in rows]
    numeric = [all(_is_count(row.get(col)) for row in rows) for col in columns]
    widths = [max(len(col), *(len(line[i]) for line in cells)) for i, col in enumerate(columns)]

    def render(values: list[str]) -> str:
        padded = (v.rjust(w) if num else v.ljust(w) for v, w, num in zip(values, widths, numeric, strict=True))
        return "  ".join(padded).rstrip()

    lines = [render(columns), "  ".join("-" * w for w in widths)]
    lines.extend(render(line) for line in cells)
    return "\n".join(lines)


def _emit_probe_error(e: ProbeError) -> None:
    """Write a ProbeError to stderr as JSON."""
    typer.echo(json.dumps({"error": e.to_dict()}, default=str), err=True)


# ---------------------------------------------------------------------------
# probe command
# ---------------------------------------------------------------------------


@app.command()
def probe(
    urls: Annotated[list[str], typer.Argument(help="Media URLs to probe")],
    timeout_ms: Annotated[
        int, typer.Option("--timeout-ms", "-t", envvar="MEDIA_PROBE_TIMEOUT_MS", help="Per-request timeout")
    ] = 10_000,
    max_retries: Annotated[
        int, typer.Option("--max-retries", "-r", envvar="MEDIA_PROBE_MAX_RETRIES", help="Attempt cycles")
    ] = 3,
    header: Annotated[
        list[str] | None, typer.Option("--header", "-H", help="Extra request header, 'Name: Value'")
    ] = None,
    no_follow_redirects: Annotated[
        bool, typer.Option("--no-follow-redirects", help="Return redirects instead of following them")
    ] = False,
    platform_quirks: Annotated[
        bool, typer.Option("--platform-quirks", help="Correct known CDN content-type misreporting")
    ] = False,
    concurrency: Annotated[int, typer.Option("--concurrency", "-c", min=1, help="Parallel probes")] = 8,
    fmt: Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format")] = OutputFormat.json,
) -> None:
    """Probe one or more media URLs."""
    try:
        options = ProbeOptions(
            max_retries=max_retries,
            timeout_ms=timeout_ms,
            headers=_parse_headers(header or []),
            follow_redirects=not no_follow_redirects,
            allow_platform_quirks=platform_quirks,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None

    outcomes = asyncio.run(probe_many(urls, options, concurrency=concurrency))

    rows: list[dict[str, object]] = []
    failed = False
    for url, outcome in zip(urls, outcomes, strict=True):
        if isinstance(outcome, ProbeError):
            failed = True
            _emit_probe_error(outcome)
            continue
        rows.append(_result_row(url, outcome))

    if fmt is OutputFormat.table:
        if rows:
            typer.echo(_format_table(rows))
    else:
        for row in rows:
            typer.echo(json.dumps(row, default=str))

    if failed:
        raise typer.Exit(1)


def _result_row(url: str, result: ProbeResult) -> dict[str, object]:
    return {"url": url, **result.to_dict()}
