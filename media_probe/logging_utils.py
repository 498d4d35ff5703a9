# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Structured logging helpers for media-probe.

Provides :class:`ProbeJsonFormatter`, a :class:`logging.Formatter` that
renders each record as one JSON object, including the ``extra`` context the
probe attaches (``url``, ``method``, ``status``, ``attempt``, ``delay_ms``,
``duration_ms``), and :func:`configure_logging`, which the CLI uses to
install it.

This module is **not** imported by ``media_probe`` itself; import it
explicitly::

    from media_probe.logging_utils import ProbeJsonFormatter
"""

from __future__ import annotations

import json
import logging
from typing import TextIO

__all__ = ["ProbeJsonFormatter", "configure_logging"]

# Attribute names every LogRecord has; anything else arrived via ``extra``.
_DEFAULT_RECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {
    "message",
    "asctime",
}

_RESERVED_KEYS: frozenset[str] = frozenset({"timestamp", "level", "logger", "message", "exception", "stack_info"})

# Probe context, emitted right after ``message`` in this order when present.
_PROBE_FIELDS: tuple[str, ...] = ("url", "method", "status", "kind", "attempt", "delay_ms", "duration_ms")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ProbeJsonFormatter(logging.Formatter):
    """JSON formatter with a stable key order for probe log lines.

    Keys come out as ``timestamp``, ``level``, ``logger`` and ``message``,
    then the probe context fields (``url``, ``method``, ``status``, ``kind``,
    ``attempt``, ``delay_ms``, ``duration_ms``) that the record carries, then
    any other ``extra`` fields sorted by name.  Extras cannot overwrite the
    four fixed keys.  Exception text goes under ``"exception"``.
    Non-serializable values are coerced with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        record.message = record.getMessage()
        extras = {
            k: v for k, v in record.__dict__.items() if k not in _DEFAULT_RECORD_ATTRS and k not in _RESERVED_KEYS
        }
        obj: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }
        for key in _PROBE_FIELDS:
            if key in extras:
                obj[key] = extras.pop(key)
        obj.update(sorted(extras.items()))
        if record.exc_info and record.exc_info[1]:
            obj["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            obj["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(obj, default=str)


def configure_logging(
    level: int | str = logging.WARNING,
    *,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Attach a stream handler to the ``media_probe`` logger.

    Replaces any handler previously installed by this function so repeated
    calls do not duplicate output.

    Args:
        level: Threshold for the ``media_probe`` logger hierarchy.
        json_format: Use :class:`ProbeJsonFormatter` instead of plain text.
        stream: Destination stream; ``sys.stderr`` when ``None``.

    Returns:
        The installed handler.

    """
    logger = logging.getLogger("media_probe")
    for existing in list(logger.handlers):
        if getattr(existing, "_media_probe_handler", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ProbeJsonFormatter() if json_format else logging.Formatter(_TEXT_FORMAT))
    handler._media_probe_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
