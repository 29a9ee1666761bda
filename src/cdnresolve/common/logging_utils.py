"""Logging helpers shared across the resolver, transports and CLI.

Provides the structured ``extra`` builder used with every log record, a
cheap DEBUG guard, a small wall-clock timer and URL redaction so that
credentials or signed query strings never land in logs.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from cdnresolve.constants import Constants


def configure_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Install the package log format on the root logger.

    Args:
        level: Level name; falls back to the CDNRESOLVE_LOG_LEVEL env var, then INFO.
        logfile: Optional path of a file that also receives every record.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(stream)

    if logfile:
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s " + Constants.LOG_FORMAT))
        root.addHandler(file_handler)

    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for a log call, dropping unset fields."""
    return {key: value for key, value in fields.items() if value is not None}


def safe_url(url: str) -> str:
    """Strip userinfo and query string from a URL before logging it."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    query = "[REDACTED]" if parts.query else ""
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, ""))


class Timer:
    """Context manager measuring elapsed wall-clock time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
