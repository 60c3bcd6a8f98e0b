"""structlog setup shared by the API and the mock worker."""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from realizeit.config import settings


class _FileMirror:
    """File-like sink that writes every line to stdout and, if possible, a file.

    A log file that cannot be opened or written is dropped with a warning on
    stderr; stdout logging keeps going.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        try:
            self._fh = open(path, "a")  # noqa: SIM115
        except OSError as exc:
            self._disable(f"cannot open {path!r}: {exc}")

    def _disable(self, reason: str) -> None:
        self._fh = None
        print(f"WARNING: file logging disabled ({reason})", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._fh is None:
            return
        try:
            self._fh.write(data)
            self._fh.flush()
        except (OSError, ValueError) as exc:
            self._disable(f"write to {self._path!r} failed: {exc}")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._fh is None:
            return
        try:
            self._fh.flush()
        except (OSError, ValueError) as exc:
            self._disable(f"flush of {self._path!r} failed: {exc}")


def _level() -> int:
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Pretty console output in development, JSON lines everywhere else.

    LOG_FILE mirrors the output into a file as well.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.environment == "development":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    sink = _FileMirror(settings.log_file) if settings.log_file else None

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sink),  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )
