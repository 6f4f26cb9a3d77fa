"""Console logging for the scratch CLI, the build pipeline and the dev server."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "scratchwork"
_PREFIX = "[scratch]"


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one part of scratch, e.g. ``get_logger("build.bundle")``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class _ConsoleFormatter(logging.Formatter):
    """Progress lines stay terse; warnings and errors carry their level.

    Verbose runs also name the emitting component (``build.orchestrator``)
    so step timings and hook failures can be traced to their source.
    """

    def __init__(self, *, verbose: bool) -> None:
        super().__init__()
        self.verbose = verbose

    def format(self, record: logging.LogRecord) -> str:
        parts = [_PREFIX]
        if self.verbose:
            parts.append(record.name[len(_LOGGER_NAME) + 1:] or _LOGGER_NAME)
        if record.levelno != logging.INFO:
            parts.append(record.levelname)
        parts.append(record.getMessage())
        line = " ".join(parts)
        if record.exc_info and self.verbose:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send scratch logs to the console and optionally to ``log_file``.

    Debug output (step timings, skipped steps, hook failures) is only shown
    with ``verbose``.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # The dev server rebuilds in-process; repeated calls must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(_ConsoleFormatter(verbose=verbose))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
