"""Logging setup for pkgverify: logger names, check-line rendering and handlers.

Stage notifications are plain INFO records. Check outcomes carry a
``check_tag`` attribute (``[OK]``, ``[MISSING]``, ...) and are logged at a
level derived from the governing severity, so the console only shows passing
checks in verbose mode while failures surface as warnings or errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .models import Severity

_LOGGER_NAME = "pkgverify"
_OK_TAG = "[OK]"
_FAIL_TAGS = {
    "file": "[MISSING]",
    "pattern": "[MISSING]",
    "group": "[MISSING]",
    "derive": "[DERIVE]",
    "unexpected": "[UNEXPECTED]",
}
_SEVERITY_LEVELS = {
    Severity.ERROR: logging.ERROR,
    Severity.WARN: logging.WARNING,
    Severity.IGNORE: logging.DEBUG,
}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the pkgverify hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def check_tag(kind: str, ok: bool) -> str:
    if ok:
        return _OK_TAG
    return _FAIL_TAGS.get(kind, "[FAIL]")


def check_level(severity: Optional[Severity], ok: bool) -> int:
    """Passing checks log at DEBUG; failures at the level their severity maps to."""
    if ok or severity is None:
        return logging.DEBUG
    return _SEVERITY_LEVELS[severity]


class CheckFormatter(logging.Formatter):
    """Renders stage lines with the tool prefix and check lines indented under them."""

    def __init__(self, *, timestamps: bool = False) -> None:
        super().__init__()
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        tag = getattr(record, "check_tag", None)
        if tag is not None:
            line = f"  {tag} {message}"
        elif record.levelno >= logging.WARNING:
            line = f"[{_LOGGER_NAME}] {record.levelname} {message}"
        else:
            line = f"[{_LOGGER_NAME}] {message}"
        if self.timestamps:
            line = f"{self.formatTime(record)} {record.levelname:<7} {line}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the console handler and, optionally, a file sink that records every check.

    The console shows passing checks only when ``verbose`` is set; the log file
    always receives DEBUG records so a full trace survives a quiet run.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs more than once per process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    stream_handler.setFormatter(CheckFormatter())
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(CheckFormatter(timestamps=True))
        logger.addHandler(file_handler)

    return logger


__all__ = ["CheckFormatter", "check_level", "check_tag", "configure_logging", "get_logger"]
