"""Logging helpers for the deploy CLI."""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_LOG_FILE: Optional[Path] = None
_CONFIGURED = False

CONSOLE_FORMAT = "[%(asctime)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    *,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    stream=None,
    error_stream=None,
) -> Optional[Path]:
    """Configure the ``osd_deploy`` logger with timestamped console output.

    Records below ERROR go to stdout, errors to stderr.

    When ``log_dir`` is given, a ``deploy-<UTC timestamp>.log`` file receives
    the same records with level and logger name. Returns that file, if any.
    """

    global _CONFIGURED, _LOG_FILE

    if _CONFIGURED:
        return _LOG_FILE

    root = logging.getLogger("osd_deploy")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_formatter = logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(lambda record: record.levelno < logging.ERROR)
    root.addHandler(console_handler)

    error_handler = logging.StreamHandler(error_stream or sys.stderr)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(console_formatter)
    root.addHandler(error_handler)

    log_file = None
    if log_dir is not None:
        log_directory = Path(log_dir).expanduser()
        log_directory.mkdir(parents=True, exist_ok=True)
        log_file = log_directory / f"deploy-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    _CONFIGURED = True
    _LOG_FILE = log_file
    if log_file is not None:
        root.debug("Logging to %s", log_file)
    return log_file


def reset_logging() -> None:
    """Drop handlers installed by ``configure_logging`` (used by tests)."""

    global _CONFIGURED, _LOG_FILE

    root = logging.getLogger("osd_deploy")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    _CONFIGURED = False
    _LOG_FILE = None


def current_log_file() -> Optional[Path]:
    """Return the log file configured via ``configure_logging``, if any."""

    return _LOG_FILE


__all__ = ["configure_logging", "reset_logging", "current_log_file"]
