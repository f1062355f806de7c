"""Production implementations of dependency injection protocols.

These wrap the real logging module, filesystem and clock. For testing, use
mocks or test doubles instead of these implementations.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union


class ConsoleLogger:
    """Production logger that writes through the ``osd_deploy`` logging tree.

    Formatting (timestamps, destinations) is owned by
    ``osd_deploy.utils.logging_config.configure_logging``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("osd_deploy")

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(f"Warning: {message}")

    def error(self, message: str) -> None:
        self._logger.error(f"[ERROR] {message}")

    def debug(self, message: str) -> None:
        self._logger.debug(message)


class RealFileSystemService:
    """Production filesystem service using real pathlib operations."""

    def is_file(self, path: Union[str, Path]) -> bool:
        """Check if path is a regular file."""
        return Path(path).is_file()

    def read_text(self, path: Union[str, Path]) -> str:
        """Read entire file as string."""
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def read_bytes(self, path: Union[str, Path]) -> bytes:
        """Read entire file as bytes."""
        with open(path, 'rb') as f:
            return f.read()


class SystemTimeProvider:
    """Production time provider using real time module."""

    def current_time(self) -> float:
        """Get current time in seconds since epoch."""
        return time.time()
