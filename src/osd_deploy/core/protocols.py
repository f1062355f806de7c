"""Protocol definitions for dependency injection.

This module defines Protocol-based abstractions for the external dependencies
the publisher touches locally. Protocols use structural typing, so any class
implementing these methods satisfies the Protocol without explicit inheritance.

Network-facing collaborators (the package store and the remote host) live in
``osd_deploy.deploy.base``.
"""

from typing import Protocol, Union
from pathlib import Path


class Logger(Protocol):
    """Abstraction for progress output.

    The publisher reports every step through this interface so tests can
    assert on what an operator would see.
    """

    def info(self, message: str) -> None:
        """Log informational message."""
        ...

    def warning(self, message: str) -> None:
        """Log warning message."""
        ...

    def error(self, message: str) -> None:
        """Log error message."""
        ...

    def debug(self, message: str) -> None:
        """Log debug message."""
        ...


class FileSystemService(Protocol):
    """Abstraction for local filesystem reads.

    Wraps Path I/O so unit tests can describe a dist directory without
    touching disk.
    """

    def is_file(self, path: Union[str, Path]) -> bool:
        """Check if path is a regular file."""
        ...

    def read_text(self, path: Union[str, Path]) -> str:
        """Read entire file as string."""
        ...

    def read_bytes(self, path: Union[str, Path]) -> bytes:
        """Read entire file as bytes."""
        ...


class TimeProvider(Protocol):
    """Abstraction for time operations.

    Keeps ``deployed_at`` stamps deterministic under test.
    """

    def current_time(self) -> float:
        """Get current time in seconds since epoch."""
        ...
