"""Core dependency injection infrastructure for osd-deploy.

Protocol-based abstractions for the local side effects of a deploy (progress
output, reading build artifacts, the clock) with production implementations.
Unit tests substitute ``unittest.mock`` doubles.
"""

from osd_deploy.core.protocols import (
    Logger,
    FileSystemService,
    TimeProvider,
)

from osd_deploy.core.implementations import (
    ConsoleLogger,
    RealFileSystemService,
    SystemTimeProvider,
)

__all__ = [
    # Protocols
    "Logger",
    "FileSystemService",
    "TimeProvider",
    # Implementations
    "ConsoleLogger",
    "RealFileSystemService",
    "SystemTimeProvider",
]
