"""
Publisher types and collaborator protocols.

The publisher talks to two external systems:
    - PackageStore: the shared key-value store carrying package blobs
      and the reload notification (Redis in production)
    - RemoteHost: the deploy host, reached over SSH for pre-flight
      checks and the optional on-disk copy
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable

# Notification payload asking the consumer to reload every package.
RELOAD_ALL = "all"


@dataclass(frozen=True)
class Artifact:
    """
    A package archive selected for upload.

    Attributes:
        variant: Package flavour (e.g. "recording_day")
        logical_name: Name the consumer knows it by (e.g. "default.tar")
        source_path: Versioned archive in the dist directory
        build_mode: "dev" or "production"
        version: Build version read from the VERSION file
    """
    variant: str
    logical_name: str
    source_path: Path
    build_mode: str
    version: str


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of storing one artifact.

    Attributes:
        logical_name: Logical name written
        key: Store key the blob landed under
        size: Number of bytes written
        sha256: Hex digest of the bytes written
        disk_path: Remote on-disk copy, if disk copy was enabled
    """
    logical_name: str
    key: str
    size: int
    sha256: str
    disk_path: Optional[str] = None


@dataclass(frozen=True)
class BatchResult:
    """
    Ordered uploads of one invocation.

    Built by returning a new value from each upload step rather than by
    mutating shared state; the notify step only ever sees a complete batch.
    """
    uploads: Tuple[UploadResult, ...] = ()

    def add(self, upload: UploadResult) -> "BatchResult":
        return BatchResult(self.uploads + (upload,))

    @property
    def logical_names(self) -> Tuple[str, ...]:
        return tuple(u.logical_name for u in self.uploads)

    def notification_message(self) -> str:
        """Comma-joined logical names, or RELOAD_ALL for an empty batch."""
        if not self.uploads:
            return RELOAD_ALL
        return ",".join(self.logical_names)


@dataclass(frozen=True)
class PublishResult:
    """
    Result of a completed deploy.

    Attributes:
        batch: Every artifact written, in upload order
        message: Notification payload that was published
        receivers: Subscribers that received the notification
        metadata: Build mode, target and version of the run
    """
    batch: BatchResult
    message: str
    receivers: int
    metadata: Dict[str, str] = field(default_factory=dict)


@runtime_checkable
class PackageStore(Protocol):
    """
    Interface for the shared package store.

    Implementations:
        - RedisPackageStore: MULTI/EXEC SET + HSET, PUBLISH
    """

    def ping(self) -> None:
        """
        Verify the store is reachable and accepts our credentials.

        Raises:
            ConnectivityError: If the store cannot be reached
        """
        ...

    def put_package(self, logical_name: str, data: bytes, metadata: Mapping[str, str]) -> str:
        """
        Atomically replace the package blob and its metadata.

        Readers observe either the previous complete value or the new one.

        Returns:
            Store key the blob was written under

        Raises:
            TransferError: If the write is not acknowledged
        """
        ...

    def publish(self, message: str) -> int:
        """
        Publish the reload notification.

        Returns:
            Number of subscribers that received it

        Raises:
            TransferError: If the publish fails
        """
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class RemoteHost(Protocol):
    """
    Interface for the deploy host.

    Implementations:
        - SSHRemoteHost: ssh + rsync subprocesses
    """

    def check_connectivity(self) -> None:
        """
        Raises:
            ConnectivityError: With remediation steps if the host is unreachable
        """
        ...

    def ensure_directory(self, path: str) -> None:
        ...

    def copy_file(self, source: Path, remote_path: str) -> None:
        ...
