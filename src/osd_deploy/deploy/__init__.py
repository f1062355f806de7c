"""
Package deployment subsystem.

Publishes OSD package archives to the shared package store and notifies the
reload service:
    - PackagePublisher: batch assembly, sequential upload, single notification
    - RedisPackageStore: atomic blob + metadata writes, reload PUBLISH
    - SSHRemoteHost / SSHTunnel: pre-flight, disk copy, store tunnel

Public API:
    - PackageStore, RemoteHost: Protocol interfaces
    - Artifact, UploadResult, BatchResult, PublishResult: Result types
    - DeploymentError and its subclasses: Exceptions
"""

from .base import (
    RELOAD_ALL,
    Artifact,
    BatchResult,
    PackageStore,
    PublishResult,
    RemoteHost,
    UploadResult,
)
from .exceptions import (
    ConnectivityError,
    DeploymentError,
    PreconditionError,
    TransferError,
    UsageError,
)
from .factory import RemoteHostFactory, parse_server_string
from .publisher import PackagePublisher, check_remote
from .ssh_remote import SSHRemoteHost, SSHTunnel
from .store import RedisPackageStore
from .targets import BUILD_MODES, DEFAULT_TARGET, TARGETS, resolve_target

__all__ = [
    # Protocols and types
    "PackageStore",
    "RemoteHost",
    "Artifact",
    "UploadResult",
    "BatchResult",
    "PublishResult",
    "RELOAD_ALL",

    # Targets
    "BUILD_MODES",
    "TARGETS",
    "DEFAULT_TARGET",
    "resolve_target",

    # Factory
    "RemoteHostFactory",
    "parse_server_string",

    # Exceptions
    "DeploymentError",
    "UsageError",
    "PreconditionError",
    "ConnectivityError",
    "TransferError",

    # Implementations
    "PackagePublisher",
    "check_remote",
    "RedisPackageStore",
    "SSHRemoteHost",
    "SSHTunnel",
]
