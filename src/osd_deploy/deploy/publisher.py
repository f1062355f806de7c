"""
PackagePublisher - Upload a batch of packages and notify the consumer once.

Steps:
    1. Resolve target → ordered (variant, logical name) entries
    2. Pre-flight: SSH to the deploy host, PING the store
    3. Per artifact: check the archive exists, optional disk copy, store write
    4. Publish one notification listing the batch

A notification is only published after every write in the batch was
acknowledged. Any failure raises before step 4.
"""

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from osd_deploy.core import Logger, FileSystemService, TimeProvider

from .base import Artifact, BatchResult, PackageStore, PublishResult, RemoteHost, UploadResult
from .exceptions import PreconditionError
from .naming import DEFAULT_PACKAGE_PREFIX, package_filename, read_version
from .targets import DEFAULT_TARGET, resolve_target, validate_build_mode


def check_remote(remote: RemoteHost, logger: Logger) -> None:
    """
    Verify non-interactive SSH to the deploy host, with progress output.

    Raises:
        ConnectivityError: With remediation steps if the host is unreachable
    """
    destination = getattr(remote, "destination", None) or "deploy host"
    logger.info(f"Checking SSH connectivity to {destination}...")
    remote.check_connectivity()
    logger.info("✓ SSH connection verified")


class PackagePublisher:
    """
    Publishes package archives from a dist directory to the package store.

    All collaborators are injected; see ``osd_deploy.commands.deploy`` for
    the production wiring.
    """

    def __init__(
        self,
        store: PackageStore,
        remote: Optional[RemoteHost],
        filesystem: FileSystemService,
        time_provider: TimeProvider,
        logger: Logger,
        dist_dir: Path,
        version_file: Path,
        package_prefix: str = DEFAULT_PACKAGE_PREFIX,
        remote_osd_path: Optional[str] = None,
        disk_copy: bool = False,
        remote_verified: bool = False
    ):
        """
        Args:
            store: Package store receiving blobs and the notification
            remote: Deploy host for the SSH pre-flight and disk copy
                (None skips both, e.g. when the store is local)
            filesystem: Reads archives and the VERSION file
            time_provider: Source of ``deployed_at`` stamps
            logger: Progress output
            dist_dir: Directory holding the built archives
            version_file: File holding the build version
            package_prefix: Archive filename prefix
            remote_osd_path: Remote directory for disk copies
            disk_copy: Also rsync each archive to remote_osd_path
            remote_verified: The caller already ran check_remote, skip it in preflight
        """
        if disk_copy and (remote is None or not remote_osd_path):
            raise PreconditionError("Disk copy needs a remote host and a remote OSD path")

        self.store = store
        self.remote = remote
        self.fs = filesystem
        self.time = time_provider
        self.log = logger
        self.dist_dir = Path(dist_dir)
        self.version_file = Path(version_file)
        self.package_prefix = package_prefix
        self.remote_osd_path = remote_osd_path
        self.disk_copy = disk_copy
        self.remote_verified = remote_verified

    def assemble_batch(self, build_mode: str, target: str = DEFAULT_TARGET) -> Tuple[Artifact, ...]:
        """
        Resolve the artifacts a deploy would upload.

        Source paths are not checked here; a missing archive is reported when
        its turn comes in ``publish``.

        Raises:
            UsageError: Invalid build mode or target
            PreconditionError: VERSION file missing or empty
        """
        validate_build_mode(build_mode)
        packages = resolve_target(target)
        version = read_version(self.version_file, self.fs)

        return tuple(
            Artifact(
                variant=p.variant,
                logical_name=p.logical_name,
                source_path=self.dist_dir / package_filename(
                    p.variant, version, build_mode, self.package_prefix
                ),
                build_mode=build_mode,
                version=version,
            )
            for p in packages
        )

    def preflight(self) -> None:
        """
        Raises:
            ConnectivityError: Deploy host or store unreachable
        """
        if self.remote is not None and not self.remote_verified:
            check_remote(self.remote, self.log)

        self.log.info("Checking package store...")
        self.store.ping()
        self.log.info("✓ Package store reachable")

    def upload(self, artifact: Artifact, batch: BatchResult) -> BatchResult:
        """
        Store one artifact and return the batch extended with its result.

        Raises:
            PreconditionError: Archive missing from the dist directory or unreadable
            TransferError: Disk copy or store write failed
        """
        if not self.fs.is_file(artifact.source_path):
            raise PreconditionError(f"Package not found: {artifact.source_path}")

        try:
            data = self.fs.read_bytes(artifact.source_path)
        except OSError as e:
            raise PreconditionError(f"Could not read package {artifact.source_path}: {e}") from e
        digest = hashlib.sha256(data).hexdigest()

        disk_path = None
        if self.disk_copy:
            disk_path = f"{self.remote_osd_path.rstrip('/')}/{artifact.logical_name}"
            self.remote.copy_file(artifact.source_path, disk_path)
            self.log.info(f"  Deployed to disk: {artifact.source_path.name} -> {artifact.logical_name}")

        metadata = {
            "sha256": digest,
            "size": str(len(data)),
            "source": artifact.source_path.name,
            "version": artifact.version,
            "build_mode": artifact.build_mode,
            "deployed_at": self._timestamp(),
        }
        key = self.store.put_package(artifact.logical_name, data, metadata)
        self.log.info(f"  Pushed to store: {key} ({len(data)} bytes, sha256 {digest[:12]})")

        return batch.add(UploadResult(
            logical_name=artifact.logical_name,
            key=key,
            size=len(data),
            sha256=digest,
            disk_path=disk_path,
        ))

    def notify(self, batch: BatchResult) -> Tuple[str, int]:
        """Publish the single end-of-batch notification."""
        message = batch.notification_message()
        self.log.info(f"Notifying reload service: {message}")
        receivers = self.store.publish(message)
        if receivers == 0:
            self.log.warning("No reload service is subscribed; packages will be picked up on its next start")
        else:
            self.log.info(f"✓ Reload notification sent ({receivers} subscriber(s))")
        return message, receivers

    def publish(self, build_mode: str, target: str = DEFAULT_TARGET) -> PublishResult:
        """
        Deploy every artifact of target, then notify once.

        Raises:
            DeploymentError: Any failure; the notification is not sent
        """
        artifacts = self.assemble_batch(build_mode, target)
        self.preflight()

        if self.disk_copy:
            self.remote.ensure_directory(self.remote_osd_path)

        batch = BatchResult()
        for artifact in artifacts:
            batch = self.upload(artifact, batch)

        message, receivers = self.notify(batch)

        return PublishResult(
            batch=batch,
            message=message,
            receivers=receivers,
            metadata={
                "build_mode": build_mode,
                "target": target,
                "version": artifacts[0].version if artifacts else "",
            }
        )

    def _timestamp(self) -> str:
        return datetime.fromtimestamp(self.time.current_time(), tz=timezone.utc).isoformat()
