"""Unit tests for PackagePublisher.

Collaborators are mocks; the dist directory is a real tmp_path so archive
lookups go through RealFileSystemService.
"""
import hashlib

import pytest
from unittest.mock import Mock

from osd_deploy.core import FileSystemService, Logger, RealFileSystemService, TimeProvider
from osd_deploy.deploy import (
    RELOAD_ALL,
    BatchResult,
    ConnectivityError,
    PackagePublisher,
    PreconditionError,
    TransferError,
    UploadResult,
    UsageError,
)


VERSION = "2.3.1"
VARIANTS = ("live_day", "live_thermal", "recording_day")


# Helper factories for creating mock dependencies

def create_recording_store(events, fail_on=None):
    """Create mock PackageStore that records write/publish order into events."""
    store = Mock()
    contents = {}

    def put_package(logical_name, data, metadata):
        if logical_name == fail_on:
            raise TransferError(f"Failed to store osd:package:{logical_name}")
        key = f"osd:package:{logical_name}"
        contents[key] = data
        events.append(("write", logical_name))
        return key

    def publish(message):
        events.append(("publish", message))
        return 1

    store.put_package.side_effect = put_package
    store.publish.side_effect = publish
    store.contents = contents
    return store


def create_dist(tmp_path, build_mode="dev", variants=VARIANTS):
    """Write VERSION and one archive per variant; return (dist_dir, version_file)."""
    version_file = tmp_path / "VERSION"
    version_file.write_text(f"  {VERSION}\n")
    dist = tmp_path / "dist"
    dist.mkdir()
    suffix = "-dev" if build_mode == "dev" else ""
    for variant in variants:
        (dist / f"jettison-osd-{variant}-{VERSION}{suffix}.tar").write_bytes(
            f"{variant}:{build_mode}".encode()
        )
    return dist, version_file


def create_publisher(tmp_path, store, remote=None, build_mode="dev", variants=VARIANTS, **kwargs):
    dist, version_file = create_dist(tmp_path, build_mode, variants)
    time_provider = Mock()
    time_provider.current_time.return_value = 1700000000.0
    return PackagePublisher(
        store=store,
        remote=remote,
        filesystem=RealFileSystemService(),
        time_provider=time_provider,
        logger=Mock(),
        dist_dir=dist,
        version_file=version_file,
        **kwargs
    )


class TestTargetSelection:
    """The uploaded logical names follow the target table."""

    @pytest.mark.parametrize("build_mode", ["dev", "production"])
    @pytest.mark.parametrize("target,expected", [
        ("frontend", ["live_day.tar", "live_thermal.tar"]),
        ("gallery", ["default.tar"]),
        ("all", ["live_day.tar", "live_thermal.tar", "default.tar"]),
    ])
    def test_uploaded_names_match_target(self, tmp_path, build_mode, target, expected):
        events = []
        publisher = create_publisher(tmp_path, create_recording_store(events), build_mode=build_mode)

        result = publisher.publish(build_mode, target)

        assert list(result.batch.logical_names) == expected
        assert [name for kind, name in events if kind == "write"] == expected

    def test_default_target_is_all(self, tmp_path):
        events = []
        publisher = create_publisher(tmp_path, create_recording_store(events))

        result = publisher.publish("dev")

        assert result.batch.logical_names == ("live_day.tar", "live_thermal.tar", "default.tar")

    def test_production_reads_unsuffixed_archives(self, tmp_path):
        events = []
        store = create_recording_store(events)
        publisher = create_publisher(tmp_path, store, build_mode="production")

        publisher.publish("production", "gallery")

        assert store.contents["osd:package:default.tar"] == b"recording_day:production"


class TestNotificationOrdering:
    """The notification follows every write of its batch."""

    def test_single_publish_after_all_writes(self, tmp_path):
        events = []
        publisher = create_publisher(tmp_path, create_recording_store(events))

        publisher.publish("dev", "all")

        assert events == [
            ("write", "live_day.tar"),
            ("write", "live_thermal.tar"),
            ("write", "default.tar"),
            ("publish", "live_day.tar,live_thermal.tar,default.tar"),
        ]

    def test_gallery_payload_is_its_single_name(self, tmp_path):
        events = []
        store = create_recording_store(events)
        publisher = create_publisher(tmp_path, store)

        result = publisher.publish("dev", "gallery")

        store.publish.assert_called_once_with("default.tar")
        assert result.message == "default.tar"
        assert result.message != RELOAD_ALL

    def test_store_failure_aborts_without_notification(self, tmp_path):
        events = []
        store = create_recording_store(events, fail_on="live_thermal.tar")
        publisher = create_publisher(tmp_path, store)

        with pytest.raises(TransferError):
            publisher.publish("dev", "all")

        assert events == [("write", "live_day.tar")]
        store.publish.assert_not_called()


class TestPreconditions:
    """Missing inputs stop the run before the notification."""

    def test_missing_artifact_raises_and_never_notifies(self, tmp_path):
        events = []
        store = create_recording_store(events)
        publisher = create_publisher(tmp_path, store, variants=("live_day",))

        with pytest.raises(PreconditionError, match="jettison-osd-live_thermal-2.3.1-dev.tar"):
            publisher.publish("dev", "frontend")

        # Earlier artifacts stay written, no rollback
        assert events == [("write", "live_day.tar")]
        store.publish.assert_not_called()

    def test_missing_version_file_raises_before_network(self, tmp_path):
        events = []
        store = create_recording_store(events)
        remote = Mock()
        publisher = create_publisher(tmp_path, store, remote=remote)
        publisher.version_file.unlink()

        with pytest.raises(PreconditionError, match="Version file not found"):
            publisher.publish("dev", "all")

        remote.check_connectivity.assert_not_called()
        store.ping.assert_not_called()
        assert events == []

    def test_invalid_build_mode_performs_no_network_action(self, tmp_path):
        store = create_recording_store([])
        remote = Mock()
        publisher = create_publisher(tmp_path, store, remote=remote)

        with pytest.raises(UsageError, match="staging"):
            publisher.publish("staging", "all")

        remote.check_connectivity.assert_not_called()
        store.ping.assert_not_called()
        store.put_package.assert_not_called()

    def test_invalid_target_raises_usage_error(self, tmp_path):
        publisher = create_publisher(tmp_path, create_recording_store([]))

        with pytest.raises(UsageError, match="backend"):
            publisher.publish("dev", "backend")

    def test_disk_copy_requires_remote_path(self, tmp_path):
        with pytest.raises(PreconditionError):
            create_publisher(tmp_path, Mock(), remote=Mock(), disk_copy=True)

    def test_unreadable_artifact_raises_and_never_notifies(self, tmp_path):
        store = create_recording_store([])
        publisher = create_publisher(tmp_path, store)
        filesystem = Mock(wraps=RealFileSystemService())
        filesystem.read_bytes.side_effect = PermissionError(13, "Permission denied")
        publisher.fs = filesystem

        with pytest.raises(PreconditionError, match="Could not read package .*Permission denied"):
            publisher.publish("dev", "gallery")

        store.put_package.assert_not_called()
        store.publish.assert_not_called()


class TestPreflight:
    """Connectivity checks run before any upload."""

    def test_ssh_failure_aborts_run(self, tmp_path):
        events = []
        store = create_recording_store(events)
        remote = Mock()
        remote.check_connectivity.side_effect = ConnectivityError("SSH CONNECTION FAILED")
        publisher = create_publisher(tmp_path, store, remote=remote)

        with pytest.raises(ConnectivityError):
            publisher.publish("dev", "all")

        store.ping.assert_not_called()
        assert events == []

    def test_store_ping_failure_aborts_run(self, tmp_path):
        events = []
        store = create_recording_store(events)
        store.ping.side_effect = ConnectivityError("Unable to connect")
        publisher = create_publisher(tmp_path, store)

        with pytest.raises(ConnectivityError):
            publisher.publish("dev", "gallery")

        assert events == []

    def test_verified_remote_is_not_checked_again(self, tmp_path):
        events = []
        store = create_recording_store(events)
        remote = Mock()
        publisher = create_publisher(tmp_path, store, remote=remote, remote_verified=True)

        publisher.publish("dev", "gallery")

        remote.check_connectivity.assert_not_called()
        store.ping.assert_called_once_with()
        assert events == [("write", "default.tar"), ("publish", "default.tar")]

    def test_unverified_remote_is_checked_once(self, tmp_path):
        store = create_recording_store([])
        remote = Mock()
        publisher = create_publisher(tmp_path, store, remote=remote)

        publisher.publish("dev", "gallery")

        remote.check_connectivity.assert_called_once_with()


class TestUploadContents:

    def test_idempotent_overwrite(self, tmp_path):
        events = []
        store = create_recording_store(events)
        publisher = create_publisher(tmp_path, store)

        publisher.publish("dev", "all")
        first = dict(store.contents)
        publisher.publish("dev", "all")

        assert store.contents == first
        assert len(store.contents) == 3

    def test_metadata_written_with_blob(self, tmp_path):
        store = create_recording_store([])
        publisher = create_publisher(tmp_path, store)

        result = publisher.publish("dev", "gallery")

        data = b"recording_day:dev"
        logical_name, written, metadata = store.put_package.call_args[0]
        assert logical_name == "default.tar"
        assert written == data
        assert metadata == {
            "sha256": hashlib.sha256(data).hexdigest(),
            "size": str(len(data)),
            "source": f"jettison-osd-recording_day-{VERSION}-dev.tar",
            "version": VERSION,
            "build_mode": "dev",
            "deployed_at": "2023-11-14T22:13:20+00:00",
        }
        assert result.batch.uploads[0].sha256 == metadata["sha256"]
        assert result.metadata == {"build_mode": "dev", "target": "gallery", "version": VERSION}

    def test_runs_on_protocol_surface_only(self, tmp_path):
        filesystem = Mock(spec=FileSystemService)
        filesystem.is_file.return_value = True
        filesystem.read_text.return_value = f"{VERSION}\n"
        filesystem.read_bytes.return_value = b"osd"
        time_provider = Mock(spec=TimeProvider)
        time_provider.current_time.return_value = 1700000000.0
        store = create_recording_store([])
        publisher = PackagePublisher(
            store=store,
            remote=None,
            filesystem=filesystem,
            time_provider=time_provider,
            logger=Mock(spec=Logger),
            dist_dir=tmp_path / "dist",
            version_file=tmp_path / "VERSION",
        )

        result = publisher.publish("dev", "gallery")

        assert result.message == "default.tar"
        filesystem.read_bytes.assert_called_once_with(
            tmp_path / "dist" / f"jettison-osd-recording_day-{VERSION}-dev.tar"
        )

    def test_disk_copy_creates_directory_once_then_copies(self, tmp_path):
        events = []
        store = create_recording_store(events)
        remote = Mock()
        remote.copy_file.side_effect = lambda source, dest: events.append(("copy", dest))
        publisher = create_publisher(
            tmp_path, store, remote=remote,
            remote_osd_path="/home/archer/web/osd/", disk_copy=True
        )

        result = publisher.publish("dev", "frontend")

        remote.ensure_directory.assert_called_once_with("/home/archer/web/osd/")
        assert events == [
            ("copy", "/home/archer/web/osd/live_day.tar"),
            ("write", "live_day.tar"),
            ("copy", "/home/archer/web/osd/live_thermal.tar"),
            ("write", "live_thermal.tar"),
            ("publish", "live_day.tar,live_thermal.tar"),
        ]
        assert result.batch.uploads[1].disk_path == "/home/archer/web/osd/live_thermal.tar"

    def test_no_disk_copy_by_default(self, tmp_path):
        remote = Mock()
        publisher = create_publisher(tmp_path, create_recording_store([]), remote=remote)

        publisher.publish("dev", "all")

        remote.ensure_directory.assert_not_called()
        remote.copy_file.assert_not_called()


class TestBatchResult:

    def test_empty_batch_requests_full_reload(self):
        assert BatchResult().notification_message() == RELOAD_ALL

    def test_add_returns_new_batch(self):
        empty = BatchResult()
        upload = UploadResult("default.tar", "osd:package:default.tar", 3, "abc")

        batch = empty.add(upload)

        assert empty.uploads == ()
        assert batch.uploads == (upload,)
        assert batch.notification_message() == "default.tar"

    def test_empty_batch_publishes_sentinel(self):
        store = Mock()
        store.publish.return_value = 0
        publisher = PackagePublisher(
            store=store, remote=None, filesystem=Mock(), time_provider=Mock(),
            logger=Mock(), dist_dir="dist", version_file="VERSION"
        )

        message, receivers = publisher.notify(BatchResult())

        assert message == RELOAD_ALL
        assert receivers == 0
        store.publish.assert_called_once_with(RELOAD_ALL)
        publisher.log.warning.assert_called_once()
