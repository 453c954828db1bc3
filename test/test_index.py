from unittest import TestCase
from unittest.mock import patch

from fakes import CENTRAL, SNAPSHOTS, FakeTransport

from artifact_resolver.cache import InMemoryLocalRepository
from artifact_resolver.errors import (
    CorruptArtifactError,
    FetchError,
    FetchTimeoutError,
    RepositoryTransportError,
)
from artifact_resolver.index import DAILY_UPDATE_INTERVAL, RepositoryIndex, parse_metadata_versions
from artifact_resolver.models import Coordinate
from artifact_resolver.repository import (
    ChecksumPolicy,
    RemoteRepository,
    RepositoryPolicy,
    UpdatePolicy,
    artifact_path,
    metadata_path,
)
from artifact_resolver.versions import VersionRange, parse_version_range

MIRROR = RemoteRepository.from_url("mirror", "https://mirror.example.com/maven2")


class TestRepositoryPolicy(TestCase):
    def test_partition(self) -> None:
        assert CENTRAL.serves(snapshot=False)
        assert not CENTRAL.serves(snapshot=True)
        self.assertEqual(UpdatePolicy.never, CENTRAL.releases.update_policy)
        assert SNAPSHOTS.serves(snapshot=True)
        assert not SNAPSHOTS.serves(snapshot=False)
        self.assertEqual(UpdatePolicy.always, SNAPSHOTS.snapshots.update_policy)
        # a trailing slash does not matter
        assert RemoteRepository.from_url("s", "https://example.com/snapshots/").serves(snapshot=True)

    def test_layout(self) -> None:
        c = Coordinate.from_string("org.apache.commons:commons-text:1.10.0")
        self.assertEqual("org/apache/commons/commons-text/maven-metadata.xml", metadata_path(c))
        self.assertEqual("org/apache/commons/commons-text/1.10.0/commons-text-1.10.0.jar", artifact_path(c))
        self.assertEqual(
            "g/a/1/a-1-tests.jar", artifact_path(Coordinate("g", "a", "1", extension="jar", classifier="tests"))
        )
        with self.assertRaises(ValueError):
            artifact_path(Coordinate.from_string("g:a:[1,2)"))
        self.assertEqual("https://repo.example.com/maven2/g/a", CENTRAL.resolve("/g/a"))


class TestListVersions(TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.index = RepositoryIndex([CENTRAL, MIRROR, SNAPSHOTS], self.transport, InMemoryLocalRepository())
        self.junit = Coordinate("junit", "junit")

    def test_junit_range(self) -> None:
        self.transport.publish_versions(CENTRAL, "junit", "junit", ["3.8", "4.10", "4.12", "4.13"])
        versions = self.index.list_versions(self.junit, parse_version_range("[4,5)"))
        self.assertEqual(["4.10", "4.12", "4.13"], [str(v) for v in versions])

    def test_merges_and_deduplicates(self) -> None:
        self.transport.publish_versions(CENTRAL, "junit", "junit", ["4.12", "4.13"])
        self.transport.publish_versions(MIRROR, "junit", "junit", ["4.11", "4.13", "5.0"])
        versions = self.index.list_versions(self.junit, VersionRange.unbounded())
        self.assertEqual(["4.11", "4.12", "4.13", "5.0"], [str(v) for v in versions])

    def test_snapshot_policy(self) -> None:
        self.transport.publish_versions(CENTRAL, "junit", "junit", ["4.13"])
        self.transport.publish_versions(SNAPSHOTS, "junit", "junit", ["4.14-SNAPSHOT"])
        releases = self.index.list_versions(self.junit, VersionRange.unbounded())
        snapshots = self.index.list_versions(self.junit, VersionRange.unbounded(), want_snapshots=True)
        self.assertEqual(["4.13"], [str(v) for v in releases])
        self.assertEqual(["4.14-SNAPSHOT"], [str(v) for v in snapshots])
        self.assertEqual(1, self.transport.requests["snapshots", metadata_path(self.junit)])

    def test_no_versions_is_empty(self) -> None:
        self.assertEqual([], self.index.list_versions(self.junit, VersionRange.unbounded()))

    def test_failing_repository_contributes_nothing(self) -> None:
        self.transport.fail(CENTRAL, RepositoryTransportError("connection refused", repository_id="central"))
        self.transport.publish_versions(MIRROR, "junit", "junit", ["4.13"])
        with self.assertLogs("artifact_resolver.index", level="WARNING"):
            versions = self.index.list_versions(self.junit, VersionRange.unbounded())
        self.assertEqual(["4.13"], [str(v) for v in versions])

    def test_timeout_and_malformed_metadata_are_absorbed(self) -> None:
        self.transport.fail(CENTRAL, FetchTimeoutError("timed out"))
        self.transport.put(MIRROR, metadata_path(self.junit), b"<metadata><versioning>")
        self.assertEqual([], self.index.list_versions(self.junit, VersionRange.unbounded()))

    def test_parse_metadata(self) -> None:
        self.assertEqual(
            ["1.0", "1.1"],
            parse_metadata_versions(
                b"<metadata><versioning><versions><version> 1.0 </version><version>1.1</version>"
                b"<version/></versions></versioning></metadata>"
            ),
        )
        with self.assertRaises(ValueError):
            parse_metadata_versions(b"not xml")


class TestFetchArtifact(TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.local = InMemoryLocalRepository()
        self.index = RepositoryIndex([CENTRAL, SNAPSHOTS], self.transport, self.local)
        self.coordinate = Coordinate.from_string("g:a:1.0")
        self.path = artifact_path(self.coordinate)

    def test_first_hit_wins_and_is_installed(self) -> None:
        self.transport.publish(CENTRAL, self.coordinate, b"from central")
        self.transport.publish(MIRROR, self.coordinate, b"from mirror")
        artifact = self.index.fetch_artifact(self.coordinate, [MIRROR])
        self.assertEqual("central", artifact.repository)
        self.assertEqual(b"from central", self.local.read(self.coordinate))
        self.assertEqual(0, self.transport.requests["mirror", self.path])

    def test_local_first(self) -> None:
        self.local.install(self.coordinate, b"cached", origin="elsewhere")
        artifact = self.index.fetch_artifact(self.coordinate)
        self.assertEqual("elsewhere", artifact.repository)
        self.assertEqual(0, self.transport.count(self.path))

    def test_extra_repositories_are_searched_last(self) -> None:
        self.transport.publish(MIRROR, self.coordinate, b"from mirror")
        artifact = self.index.fetch_artifact(self.coordinate, [MIRROR])
        self.assertEqual("mirror", artifact.repository)
        self.assertEqual(1, self.transport.requests["central", self.path])

    def test_snapshot_only_from_snapshot_repositories(self) -> None:
        snapshot = Coordinate.from_string("g:a:1.1-SNAPSHOT")
        self.transport.publish(CENTRAL, snapshot, b"wrong")
        self.transport.publish(SNAPSHOTS, snapshot, b"right")
        self.assertEqual("snapshots", self.index.fetch_artifact(snapshot).repository)
        self.assertEqual(1, self.transport.count(artifact_path(snapshot)))

    def test_cached_snapshot_is_updated(self) -> None:
        snapshot = Coordinate.from_string("g:a:1.1-SNAPSHOT")
        self.local.install(snapshot, b"old build", origin="snapshots")
        self.transport.publish(SNAPSHOTS, snapshot, b"new build")
        self.index.fetch_artifact(snapshot)
        self.assertEqual(b"new build", self.local.read(snapshot))
        self.assertEqual(1, self.transport.count(artifact_path(snapshot)))

    def test_cached_snapshot_is_kept_when_unavailable(self) -> None:
        snapshot = Coordinate.from_string("g:a:1.1-SNAPSHOT")
        self.local.install(snapshot, b"old build", origin="snapshots")
        with self.assertLogs("artifact_resolver.index", level="WARNING"):
            self.assertEqual("snapshots", self.index.fetch_artifact(snapshot).repository)
        self.assertEqual(b"old build", self.local.read(snapshot))

    def test_daily_update_policy(self) -> None:
        nightly = RemoteRepository(
            "nightly",
            "https://nightly.example.com/snapshots",
            releases=RepositoryPolicy(enabled=False),
            snapshots=RepositoryPolicy(update_policy=UpdatePolicy.daily),
        )
        index = RepositoryIndex([nightly], self.transport, self.local)
        snapshot = Coordinate.from_string("g:a:1.1-SNAPSHOT")
        path = artifact_path(snapshot)
        self.local.install(snapshot, b"old build", origin="nightly")
        self.transport.publish(nightly, snapshot, b"monday")
        with patch("artifact_resolver.index.time") as clock:
            clock.monotonic.return_value = 1000.0
            index.fetch_artifact(snapshot)
            self.assertEqual(b"monday", self.local.read(snapshot))
            self.transport.publish(nightly, snapshot, b"tuesday")
            clock.monotonic.return_value = 1000.0 + DAILY_UPDATE_INTERVAL - 1
            index.fetch_artifact(snapshot)
            self.assertEqual(b"monday", self.local.read(snapshot))
            self.assertEqual(1, self.transport.count(path))
            clock.monotonic.return_value = 1000.0 + DAILY_UPDATE_INTERVAL
            index.fetch_artifact(snapshot)
            self.assertEqual(b"tuesday", self.local.read(snapshot))
            self.assertEqual(2, self.transport.count(path))

    def test_not_found(self) -> None:
        with self.assertRaises(FetchError) as cm:
            self.index.fetch_artifact(self.coordinate)
        self.assertEqual(self.coordinate, cm.exception.coordinate)
        self.assertEqual(0, len(self.local))

    def test_timeout_is_retryable(self) -> None:
        self.transport.fail(CENTRAL, FetchTimeoutError("timed out"))
        with self.assertRaises(FetchTimeoutError) as cm:
            self.index.fetch_artifact(self.coordinate)
        assert cm.exception.retryable

    def test_checksum_mismatch_fails(self) -> None:
        self.transport.publish(CENTRAL, self.coordinate, b"data", checksum="0" * 40)
        with self.assertRaises(CorruptArtifactError):
            self.index.fetch_artifact(self.coordinate)
        assert self.coordinate not in self.local

    def test_checksum_mismatch_falls_through(self) -> None:
        self.transport.publish(CENTRAL, self.coordinate, b"data", checksum="0" * 40)
        self.transport.publish(MIRROR, self.coordinate, b"data")
        self.assertEqual("mirror", self.index.fetch_artifact(self.coordinate, [MIRROR]).repository)

    def test_checksum_warn_and_missing(self) -> None:
        lenient = RemoteRepository(
            "lenient", "https://lenient.example.com/", releases=RepositoryPolicy(checksum_policy=ChecksumPolicy.warn)
        )
        self.transport.publish(lenient, self.coordinate, b"data", checksum="0" * 40)
        index = RepositoryIndex([lenient], self.transport, self.local)
        with self.assertLogs("artifact_resolver.index", level="WARNING"):
            self.assertEqual("lenient", index.fetch_artifact(self.coordinate).repository)

        other = Coordinate.from_string("g:b:1.0")
        self.transport.put(CENTRAL, artifact_path(other), b"no checksum")
        self.assertEqual(b"no checksum", self.index.read(other))
