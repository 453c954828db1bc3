"""The repository index: which versions exist, and fetching artifacts through the local cache."""

from __future__ import annotations

import logging
import threading
import time
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from .cache import LOCAL_REPOSITORY_ID, sha1_hex
from .errors import (
    ArtifactNotFoundError,
    CorruptArtifactError,
    FetchError,
    FetchTimeoutError,
    RepositoryTransportError,
)
from .repository import ChecksumPolicy, UpdatePolicy, artifact_path, metadata_path
from .versions import Version

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .cache import LocalRepository
    from .models import Artifact, Coordinate
    from .repository import RemoteRepository
    from .transport import RepositoryTransport
    from .versions import VersionRange

logger = logging.getLogger(__name__)

# seconds between remote checks of a cached snapshot under the daily update policy
DAILY_UPDATE_INTERVAL = 24 * 60 * 60


def parse_metadata_versions(data: bytes) -> list[str]:
    """Read the ``versioning/versions/version`` entries of a repository metadata file.

    Raises:
        ValueError: if ``data`` is not well formed XML

    """
    try:
        root = ET.fromstring(data)  # noqa: S314
    except ET.ParseError as e:
        msg = f"Malformed repository metadata: {e!s}"
        raise ValueError(msg) from e
    versions = []
    for element in root.findall("./versioning/versions/version"):
        if element.text and element.text.strip():
            versions.append(element.text.strip())
    return versions


class RepositoryIndex:
    """Answers "what versions exist" and "fetch this artifact" across an ordered list of repositories."""

    def __init__(
        self,
        repositories: Sequence[RemoteRepository],
        transport: RepositoryTransport,
        local: LocalRepository,
    ) -> None:
        self.repositories: tuple[RemoteRepository, ...] = tuple(repositories)
        self.transport: RepositoryTransport = transport
        self.local: LocalRepository = local
        self._lock = threading.Lock()
        # monotonic time of the last remote check of each cached snapshot
        self._checked: dict[Coordinate, float] = {}

    def _versions_in(self, repository: RemoteRepository, coordinate: Coordinate) -> list[Version]:
        data = self.transport.get(repository, metadata_path(coordinate))
        versions = []
        for text in parse_metadata_versions(data):
            try:
                versions.append(Version(text))
            except ValueError:
                logger.warning("Ignoring invalid version %r of %s in %s", text, coordinate.conflict_id, repository.id)
        return versions

    def list_versions(
        self,
        coordinate: Coordinate,
        version_range: VersionRange,
        *,
        want_snapshots: bool = False,
    ) -> list[Version]:
        """List the versions of ``coordinate`` inside ``version_range``, sorted ascending.

        Only repositories whose snapshot or release policy matches ``want_snapshots`` are consulted. A repository
        that fails is logged and contributes nothing; if no repository has the coordinate the result is empty.
        """
        found: set[Version] = set()
        for repository in self.repositories:
            if not repository.serves(snapshot=want_snapshots):
                continue
            try:
                versions = self._versions_in(repository, coordinate)
            except ArtifactNotFoundError:
                logger.debug("%s has no versions of %s", repository.id, coordinate.conflict_id)
                continue
            except (RepositoryTransportError, FetchTimeoutError, ValueError) as e:
                logger.warning("Failed to list versions of %s in %s: %s", coordinate.conflict_id, repository.id, e)
                continue
            found.update(versions)
        return version_range.filter(found)

    def _verify_checksum(self, repository: RemoteRepository, coordinate: Coordinate, path: str, data: bytes) -> None:
        policy = repository.policy(snapshot=coordinate.is_snapshot).checksum_policy
        if policy is ChecksumPolicy.ignore:
            return
        try:
            published = self.transport.get(repository, f"{path}.sha1")
        except (RepositoryTransportError, FetchTimeoutError):
            logger.debug("No checksum published for %s in %s", coordinate, repository.id)
            return
        # checksum files may carry the file name after the digest
        fields = published.decode("ascii", errors="replace").split()
        expected = fields[0].lower() if fields else ""
        actual = sha1_hex(data)
        if expected and expected != actual:
            msg = f"Checksum mismatch for {coordinate} from {repository.id}: expected {expected}, got {actual}"
            if policy is ChecksumPolicy.fail:
                raise CorruptArtifactError(msg, coordinate)
            logger.warning(msg)

    def _needs_update(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> bool:
        """Whether a cached copy of ``coordinate`` must be checked against the remote repositories first.

        Only snapshots are ever updated, following the strictest update policy among the repositories serving them.
        """
        if not coordinate.is_snapshot:
            return False
        policies = {r.snapshots.update_policy for r in repositories if r.serves(snapshot=True)}
        if UpdatePolicy.always in policies:
            return True
        if UpdatePolicy.daily in policies:
            with self._lock:
                last = self._checked.get(coordinate)
            return last is None or time.monotonic() - last >= DAILY_UPDATE_INTERVAL
        return False

    def fetch_artifact(
        self,
        coordinate: Coordinate,
        extra_repositories: Iterable[RemoteRepository] = (),
    ) -> Artifact:
        """Fetch ``coordinate``, searching the local cache, then configured and then extra repositories.

        The first hit wins. Bytes fetched from a remote repository are installed into the local cache before
        the artifact is returned. A cached snapshot is checked against the remote repositories when their update
        policy asks for it, and is kept if none of them can provide it.

        Raises:
            FetchTimeoutError: if nothing was found and at least one repository timed out
            CorruptArtifactError: if nothing was found and at least one download failed its checksum
            FetchError: if no repository has the artifact

        """
        repositories = (*self.repositories, *extra_repositories)
        cached = self.local.find(coordinate)
        if cached is not None and not self._needs_update(coordinate, repositories):
            logger.debug("Found %s in the %s repository", coordinate, LOCAL_REPOSITORY_ID)
            return cached
        path = artifact_path(coordinate)
        snapshot = coordinate.is_snapshot
        failures: list[Exception] = []
        if snapshot:
            with self._lock:
                self._checked[coordinate] = time.monotonic()
        for repository in repositories:
            if not repository.serves(snapshot=snapshot):
                continue
            try:
                data = self.transport.get(repository, path)
                self._verify_checksum(repository, coordinate, path, data)
            except ArtifactNotFoundError:
                continue
            except (RepositoryTransportError, FetchError) as e:
                logger.warning("Failed to fetch %s from %s: %s", coordinate, repository.id, e)
                failures.append(e)
                continue
            logger.info("Downloaded %s from %s", coordinate, repository.id)
            return self.local.install(coordinate, data, origin=repository.id)
        if cached is not None:
            logger.warning("Could not update %s, using the copy in the %s repository", coordinate, LOCAL_REPOSITORY_ID)
            return cached
        if any(isinstance(e, FetchTimeoutError) for e in failures):
            msg = f"Timed out fetching {coordinate}"
            raise FetchTimeoutError(msg, coordinate)
        if any(isinstance(e, CorruptArtifactError) for e in failures):
            msg = f"Every download of {coordinate} was corrupt"
            raise CorruptArtifactError(msg, coordinate)
        msg = f"Could not find artifact {coordinate} in any repository"
        raise FetchError(msg, coordinate)

    def read(self, coordinate: Coordinate, extra_repositories: Iterable[RemoteRepository] = ()) -> bytes:
        """Fetch ``coordinate`` and return its contents."""
        self.fetch_artifact(coordinate, extra_repositories)
        data = self.local.read(coordinate)
        if data is None:
            msg = f"{coordinate} disappeared from the local repository"
            raise FetchError(msg, coordinate)
        return data
