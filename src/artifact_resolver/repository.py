"""Remote repository definitions and the repository path layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Coordinate

METADATA_FILE = "maven-metadata.xml"
SNAPSHOTS_SUFFIX = "snapshots"


class UpdatePolicy(str, Enum):
    """How often cached remote index data should be refreshed."""

    never = "never"
    always = "always"
    daily = "daily"


class ChecksumPolicy(str, Enum):
    """What to do when a downloaded artifact does not match its published checksum."""

    fail = "fail"
    warn = "warn"
    ignore = "ignore"


@dataclass(frozen=True)
class RepositoryPolicy:
    enabled: bool = True
    update_policy: UpdatePolicy = UpdatePolicy.never
    checksum_policy: ChecksumPolicy = ChecksumPolicy.fail


@dataclass(frozen=True)
class RemoteRepository:
    """A remote repository. A list of these defines search and fetch precedence."""

    id: str
    url: str
    releases: RepositoryPolicy = field(default_factory=RepositoryPolicy)
    snapshots: RepositoryPolicy = field(default_factory=RepositoryPolicy)

    @classmethod
    def from_url(cls, repository_id: str, url: str) -> RemoteRepository:
        """Build a configured repository.

        A URL ending in ``snapshots`` serves snapshots only; every other URL serves releases only.
        """
        if url.rstrip("/").endswith(SNAPSHOTS_SUFFIX):
            releases = RepositoryPolicy(enabled=False, update_policy=UpdatePolicy.never)
            snapshots = RepositoryPolicy(enabled=True, update_policy=UpdatePolicy.always)
        else:
            releases = RepositoryPolicy(enabled=True, update_policy=UpdatePolicy.never)
            snapshots = RepositoryPolicy(enabled=False, update_policy=UpdatePolicy.always)
        return cls(id=repository_id, url=url, releases=releases, snapshots=snapshots)

    def policy(self, *, snapshot: bool) -> RepositoryPolicy:
        return self.snapshots if snapshot else self.releases

    def serves(self, *, snapshot: bool) -> bool:
        return self.policy(snapshot=snapshot).enabled

    def resolve(self, path: str) -> str:
        """Return the absolute URL of a repository relative path."""
        return f"{self.url.rstrip('/')}/{path.lstrip('/')}"

    def __str__(self) -> str:
        return f"{self.id} ({self.url})"


def artifact_directory(coordinate: Coordinate) -> str:
    return "/".join((*coordinate.group.split("."), coordinate.artifact))


def metadata_path(coordinate: Coordinate) -> str:
    """Path of the version index for the group:artifact of ``coordinate``."""
    return f"{artifact_directory(coordinate)}/{METADATA_FILE}"


def artifact_path(coordinate: Coordinate) -> str:
    """Path of the file for ``coordinate``, which must have a concrete version."""
    if not coordinate.version or coordinate.has_range:
        msg = f"{coordinate} does not have a concrete version"
        raise ValueError(msg)
    filename = f"{coordinate.artifact}-{coordinate.version}"
    if coordinate.classifier:
        filename += f"-{coordinate.classifier}"
    filename += f".{coordinate.extension}"
    return f"{artifact_directory(coordinate)}/{coordinate.version}/{filename}"
