"""Exceptions raised by the resolution engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Coordinate


class ArtifactResolverError(Exception):
    """Base class for every error raised by artifact-resolver."""


class MalformedCoordinateError(ArtifactResolverError, ValueError):
    """A coordinate string does not have a valid group:artifact[:extension[:classifier]]:version shape."""


class MalformedRangeError(ArtifactResolverError, ValueError):
    """A version range expression is unbalanced or its bounds are not monotonic."""


class RepositoryTransportError(ArtifactResolverError):
    """A single remote repository failed to answer a request."""

    def __init__(self, message: str, repository_id: str | None = None, path: str | None = None) -> None:
        """Initialize a transport error.

        Args:
            message: Human readable description
            repository_id: Id of the repository that failed
            path: Repository relative path that was requested

        """
        super().__init__(message)
        self.repository_id: str | None = repository_id
        self.path: str | None = path


class ArtifactNotFoundError(RepositoryTransportError):
    """The repository answered, but does not have the requested path."""


class ResolutionError(ArtifactResolverError):
    """Resolution failed across every source that was consulted."""

    def __init__(self, message: str, coordinate: Coordinate | None = None) -> None:
        super().__init__(message)
        self.coordinate: Coordinate | None = coordinate


class FetchError(ResolutionError):
    """An artifact could not be downloaded from any repository."""

    retryable: bool = False


class FetchTimeoutError(FetchError):
    """A fetch did not complete in time. Retrying later may succeed."""

    retryable = True


class CorruptArtifactError(FetchError):
    """Downloaded bytes did not match the checksum published next to them."""


class DependencyResolutionError(ResolutionError):
    """A required node of the dependency graph could not be resolved."""


class ResolutionCancelled(ResolutionError):
    """The caller cancelled the resolution before the graph was complete."""
