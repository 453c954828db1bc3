"""The `artifact-resolver` APIs.

Resolve version ranges, download artifacts and walk transitive dependency graphs of group:artifact:version
coordinates published in Maven-layout repositories.
"""

__version__ = "0.1.0"

from .artifact_resolver import APP_DIRS, version
from .cache import InMemoryLocalRepository, LocalRepository
from .config import MAVEN_CENTRAL_URL, EngineConfig
from .db import DBLocalRepository
from .descriptor import ArtifactDescriptorReader, InMemoryDescriptorReader, PomDescriptorReader
from .engine import Engine
from .errors import (
    ArtifactNotFoundError,
    ArtifactResolverError,
    CorruptArtifactError,
    DependencyResolutionError,
    FetchError,
    FetchTimeoutError,
    MalformedCoordinateError,
    MalformedRangeError,
    RepositoryTransportError,
    ResolutionCancelled,
    ResolutionError,
)
from .filters import (
    AcceptAllFilter,
    AndDependencyFilter,
    DependencyFilter,
    ExclusionsDependencyFilter,
    NotDependencyFilter,
    OptionalDependencyFilter,
    OrDependencyFilter,
    ScopeDependencyFilter,
)
from .graph import DependencyGraph, DependencyNode, GraphBuilder, build_graph
from .index import RepositoryIndex
from .materializer import ArtifactMaterializer
from .models import (
    Artifact,
    Coordinate,
    Dependency,
    Exclusion,
    ManagedDependency,
    Scope,
    merge_dependency,
    parse_coordinate,
)
from .repository import ChecksumPolicy, RemoteRepository, RepositoryPolicy, UpdatePolicy
from .resolution import effective_scope, flatten, select_winners
from .transport import CompositeTransport, FileTransport, HttpTransport, RepositoryTransport
from .versions import Version, VersionRange, compare_versions, parse_version_range

__all__ = [
    "APP_DIRS",
    "MAVEN_CENTRAL_URL",
    "AcceptAllFilter",
    "AndDependencyFilter",
    "Artifact",
    "ArtifactDescriptorReader",
    "ArtifactMaterializer",
    "ArtifactNotFoundError",
    "ArtifactResolverError",
    "ChecksumPolicy",
    "CompositeTransport",
    "Coordinate",
    "CorruptArtifactError",
    "DBLocalRepository",
    "Dependency",
    "DependencyFilter",
    "DependencyGraph",
    "DependencyNode",
    "DependencyResolutionError",
    "Engine",
    "EngineConfig",
    "Exclusion",
    "ExclusionsDependencyFilter",
    "FetchError",
    "FetchTimeoutError",
    "FileTransport",
    "GraphBuilder",
    "HttpTransport",
    "InMemoryDescriptorReader",
    "InMemoryLocalRepository",
    "LocalRepository",
    "MalformedCoordinateError",
    "MalformedRangeError",
    "ManagedDependency",
    "NotDependencyFilter",
    "OptionalDependencyFilter",
    "OrDependencyFilter",
    "PomDescriptorReader",
    "RemoteRepository",
    "RepositoryIndex",
    "RepositoryPolicy",
    "RepositoryTransport",
    "RepositoryTransportError",
    "ResolutionCancelled",
    "ResolutionError",
    "Scope",
    "UpdatePolicy",
    "Version",
    "VersionRange",
    "build_graph",
    "compare_versions",
    "effective_scope",
    "flatten",
    "merge_dependency",
    "parse_coordinate",
    "parse_version_range",
    "select_winners",
    "version",
]
