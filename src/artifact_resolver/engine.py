"""The Engine: one configured set of repositories, a local cache and the operations running against them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

from .config import EngineConfig
from .db import DBLocalRepository
from .descriptor import PomDescriptorReader
from .graph import GraphBuilder
from .index import RepositoryIndex
from .logger import setup_logger
from .materializer import ArtifactMaterializer
from .models import Artifact, Coordinate, Dependency
from .resolution import select_winners
from .transport import CompositeTransport

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable

    from .cache import LocalRepository
    from .descriptor import ArtifactDescriptorReader
    from .filters import DependencyFilter, FilterFunction
    from .graph import DependencyNode
    from .repository import RemoteRepository
    from .transport import RepositoryTransport
    from .versions import Version

logger = logging.getLogger(__name__)


def _as_dependency(root: Dependency | Coordinate | str) -> Dependency:
    if isinstance(root, Dependency):
        return root
    if isinstance(root, Coordinate):
        return Dependency(root)
    return Dependency.from_string(root)


def _as_coordinate(coordinate: Coordinate | str) -> Coordinate:
    if isinstance(coordinate, Coordinate):
        return coordinate
    return Coordinate.from_string(coordinate)


class Engine:
    """Resolves versions, artifacts and dependency graphs against the repositories of an EngineConfig.

    Engines share no state, so engines with different configurations can be used side by side. An Engine must
    be opened before use, usually with a ``with`` block::

        with Engine(EngineConfig(remote_repositories={"central": MAVEN_CENTRAL_URL})) as engine:
            artifacts = engine.all_dependencies("junit:junit:4.13.2")

    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        transport: RepositoryTransport | None = None,
        local_repository: LocalRepository | None = None,
        descriptor_reader: ArtifactDescriptorReader | None = None,
        *,
        configure_logging: bool = False,
    ) -> None:
        if config is None:
            config = EngineConfig()
        self.config: EngineConfig = config
        self._owns_transport: bool = transport is None
        if transport is None:
            transport = CompositeTransport.default(timeout=config.request_timeout)
        self.transport: RepositoryTransport = transport
        if local_repository is None:
            local_repository = DBLocalRepository(config.local_repository, config.database)
        self.local_repository: LocalRepository = local_repository
        self.index: RepositoryIndex = RepositoryIndex(config.repositories, transport, local_repository)
        self.materializer: ArtifactMaterializer = ArtifactMaterializer(
            self.index, fetch_timeout=config.fetch_timeout, max_workers=config.workers
        )
        if descriptor_reader is None:
            descriptor_reader = PomDescriptorReader(self.index, materializer=self.materializer)
        self.descriptor_reader: ArtifactDescriptorReader = descriptor_reader
        self.configure_logging: bool = configure_logging
        self._opened: bool = False

    def open(self) -> None:
        if self._opened:
            return
        if self.configure_logging:
            setup_logger(self.config.log_level)
        self.local_repository.__enter__()
        self._opened = True

    def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        self.materializer.close()
        if self._owns_transport:
            self.transport.close()
        self.local_repository.__exit__(None, None, None)

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def all_versions(
        self,
        group_id: str,
        artifact_id: str,
        version_prefix: str | None = None,
        *,
        snapshot: bool = False,
    ) -> list[Version]:
        """List the available versions of an artifact, ascending, optionally limited to a version prefix."""
        return self.materializer.resolve_version(group_id, artifact_id, version_prefix, want_snapshot=snapshot)

    def resolve_artifact(
        self,
        coordinate: Coordinate | str,
        extra_repositories: Iterable[RemoteRepository] = (),
    ) -> Artifact:
        """Download an artifact into the local repository, unless it already is there."""
        return self.materializer.resolve(_as_coordinate(coordinate), extra_repositories)

    def collect(
        self,
        root: Dependency | Coordinate | str,
        managed_dependencies: Iterable[Dependency] = (),
        dependency_filter: DependencyFilter | FilterFunction | None = None,
        extra_repositories: Iterable[RemoteRepository] = (),
        cancel: threading.Event | None = None,
        *,
        include_root_test_scopes: bool = False,
    ) -> DependencyNode:
        """Build the dependency tree of ``root`` without downloading anything but metadata.

        The root is read as a published artifact: its own test and provided dependencies are left out unless
        ``include_root_test_scopes`` is set.
        """
        builder = GraphBuilder(
            self.descriptor_reader.with_repositories(extra_repositories),
            index=self.index,
            managed_dependencies=managed_dependencies,
            dependency_filter=dependency_filter,
            cancel=cancel,
            include_root_test_scopes=include_root_test_scopes,
        )
        return builder.build(_as_dependency(root))

    def all_dependencies(
        self,
        root: Dependency | Coordinate | str,
        managed_dependencies: Iterable[Dependency] = (),
        dependency_filter: DependencyFilter | FilterFunction | None = None,
        extra_repositories: Iterable[RemoteRepository] = (),
        cancel: threading.Event | None = None,
        *,
        include_root_test_scopes: bool = False,
    ) -> frozenset[Artifact]:
        """Resolve ``root`` and everything it transitively depends on, one version per group:artifact.

        The root's own artifact is part of the result. Optional dependencies that can not be downloaded are
        left out.

        Raises:
            ResolutionError: if a required dependency can not be resolved or downloaded

        """
        extra = tuple(extra_repositories)
        tree = self.collect(
            root,
            managed_dependencies,
            dependency_filter,
            extra,
            cancel,
            include_root_test_scopes=include_root_test_scopes,
        )
        artifacts: set[Artifact] = set()
        to_fetch: dict[Coordinate, DependencyNode] = {}
        for node in select_winners(tree):
            if node.dependency.system_path is not None and node.artifact is not None:
                artifacts.add(node.artifact)
            else:
                to_fetch[node.coordinate] = node
        results = self.materializer.resolve_all(to_fetch, extra, max_workers=self.config.workers, cancel=cancel)
        for coordinate, result in results.items():
            if isinstance(result, Artifact):
                artifacts.add(result)
                continue
            node = to_fetch[coordinate]
            if node.depth > 0 and node.dependency.is_optional:
                logger.info("Leaving out optional dependency %s: %s", coordinate, result)
                continue
            raise result
        return frozenset(artifacts)
