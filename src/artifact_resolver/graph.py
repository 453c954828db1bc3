"""Dependency graph construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from graphviz import Digraph

from .errors import DependencyResolutionError, FetchError, MalformedRangeError, ResolutionCancelled
from .filters import as_filter
from .graphs import RootedDiGraph
from .models import Artifact, Coordinate, Dependency, Scope, index_managed, merge_dependency
from .resolution import effective_scope
from .versions import SNAPSHOT, Version, is_range_expression

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Iterator, Sequence

    from .descriptor import ArtifactDescriptorReader
    from .filters import DependencyFilter, FilterFunction
    from .index import RepositoryIndex
    from .models import Exclusion

logger = logging.getLogger(__name__)


@dataclass
class DependencyNode:
    """One dependency in a dependency graph, after managed values were merged into it.

    ``version`` and ``artifact`` are None when an optional dependency could not be resolved. ``cycle`` is set on a
    node that repeats a group:artifact of one of its ancestors; such a node is never expanded.
    """

    dependency: Dependency
    depth: int
    scope: Scope
    version: Version | None = None
    artifact: Artifact | None = None
    children: list[DependencyNode] = field(default_factory=list)
    premanaged_version: str | None = None
    premanaged_scope: Scope | None = None
    cycle: bool = False

    @property
    def coordinate(self) -> Coordinate:
        if self.version is None:
            return self.dependency.coordinate
        return self.dependency.coordinate.with_version(self.version)

    @property
    def conflict_id(self) -> str:
        return self.dependency.coordinate.conflict_id

    @property
    def is_resolved(self) -> bool:
        return self.artifact is not None

    def walk(self) -> Iterator[DependencyNode]:
        """Yield this node and every node below it in depth first pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_graph(self) -> DependencyGraph:
        """Export the resolved nodes of this tree as a graph of coordinates rooted at this node."""
        graph = DependencyGraph()
        graph.add_root(self.coordinate, scope=self.scope.value)
        for node in self.walk():
            for child in node.children:
                if not child.is_resolved:
                    continue
                if child.coordinate not in graph:
                    graph.add_node(child.coordinate, scope=child.scope.value)
                graph.add_edge(node.coordinate, child.coordinate, dependency=child.dependency, cycle=child.cycle)
        return graph

    def __str__(self) -> str:
        lines = []
        for node in self.walk():
            suffix = []
            if node.scope is not Scope.compile:
                suffix.append(node.scope.value)
            if node.dependency.is_optional:
                suffix.append("optional")
            if node.cycle:
                suffix.append("cycle")
            if not node.is_resolved:
                suffix.append("unresolved")
            line = "  " * node.depth + str(node.coordinate)
            if suffix:
                line += f" ({', '.join(suffix)})"
            lines.append(line)
        return "\n".join(lines)


class DependencyGraph(RootedDiGraph[Coordinate]):
    """A dependency graph whose nodes are resolved coordinates."""

    def to_dot(self) -> Digraph:
        """Render a Graphviz Dot graph of the dependency hierarchy."""
        dot = Digraph(comment=f"Dependencies of {', '.join(sorted(map(str, self.roots)))}")
        node_ids: dict[Coordinate, str] = {}
        for i, coordinate in enumerate(sorted(self, key=str)):
            node_ids[coordinate] = f"artifact{i}"
            shape = "doublecircle" if coordinate in self.roots else "rectangle"
            dot.node(node_ids[coordinate], label=str(coordinate), shape=shape)
        for u, v, data in sorted(self.edges(data=True), key=lambda e: (str(e[0]), str(e[1]))):
            style = "dashed" if data.get("cycle") else "solid"
            dependency = data.get("dependency")
            label = dependency.effective_scope.value if dependency is not None else ""
            dot.edge(node_ids[u], node_ids[v], label=label, style=style)
        return dot


def _wants_snapshots(text: str) -> bool:
    return SNAPSHOT in text.upper()


class GraphBuilder:
    """Expands a root dependency into a tree of DependencyNodes, depth first.

    Each child is merged with the managed dependency of the same group:artifact, then dropped if an exclusion
    declared on any edge from the root down to its parent matches it, or if the dependency filter rejects it.
    Exclusions are carried down each path separately, so an exclusion on one edge never prunes a sibling subtree.
    The filter sees each child with its derived scope.

    Test and provided dependencies never propagate past a direct dependency. With
    ``include_root_test_scopes=False`` the root is treated as a published artifact, so its own test and provided
    dependencies are dropped as well.
    """

    def __init__(
        self,
        descriptor_reader: ArtifactDescriptorReader,
        index: RepositoryIndex | None = None,
        managed_dependencies: Iterable[Dependency] = (),
        dependency_filter: DependencyFilter | FilterFunction | None = None,
        cancel: threading.Event | None = None,
        *,
        include_root_test_scopes: bool = True,
    ) -> None:
        self.descriptor_reader: ArtifactDescriptorReader = descriptor_reader
        self.index: RepositoryIndex | None = index
        self.managed: dict[str, Dependency] = index_managed(managed_dependencies)
        self.dependency_filter: DependencyFilter = as_filter(dependency_filter)
        self.cancel: threading.Event | None = cancel
        self.include_root_test_scopes: bool = include_root_test_scopes
        self._descriptors: dict[Coordinate, Sequence[Dependency] | FetchError] = {}

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            msg = "Dependency graph construction was cancelled"
            raise ResolutionCancelled(msg)

    def declared_dependencies(self, coordinate: Coordinate) -> Sequence[Dependency]:
        """Look up the declared dependencies of ``coordinate``, at most once per builder."""
        if coordinate not in self._descriptors:
            try:
                self._descriptors[coordinate] = tuple(self.descriptor_reader.get_declared_dependencies(coordinate))
            except FetchError as e:
                self._descriptors[coordinate] = e
        result = self._descriptors[coordinate]
        if isinstance(result, FetchError):
            raise result
        return result

    def select_version(self, dependency: Dependency) -> Version:
        """Choose the version of ``dependency``: the highest available inside a range, else the declared one.

        Raises:
            DependencyResolutionError: if there is no version, or no available version inside the range
            MalformedRangeError: if the declared range is invalid

        """
        coordinate = dependency.coordinate
        text = coordinate.version
        if not text:
            msg = f"No version declared or managed for {coordinate.conflict_id}"
            raise DependencyResolutionError(msg, coordinate)
        if dependency.system_path is not None or not is_range_expression(text):
            try:
                return Version(text)
            except ValueError as e:
                raise DependencyResolutionError(str(e), coordinate) from e
        version_range = coordinate.version_range
        if self.index is None:
            msg = f"Can not expand the version range of {coordinate} without a repository index"
            raise DependencyResolutionError(msg, coordinate)
        versions = self.index.list_versions(coordinate, version_range, want_snapshots=_wants_snapshots(text))
        if not versions:
            msg = f"No versions of {coordinate.conflict_id} match {version_range}"
            raise DependencyResolutionError(msg, coordinate)
        return versions[-1]

    def _merge(self, declared: Dependency) -> Dependency:
        return merge_dependency(declared, self.managed.get(declared.coordinate.conflict_id))

    @staticmethod
    def _derived_scope(dependency: Dependency, parent: DependencyNode | None) -> Scope:
        if parent is None or parent.depth == 0:
            return dependency.effective_scope
        return effective_scope(parent.scope, dependency.effective_scope)

    def _new_node(self, declared: Dependency, dependency: Dependency, parent: DependencyNode | None) -> DependencyNode:
        scope = self._derived_scope(dependency, parent)
        node = DependencyNode(
            dependency=dependency,
            depth=0 if parent is None else parent.depth + 1,
            scope=scope,
            premanaged_version=(
                declared.coordinate.version if declared.coordinate.version != dependency.coordinate.version else None
            ),
            premanaged_scope=declared.scope if declared.scope != dependency.scope else None,
        )
        try:
            node.version = self.select_version(dependency)
        except (DependencyResolutionError, MalformedRangeError) as e:
            if parent is None or not dependency.is_optional:
                raise
            logger.info("Skipping optional dependency %s: %s", dependency.coordinate, e)
            return node
        path = None if dependency.system_path is None else Path(dependency.system_path)
        node.artifact = Artifact(coordinate=node.coordinate, path=path)
        return node

    def _accepts(self, dependency: Dependency, parent: DependencyNode, parents: Sequence[Dependency]) -> bool:
        declared_scope = dependency.effective_scope
        if parent.depth > 0 and not declared_scope.is_transitive:
            return False
        if not self.include_root_test_scopes and declared_scope in (Scope.test, Scope.provided):
            return False
        scope = self._derived_scope(dependency, parent)
        if scope is not declared_scope:
            dependency = replace(dependency, scope=scope)
        return self.dependency_filter.accept(dependency, parents)

    def _expand(
        self,
        node: DependencyNode,
        path: frozenset[str],
        parents: tuple[Dependency, ...],
        exclusions: tuple[Exclusion, ...],
    ) -> None:
        self._check_cancelled()
        try:
            declared = self.declared_dependencies(node.coordinate)
        except FetchError as e:
            if node.depth > 0 and node.dependency.is_optional:
                logger.info("Could not read the dependencies of optional %s: %s", node.coordinate, e)
                return
            msg = f"Could not read the dependencies of {node.coordinate}: {e!s}"
            raise DependencyResolutionError(msg, node.coordinate) from e
        exclusions = (*exclusions, *node.dependency.exclusions)
        chain = (node.dependency, *parents)
        for declared_child in declared:
            if any(e.matches(declared_child.coordinate) for e in exclusions):
                logger.debug("%s is excluded below %s", declared_child.coordinate, node.coordinate)
                continue
            merged = self._merge(declared_child)
            if not self._accepts(merged, node, chain):
                continue
            child = self._new_node(declared_child, merged, node)
            node.children.append(child)
            if child.conflict_id in path:
                logger.debug("Dependency cycle at %s below %s", child.coordinate, node.coordinate)
                child.cycle = True
                continue
            if not child.is_resolved or child.dependency.system_path is not None:
                continue
            self._expand(child, path | {child.conflict_id}, chain, exclusions)

    def build(self, root: Dependency) -> DependencyNode:
        """Build the dependency tree of ``root``.

        Raises:
            DependencyResolutionError: if a required dependency can not be resolved
            ResolutionCancelled: if the cancel event was set during construction

        """
        self._check_cancelled()
        node = self._new_node(root, self._merge(root), None)
        if node.dependency.system_path is None:
            self._expand(node, frozenset((node.conflict_id,)), (), ())
        return node


def build_graph(
    root: Dependency,
    descriptor_reader: ArtifactDescriptorReader,
    index: RepositoryIndex | None = None,
    managed_dependencies: Iterable[Dependency] = (),
    dependency_filter: DependencyFilter | FilterFunction | None = None,
    cancel: threading.Event | None = None,
    *,
    include_root_test_scopes: bool = True,
) -> DependencyNode:
    """Expand ``root`` into its full dependency tree. See :class:`GraphBuilder`."""
    return GraphBuilder(
        descriptor_reader,
        index=index,
        managed_dependencies=managed_dependencies,
        dependency_filter=dependency_filter,
        cancel=cancel,
        include_root_test_scopes=include_root_test_scopes,
    ).build(root)
