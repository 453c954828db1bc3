"""Rooted directed graph implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

import networkx as nx

T = TypeVar("T")


class RootedDiGraph(nx.DiGraph, Generic[T]):
    """A directed graph with designated root nodes."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.roots: set[T] = set()
        self._shortest_path_from_root: dict[T, int] | None = None

    def add_root(self, node: T, **attr: object) -> None:
        """Add ``node`` to the graph and mark it as a root."""
        self.add_node(node, **attr)
        self.roots.add(node)
        self._shortest_path_from_root = None

    def add_node(self, node_for_adding: T, **attr: object) -> None:
        self._shortest_path_from_root = None
        super().add_node(node_for_adding, **attr)

    def add_edge(self, u_of_edge: T, v_of_edge: T, **attr: object) -> None:
        self._shortest_path_from_root = None
        super().add_edge(u_of_edge, v_of_edge, **attr)

    def add_nodes_from(self, nodes_for_adding: Iterable[T], **attr: object) -> None:
        self._shortest_path_from_root = None
        super().add_nodes_from(nodes_for_adding, **attr)

    def add_edges_from(self, ebunch_to_add: Iterable[tuple], **attr: object) -> None:
        self._shortest_path_from_root = None
        super().add_edges_from(ebunch_to_add, **attr)

    def remove_node(self, node_for_removing: T) -> None:
        self.roots.discard(node_for_removing)
        self._shortest_path_from_root = None
        super().remove_node(node_for_removing)

    def remove_nodes_from(self, nodes_for_removing: Iterable[T]) -> None:
        nodes = list(nodes_for_removing)
        self.roots.difference_update(nodes)
        self._shortest_path_from_root = None
        super().remove_nodes_from(nodes)

    def shortest_path_from_root(self, node: T) -> int:
        """Return the length of the shortest path from any root to node.

        If there are no roots in the graph or there is no path from a root, return -1.
        """
        if not self.roots:
            return -1
        if self._shortest_path_from_root is None:
            distances: dict[T, int] = {}
            for root in self.roots:
                for n, d in nx.single_source_shortest_path_length(self, root).items():
                    if n not in distances or d < distances[n]:
                        distances[n] = d
            self._shortest_path_from_root = distances
        return self._shortest_path_from_root.get(node, -1)

    def reachable(self) -> set[T]:
        """All nodes reachable from a root, including the roots themselves."""
        ret: set[T] = set(self.roots)
        for root in self.roots:
            ret.update(nx.descendants(self, root))
        return ret

    def find_roots(self) -> RootedDiGraph[T]:
        """Return a copy of this graph whose roots are the nodes without incoming edges."""
        graph: RootedDiGraph[T] = RootedDiGraph()
        graph.add_nodes_from(self.nodes(data=True))
        graph.add_edges_from(self.edges(data=True))
        graph.roots = {n for n, d in self.in_degree() if d == 0}
        return graph

    def __iter__(self) -> Iterator[T]:
        yield from super().__iter__()
