"""Conflict resolution: collapsing a dependency graph to one version per group:artifact."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from .models import Scope

if TYPE_CHECKING:
    from .graph import DependencyNode
    from .models import Artifact

logger = logging.getLogger(__name__)

# Higher is narrower
SCOPE_RANK: dict[Scope, int] = {
    Scope.compile: 0,
    Scope.runtime: 1,
    Scope.provided: 2,
    Scope.test: 2,
    Scope.system: 2,
}


def effective_scope(parent: Scope, child: Scope) -> Scope:
    """Return the narrower of a transitive child's declared scope and its parent's effective scope."""
    if SCOPE_RANK[child] > SCOPE_RANK[parent]:
        return child
    return parent


def select_winners(root: DependencyNode) -> list[DependencyNode]:
    """Pick one node per group:artifact using nearest-wins.

    Nodes are visited breadth first, which visits nodes of equal depth in the same order as a depth first
    pre-order walk. The first resolved node seen for a group:artifact therefore is the nearest one, with ties
    going to the earliest declared. Subtrees of nodes that lost, or that duplicate a winner, are not visited.

    Returns:
        The winning nodes in visiting order, starting with the root

    """
    chosen: dict[str, DependencyNode] = {}
    queue: deque[DependencyNode] = deque([root])
    while queue:
        node = queue.popleft()
        if node.artifact is None:
            continue
        winner = chosen.get(node.conflict_id)
        if winner is not None:
            if winner.version != node.version:
                logger.debug(
                    "%s (depth %d) loses to %s (depth %d)", node.coordinate, node.depth, winner.coordinate, winner.depth
                )
            continue
        chosen[node.conflict_id] = node
        queue.extend(node.children)
    return list(chosen.values())


def flatten(root: DependencyNode) -> frozenset[Artifact]:
    """Collapse the graph under ``root`` to the set of chosen artifacts, the root's own artifact included."""
    return frozenset(node.artifact for node in select_winners(root) if node.artifact is not None)
