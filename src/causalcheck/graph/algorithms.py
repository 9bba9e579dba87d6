"""Shared graph algorithms for validation and reconciliation.

Pure functions that operate on adjacency lists without modifying the
graph: breadth-first reachability in either direction, Kahn's-algorithm
cycle detection, and the controllable-ancestry search used by the
controllability summary.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from causalcheck.observability.logging import get_logger

if TYPE_CHECKING:
    from causalcheck.graph.indices import GraphIndex
    from causalcheck.models.graph import Edge, Node

log = get_logger(__name__)


def bfs(start_nodes: Iterable[str], adjacency: Mapping[str, Sequence[str]]) -> set[str]:
    """Breadth-first traversal over ``adjacency``.

    Args:
        start_nodes: Node ids to start from. They are included in the result.
        adjacency: Node id -> neighbour ids.

    Returns:
        Every node id reachable from the start nodes.
    """
    visited: set[str] = set()
    queue = deque(start_nodes)
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        for neighbor in adjacency.get(current, ()):
            if neighbor not in visited:
                queue.append(neighbor)
    return visited


def bfs_forward(start_nodes: Iterable[str], index: GraphIndex) -> set[str]:
    """Nodes reachable from ``start_nodes`` following edges forward."""
    return bfs(start_nodes, index.forward)


def bfs_reverse(start_nodes: Iterable[str], index: GraphIndex) -> set[str]:
    """Nodes that can reach ``start_nodes`` (edges walked backward)."""
    return bfs(start_nodes, index.reverse)


def find_cycle_members(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[str]:
    """Detect cycles using Kahn's algorithm.

    Seeds a queue with every in-degree-0 node, repeatedly removes a node and
    decrements its successors' in-degree. Nodes never dequeued lie on, or
    downstream of, a cycle. Only edges between known nodes take part;
    dangling references are a separate validation error.

    Args:
        nodes: Graph nodes.
        edges: Graph edges.

    Returns:
        Sorted ids of the nodes left unprocessed. Empty when acyclic.
    """
    in_degree: dict[str, int] = {}
    successors: dict[str, list[str]] = {}
    for node in nodes:
        in_degree[node.id] = 0
        successors[node.id] = []

    for edge in edges:
        if edge.from_ in successors and edge.to in in_degree:
            successors[edge.from_].append(edge.to)
            in_degree[edge.to] += 1

    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    processed: set[str] = set()
    while queue:
        current = queue.popleft()
        processed.add(current)
        for succ in successors.get(current, []):
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                queue.append(succ)

    remaining = sorted(set(in_degree) - processed)
    if remaining:
        log.debug("cycle_detected", remaining=remaining)
    return remaining


def has_cycle(nodes: Sequence[Node], edges: Sequence[Edge]) -> bool:
    """True if the graph contains a directed cycle."""
    return bool(find_cycle_members(nodes, edges))


def has_ancestor_matching(
    start: str,
    index: GraphIndex,
    predicate: Callable[[str], bool],
) -> bool:
    """Reverse-BFS from ``start`` until a node satisfying ``predicate`` is found.

    ``start`` itself is tested too. The walk stops at the first match.
    """
    visited: set[str] = set()
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if predicate(current):
            return True
        for parent in index.predecessors(current):
            if parent not in visited:
                queue.append(parent)
    return False
