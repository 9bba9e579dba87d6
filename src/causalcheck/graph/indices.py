"""Lookup tables over a graph's node and edge lists.

Builds id and kind lookups plus forward/reverse adjacency. No validation
happens here: duplicate ids overwrite earlier entries in ``by_id`` and edges
to unknown ids are indexed like any other.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from causalcheck.models.graph import Edge, Node


@dataclass
class GraphIndex:
    """Node lookups and adjacency lists for one graph.

    Attributes:
        by_id: Node id -> node (last one wins on duplicate ids).
        by_kind: Node kind -> nodes of that kind, in graph order.
        forward: Node id -> target ids, one entry per edge.
        reverse: Node id -> source ids, one entry per edge.
    """

    by_id: dict[str, Node] = field(default_factory=dict)
    by_kind: dict[str, list[Node]] = field(default_factory=dict)
    forward: dict[str, list[str]] = field(default_factory=dict)
    reverse: dict[str, list[str]] = field(default_factory=dict)

    def nodes_of(self, kind: str) -> list[Node]:
        """Nodes of ``kind`` in graph order (empty list if none)."""
        return self.by_kind.get(kind, [])

    def successors(self, node_id: str) -> list[str]:
        return self.forward.get(node_id, [])

    def predecessors(self, node_id: str) -> list[str]:
        return self.reverse.get(node_id, [])

    def kind_of(self, node_id: str) -> str | None:
        node = self.by_id.get(node_id)
        return node.kind if node is not None else None


def build_index(nodes: Sequence[Node], edges: Sequence[Edge]) -> GraphIndex:
    """Build id/kind lookups and adjacency lists.

    Args:
        nodes: Graph nodes in array order.
        edges: Graph edges in array order.

    Returns:
        A fresh GraphIndex. The graph itself is not modified.
    """
    by_id: dict[str, Node] = {}
    by_kind: dict[str, list[Node]] = defaultdict(list)
    for node in nodes:
        by_id[node.id] = node
        by_kind[node.kind].append(node)

    forward: dict[str, list[str]] = defaultdict(list)
    reverse: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        forward[edge.from_].append(edge.to)
        reverse[edge.to].append(edge.from_)

    return GraphIndex(
        by_id=by_id,
        by_kind=dict(by_kind),
        forward=dict(forward),
        reverse=dict(reverse),
    )
