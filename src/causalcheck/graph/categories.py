"""Structural category inference for factor nodes.

A factor's category is derived from topology and data presence:

- controllable: some option node has an edge into it
- observable: no option edge, but ``data.value`` is present
- external: neither

The inference is authoritative. A category declared on the node is kept
only as ``explicit_category`` so that disagreements can be reported by the
validator or corrected by the reconciliation pass.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from causalcheck.models.graph import FactorNode

if TYPE_CHECKING:
    from causalcheck.graph.indices import GraphIndex
    from causalcheck.models.graph import Edge


@dataclass(frozen=True)
class FactorCategoryInfo:
    """Inferred category of one factor node.

    Attributes:
        node_id: The factor's id.
        category: Inferred category.
        has_option_edge: True if any option node targets this factor.
        has_value: True if ``data.value`` is present.
        explicit_category: Category declared on the node, if any.
    """

    node_id: str
    category: str
    has_option_edge: bool
    has_value: bool
    explicit_category: str | None = None

    @property
    def is_exogenous(self) -> bool:
        """Observable and external factors may legitimately be graph roots."""
        return self.category in ("observable", "external")

    @property
    def reason(self) -> str:
        """Short explanation of how the category was inferred."""
        if self.has_option_edge:
            return "has option edge -> controllable"
        if self.has_value:
            return "has value -> observable"
        return "no option edge, no value -> external"


def infer_factor_category(has_option_edge: bool, has_value: bool) -> str:
    """Return the category implied by topology and data presence."""
    if has_option_edge:
        return "controllable"
    if has_value:
        return "observable"
    return "external"


def infer_factor_categories(
    edges: Sequence[Edge],
    index: GraphIndex,
) -> dict[str, FactorCategoryInfo]:
    """Infer the structural category of every factor node.

    Args:
        edges: Graph edges.
        index: Index built over the same graph.

    Returns:
        Factor id -> FactorCategoryInfo, in graph order.
    """
    option_ids = {node.id for node in index.nodes_of("option")}
    factors_with_option_edge = {edge.to for edge in edges if edge.from_ in option_ids}

    categories: dict[str, FactorCategoryInfo] = {}
    for node in index.nodes_of("factor"):
        if not isinstance(node, FactorNode):
            continue
        has_option_edge = node.id in factors_with_option_edge
        has_value = node.data is not None and node.data.value is not None
        categories[node.id] = FactorCategoryInfo(
            node_id=node.id,
            category=infer_factor_category(has_option_edge, has_value),
            has_option_edge=has_option_edge,
            has_value=has_value,
            explicit_category=node.category,
        )
    return categories
