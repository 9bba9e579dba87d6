"""Pydantic models for causal decision graphs.

A graph is a flat list of nodes and a flat list of edges. Nodes are a
discriminated union over ``kind`` so every consumer sees the data shape that
belongs to that kind: factor nodes carry :class:`FactorData`, option nodes
carry :class:`OptionData`, every other kind carries an opaque dict.

Enum-like fields (``category``, ``factor_type``, ``extractionType``,
``effect_direction``) are stored as plain strings. Upstream generators do
emit values outside the allowed sets, and the reconciliation pass needs to
see those values in order to correct them. The allowed sets are the
``Literal`` aliases below; :data:`VALID_FACTOR_TYPES` and friends are derived
from them so there is a single source of truth.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from causalcheck.errors import GraphContractError

# Type aliases for clarity
NodeKind = Literal["goal", "decision", "option", "factor", "outcome", "risk", "action"]
FactorCategory = Literal["controllable", "observable", "external"]
FactorType = Literal["cost", "price", "time", "probability", "revenue", "demand", "quality", "other"]
ExtractionType = Literal["explicit", "inferred", "range", "observed"]
EffectDirection = Literal["positive", "negative", "mixed"]

VALID_NODE_KINDS: frozenset[str] = frozenset(get_args(NodeKind))
VALID_FACTOR_CATEGORIES: frozenset[str] = frozenset(get_args(FactorCategory))
VALID_FACTOR_TYPES: frozenset[str] = frozenset(get_args(FactorType))
VALID_EXTRACTION_TYPES: frozenset[str] = frozenset(get_args(ExtractionType))
VALID_EFFECT_DIRECTIONS: frozenset[str] = frozenset(get_args(EffectDirection))


# ---------------------------------------------------------------------------
# Node data payloads
# ---------------------------------------------------------------------------


class FactorData(BaseModel):
    """Data payload of a factor node.

    ``None`` means the field is absent. Which fields must be present depends
    on the factor's inferred category (see the factor-data tier).
    """

    model_config = ConfigDict(extra="allow")

    value: float | None = None
    baseline: float | None = None
    factor_type: str | None = None
    uncertainty_drivers: list[str] | None = None
    extractionType: str | None = None  # noqa: N815 - wire name


class OptionData(BaseModel):
    """Data payload of an option node: factor id -> intervention value."""

    model_config = ConfigDict(extra="allow")

    interventions: dict[str, float] | None = None


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class _NodeBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    label: str | None = None


class GoalNode(_NodeBase):
    kind: Literal["goal"]
    data: dict[str, Any] | None = None


class DecisionNode(_NodeBase):
    kind: Literal["decision"]
    data: dict[str, Any] | None = None


class OptionNode(_NodeBase):
    kind: Literal["option"]
    data: OptionData | None = None


class FactorNode(_NodeBase):
    """A factor node.

    ``category`` is the generator's declared category. It is advisory: the
    structurally inferred category always wins.
    """

    kind: Literal["factor"]
    category: str | None = None
    data: FactorData | None = None


class OutcomeNode(_NodeBase):
    kind: Literal["outcome"]
    data: dict[str, Any] | None = None


class RiskNode(_NodeBase):
    kind: Literal["risk"]
    data: dict[str, Any] | None = None


class ActionNode(_NodeBase):
    kind: Literal["action"]
    data: dict[str, Any] | None = None


Node = Annotated[
    GoalNode | DecisionNode | OptionNode | FactorNode | OutcomeNode | RiskNode | ActionNode,
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class Edge(BaseModel):
    """A directed edge.

    ``from``/``to`` are not required to resolve to existing nodes; that is a
    validation rule, not a shape rule. ``weight`` and ``belief`` are legacy
    aliases of ``strength_mean`` and ``belief_exists``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    id: str | None = None
    strength_mean: float | None = None
    strength_std: float | None = None
    belief_exists: float | None = None
    weight: float | None = None
    belief: float | None = None
    effect_direction: str | None = None

    @property
    def key(self) -> str:
        """Stable identifier used in audit records (``from::to`` when no id)."""
        return self.id or f"{self.from_}::{self.to}"

    @property
    def mean(self) -> float | None:
        """``strength_mean`` falling back to the legacy ``weight``."""
        return self.strength_mean if self.strength_mean is not None else self.weight

    @property
    def probability(self) -> float | None:
        """``belief_exists`` falling back to the legacy ``belief``."""
        return self.belief_exists if self.belief_exists is not None else self.belief


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class Graph(BaseModel):
    """A causal decision graph: nodes plus edges, in array order."""

    model_config = ConfigDict(extra="allow")

    nodes: list[Node]
    edges: list[Edge]

    def to_dict(self) -> dict[str, Any]:
        """Serialize using wire names (``from``), omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GoalConstraint(BaseModel):
    """A constraint targeting one node of the graph; other fields are opaque."""

    model_config = ConfigDict(extra="allow")

    node_id: str
    constraint_id: str | None = None


def coerce_graph(graph: Graph | Mapping[str, Any]) -> Graph:
    """Return ``graph`` as a :class:`Graph`, parsing mappings.

    A :class:`Graph` instance is returned as-is (same reference), which is
    what lets the reconciliation pass mutate the caller's object.

    Raises:
        GraphContractError: If the input is not a graph, lacks its
            ``nodes``/``edges`` arrays, or fails the schema layer.
    """
    if isinstance(graph, Graph):
        return graph
    if not isinstance(graph, Mapping):
        raise GraphContractError(reason=f"expected a graph object, got {type(graph).__name__}")

    missing = [key for key in ("nodes", "edges") if not isinstance(graph.get(key), list)]
    if missing:
        raise GraphContractError(reason="graph must have 'nodes' and 'edges' arrays", missing=missing)

    try:
        return Graph.model_validate(graph)
    except ValidationError as e:
        raise GraphContractError(reason=f"graph failed schema validation: {e}") from e
