"""Graph data models."""

from causalcheck.models.graph import (
    VALID_EFFECT_DIRECTIONS,
    VALID_EXTRACTION_TYPES,
    VALID_FACTOR_CATEGORIES,
    VALID_FACTOR_TYPES,
    VALID_NODE_KINDS,
    ActionNode,
    DecisionNode,
    Edge,
    EffectDirection,
    ExtractionType,
    FactorCategory,
    FactorData,
    FactorNode,
    FactorType,
    GoalConstraint,
    GoalNode,
    Graph,
    Node,
    NodeKind,
    OptionData,
    OptionNode,
    OutcomeNode,
    RiskNode,
    coerce_graph,
)

__all__ = [
    "VALID_EFFECT_DIRECTIONS",
    "VALID_EXTRACTION_TYPES",
    "VALID_FACTOR_CATEGORIES",
    "VALID_FACTOR_TYPES",
    "VALID_NODE_KINDS",
    "ActionNode",
    "DecisionNode",
    "Edge",
    "EffectDirection",
    "ExtractionType",
    "FactorCategory",
    "FactorData",
    "FactorNode",
    "FactorType",
    "GoalConstraint",
    "GoalNode",
    "Graph",
    "Node",
    "NodeKind",
    "OptionData",
    "OptionNode",
    "OutcomeNode",
    "RiskNode",
    "coerce_graph",
]
