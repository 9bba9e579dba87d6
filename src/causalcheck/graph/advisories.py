"""Advisory warnings for graphs that are valid but suspicious.

Warnings never block a graph. They flag values outside their nominal
ranges, polarity that contradicts the edge's role, weak edges and
structural edges that drifted away from their canonical values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from causalcheck.graph.rules import (
    CANONICAL_EDGE,
    PROBABILITY_RANGE,
    STRUCTURAL_EDGE_KINDS,
)
from causalcheck.graph.validation_types import ValidationIssue
from causalcheck.models.graph import FactorNode

if TYPE_CHECKING:
    from causalcheck.config import ValidationConfig
    from causalcheck.graph.categories import FactorCategoryInfo
    from causalcheck.graph.indices import GraphIndex
    from causalcheck.models.graph import Edge, Graph


def _is_canonical_structural(edge: Edge, std_tolerance: float) -> bool:
    """Tolerant canonical check: std and direction may be absent."""
    std = edge.strength_std
    direction = edge.effect_direction
    return (
        edge.mean == CANONICAL_EDGE.mean
        and edge.probability == CANONICAL_EDGE.prob
        and (std is None or std <= std_tolerance)
        and (direction is None or direction == CANONICAL_EDGE.direction)
    )


def collect_warnings(
    graph: Graph,
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
    config: ValidationConfig,
) -> list[ValidationIssue]:
    """Collect advisory warnings for edges and controllable factors.

    Edges with an unresolved endpoint are skipped; they are already errors.

    Args:
        graph: The graph being validated.
        index: Index built over the same graph.
        categories: Inferred factor categories.
        config: Supplies the strength range and the low-confidence and low-std thresholds.

    Returns:
        Warnings in edge order, followed by factor warnings.
    """
    warnings: list[ValidationIssue] = []
    strength_lo, strength_hi = config.strength_min, config.strength_max
    prob_lo, prob_hi = PROBABILITY_RANGE

    for i, edge in enumerate(graph.edges):
        from_node = index.by_id.get(edge.from_)
        to_node = index.by_id.get(edge.to)
        if from_node is None or to_node is None:
            continue
        path = f"edges[{i}]"
        mean = edge.strength_mean
        belief = edge.belief_exists

        if mean is not None and (mean < strength_lo or mean > strength_hi):
            warnings.append(
                ValidationIssue(
                    code="STRENGTH_OUT_OF_RANGE",
                    severity="warn",
                    message=f"Edge strength_mean {mean} outside [{strength_lo:g}, {strength_hi:+g}]",
                    path=path,
                    context={"value": mean},
                )
            )

        if belief is not None and (belief < prob_lo or belief > prob_hi):
            warnings.append(
                ValidationIssue(
                    code="PROBABILITY_OUT_OF_RANGE",
                    severity="warn",
                    message=f"Edge belief_exists {belief} outside [{prob_lo:g}, {prob_hi:g}]",
                    path=path,
                    context={"value": belief},
                )
            )

        if to_node.kind == "goal" and mean is not None:
            if from_node.kind == "outcome" and mean < 0:
                warnings.append(
                    ValidationIssue(
                        code="OUTCOME_NEGATIVE_POLARITY",
                        severity="warn",
                        message=f"Outcome->goal edge has negative strength_mean ({mean})",
                        path=path,
                        context={"from": edge.from_, "to": edge.to, "value": mean},
                    )
                )
            elif from_node.kind == "risk" and mean > 0:
                warnings.append(
                    ValidationIssue(
                        code="RISK_POSITIVE_POLARITY",
                        severity="warn",
                        message=f"Risk->goal edge has positive strength_mean ({mean})",
                        path=path,
                        context={"from": edge.from_, "to": edge.to, "value": mean},
                    )
                )

        if belief is not None and belief < config.low_confidence_threshold:
            warnings.append(
                ValidationIssue(
                    code="LOW_EDGE_CONFIDENCE",
                    severity="warn",
                    message=f"Edge has low confidence (belief_exists: {belief})",
                    path=path,
                    context={"value": belief},
                )
            )

        if (from_node.kind, to_node.kind) in STRUCTURAL_EDGE_KINDS:
            if not _is_canonical_structural(edge, config.structural_std_tolerance):
                warnings.append(
                    ValidationIssue(
                        code="STRUCTURAL_EDGE_NOT_CANONICAL",
                        severity="warn",
                        message=f"Structural edge {from_node.kind}->{to_node.kind} is not canonical",
                        path=path,
                        context={
                            "expected": CANONICAL_EDGE.as_dict(),
                            "actual": {
                                "mean": edge.mean,
                                "std": edge.strength_std,
                                "prob": edge.probability,
                                "direction": edge.effect_direction,
                            },
                        },
                    )
                )
        elif edge.strength_std is not None and edge.strength_std < config.low_std_threshold:
            warnings.append(
                ValidationIssue(
                    code="LOW_STD_NON_STRUCTURAL",
                    severity="warn",
                    message=(
                        f"Non-structural edge has low std ({edge.strength_std}); "
                        f"causal edges should have std >= {config.low_std_threshold}"
                    ),
                    path=path,
                    context={
                        "from": edge.from_,
                        "to": edge.to,
                        "std": edge.strength_std,
                        "threshold": config.low_std_threshold,
                    },
                )
            )

    for factor in index.nodes_of("factor"):
        info = categories.get(factor.id)
        if info is None or info.category != "controllable" or not isinstance(factor, FactorNode):
            continue
        if factor.data is not None and factor.data.uncertainty_drivers == []:
            warnings.append(
                ValidationIssue(
                    code="EMPTY_UNCERTAINTY_DRIVERS",
                    severity="warn",
                    message=f'Controllable factor "{factor.id}" has empty uncertainty_drivers',
                    path=f"nodesById.{factor.id}.data.uncertainty_drivers",
                )
            )

    return warnings
