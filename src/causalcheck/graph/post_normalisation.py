"""Checks that run after strength normalisation (clamping) has been applied."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from causalcheck.graph.validation_types import ValidationIssue, ValidationResult
from causalcheck.models.graph import coerce_graph
from causalcheck.observability import telemetry
from causalcheck.observability.logging import get_logger

if TYPE_CHECKING:
    from causalcheck.models.graph import Graph

log = get_logger(__name__)


def validate_post_normalisation(
    graph: Graph | Mapping[str, Any],
    *,
    request_id: str | None = None,
) -> ValidationResult:
    """Report edges whose ``effect_direction`` contradicts the sign of ``strength_mean``.

    Edges without a direction, without a mean, or with a mean of exactly
    zero are skipped. The graph is not modified.

    Raises:
        GraphContractError: If ``graph`` lacks its nodes/edges arrays.
    """
    graph = coerce_graph(graph)
    errors: list[ValidationIssue] = []

    for i, edge in enumerate(graph.edges):
        mean = edge.strength_mean
        if not edge.effect_direction or mean is None or mean == 0:
            continue
        if (mean > 0) != (edge.effect_direction == "positive"):
            errors.append(
                ValidationIssue(
                    code="SIGN_MISMATCH",
                    severity="error",
                    message=(
                        f'Edge effect_direction "{edge.effect_direction}" contradicts '
                        f"strength_mean sign ({mean})"
                    ),
                    path=f"edges[{i}]",
                    context={"effect_direction": edge.effect_direction, "strength_mean": mean},
                )
            )

    if errors:
        log.warning("post_normalisation_issues", request_id=request_id, issue_count=len(errors))

    result = ValidationResult(valid=not errors, errors=errors, warnings=[])
    telemetry.emit("graph_validation.post_norm", result.counts())
    return result
