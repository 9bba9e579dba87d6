"""Six-tier graph validation.

Pure, deterministic checks run after schema validation and before any
enrichment. Every tier always runs and appends to one error list, so a
single pass reports everything that is wrong with a graph:

1. Structural: node counts per kind, size limits, dangling edge endpoints
2. Topology: goal is a sink, decision is a source, allowed edge matrix, DAG
3. Reachability: forward from the decision, backward from the goal
4. Factor data: required/forbidden data fields per inferred category
5. Semantic: option effect paths, distinct interventions, canonical edges
6. Numeric: no NaN or infinite values

The validator never modifies the graph. Category disagreements are
reported as CATEGORY_MISMATCH; correcting them is the job of
:func:`causalcheck.graph.reconciliation.reconcile`.
"""

from __future__ import annotations

import math
import time
from collections import defaultdict
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import TYPE_CHECKING, Any

from causalcheck.graph.advisories import collect_warnings
from causalcheck.graph.algorithms import bfs_forward, bfs_reverse, has_ancestor_matching, has_cycle
from causalcheck.graph.categories import FactorCategoryInfo, infer_factor_categories
from causalcheck.graph.goal_labels import DEFAULT_DETECTOR, GoalNumberDetector
from causalcheck.graph.indices import GraphIndex, build_index
from causalcheck.graph.rules import ALLOWED_EDGES, CANONICAL_EDGE, SIGNATURE_PRECISION
from causalcheck.graph.validation_types import (
    ControllabilitySummary,
    ValidationIssue,
    ValidationResult,
)
from causalcheck.models.graph import FactorNode, OptionNode, coerce_graph
from causalcheck.observability import telemetry
from causalcheck.observability.logging import get_logger

if TYPE_CHECKING:
    from causalcheck.config import ValidationConfig
    from causalcheck.models.graph import Graph

__all__ = [
    "check_factor_data",
    "check_numeric",
    "check_reachability",
    "check_semantic",
    "check_structural",
    "check_topology",
    "compute_controllability_summary",
    "intervention_signature",
    "is_invalid_number",
    "validate",
]

log = get_logger(__name__)

# Wide enough to quantize any finite float to four places.
_SIGNATURE_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def is_invalid_number(value: Any) -> bool:
    """True for NaN or infinite numbers. Absent and non-numeric values are fine."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isfinite(value)


def _fixed(value: float) -> str:
    """Fixed-point rendering with ties rounded away from zero and no negative zero."""
    if not math.isfinite(value):
        return f"{value:.{SIGNATURE_PRECISION}f}"
    if value == 0:
        value = 0.0
    quantum = Decimal(1).scaleb(-SIGNATURE_PRECISION)
    return str(Decimal(value).quantize(quantum, context=_SIGNATURE_CONTEXT))


def intervention_signature(interventions: Mapping[str, float]) -> str:
    """Canonical signature of an option's interventions.

    Entries are rendered as ``factor_id:value`` with the value fixed to four
    decimal places, sorted, and joined with ``|``, so two options that set
    the same factors to the same rounded values share a signature.
    """
    parts = sorted(f"{factor_id}:{_fixed(value)}" for factor_id, value in interventions.items())
    return "|".join(parts)


# ---------------------------------------------------------------------------
# Tier 1: Structural
# ---------------------------------------------------------------------------


def _count_issue(code: str, kind: str, node_ids: list[str]) -> ValidationIssue | None:
    if len(node_ids) == 1:
        return None
    if not node_ids:
        return ValidationIssue(
            code=code,
            severity="error",
            message=f"Graph must have exactly 1 {kind} node",
            context={f"{kind}Count": 0},
        )
    return ValidationIssue(
        code=code,
        severity="error",
        message=f"Graph must have exactly 1 {kind} node, found {len(node_ids)}",
        context={f"{kind}Count": len(node_ids), f"{kind}Ids": node_ids},
    )


def check_structural(graph: Graph, index: GraphIndex, config: ValidationConfig) -> list[ValidationIssue]:
    """Node counts per kind, size limits and edge endpoint resolution."""
    issues: list[ValidationIssue] = []

    for code, kind in (("MISSING_GOAL", "goal"), ("MISSING_DECISION", "decision")):
        issue = _count_issue(code, kind, [n.id for n in index.nodes_of(kind)])
        if issue is not None:
            issues.append(issue)

    option_count = len(index.nodes_of("option"))
    if option_count < config.min_options:
        issues.append(
            ValidationIssue(
                code="INSUFFICIENT_OPTIONS",
                severity="error",
                message=f"Graph must have at least {config.min_options} options, found {option_count}",
                context={"optionCount": option_count, "min": config.min_options},
            )
        )
    elif option_count > config.max_options:
        issues.append(
            ValidationIssue(
                code="INSUFFICIENT_OPTIONS",
                severity="error",
                message=f"Graph must have at most {config.max_options} options, found {option_count}",
                context={"optionCount": option_count, "max": config.max_options},
            )
        )

    if not index.nodes_of("outcome") and not index.nodes_of("risk"):
        issues.append(
            ValidationIssue(
                code="MISSING_BRIDGE",
                severity="error",
                message="Graph must have at least 1 outcome or risk node",
                context={"outcomeCount": 0, "riskCount": 0},
            )
        )

    if len(graph.nodes) > config.node_limit:
        issues.append(
            ValidationIssue(
                code="NODE_LIMIT_EXCEEDED",
                severity="error",
                message=f"Graph exceeds node limit of {config.node_limit}, found {len(graph.nodes)}",
                context={"nodeCount": len(graph.nodes), "limit": config.node_limit},
            )
        )

    if len(graph.edges) > config.edge_limit:
        issues.append(
            ValidationIssue(
                code="EDGE_LIMIT_EXCEEDED",
                severity="error",
                message=f"Graph exceeds edge limit of {config.edge_limit}, found {len(graph.edges)}",
                context={"edgeCount": len(graph.edges), "limit": config.edge_limit},
            )
        )

    for i, edge in enumerate(graph.edges):
        for field_name, node_id in (("from", edge.from_), ("to", edge.to)):
            if node_id not in index.by_id:
                issues.append(
                    ValidationIssue(
                        code="INVALID_EDGE_REF",
                        severity="error",
                        message=f"Edge references non-existent node: {node_id}",
                        path=f"edges[{i}]",
                        context={"field": field_name, "nodeId": node_id},
                    )
                )

    return issues


# ---------------------------------------------------------------------------
# Tier 2: Topology
# ---------------------------------------------------------------------------


def check_topology(
    graph: Graph,
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
) -> list[ValidationIssue]:
    """Goal is a sink, decision is a source, edges follow the matrix, no cycles."""
    issues: list[ValidationIssue] = []

    for goal in index.nodes_of("goal"):
        outgoing = index.successors(goal.id)
        if outgoing:
            issues.append(
                ValidationIssue(
                    code="GOAL_HAS_OUTGOING",
                    severity="error",
                    message=f'Goal node "{goal.id}" must not have outgoing edges',
                    path=f"nodesById.{goal.id}",
                    context={"outgoingTo": list(outgoing)},
                )
            )

    for decision in index.nodes_of("decision"):
        incoming = index.predecessors(decision.id)
        if incoming:
            issues.append(
                ValidationIssue(
                    code="DECISION_HAS_INCOMING",
                    severity="error",
                    message=f'Decision node "{decision.id}" must not have incoming edges',
                    path=f"nodesById.{decision.id}",
                    context={"incomingFrom": list(incoming)},
                )
            )

    for i, edge in enumerate(graph.edges):
        from_node = index.by_id.get(edge.from_)
        to_node = index.by_id.get(edge.to)
        if from_node is None or to_node is None:
            continue  # reported as INVALID_EDGE_REF

        from_info = categories.get(edge.from_)
        to_info = categories.get(edge.to)
        from_category = from_info.category if from_info else None
        to_category = to_info.category if to_info else None

        allowed = any(
            rule.matches(from_node.kind, to_node.kind, from_category, to_category)
            for rule in ALLOWED_EDGES
        )
        if not allowed:
            issues.append(
                ValidationIssue(
                    code="INVALID_EDGE_TYPE",
                    severity="error",
                    message=f"Invalid edge from {from_node.kind} to {to_node.kind}",
                    path=f"edges[{i}]",
                    context={
                        "fromKind": from_node.kind,
                        "toKind": to_node.kind,
                        "fromId": edge.from_,
                        "toId": edge.to,
                        "fromFactorCategory": from_category,
                        "toFactorCategory": to_category,
                    },
                )
            )

    if has_cycle(graph.nodes, graph.edges):
        issues.append(
            ValidationIssue(
                code="CYCLE_DETECTED",
                severity="error",
                message="Graph contains a cycle; must be a DAG",
            )
        )

    return issues


# ---------------------------------------------------------------------------
# Tier 3: Reachability
# ---------------------------------------------------------------------------


def check_reachability(
    graph: Graph,
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    """Forward reachability from the decision and backward from the goal.

    Observable and external factors may be exogenous roots: they are exempt
    from the forward check as long as they reach the goal. Outcome and risk
    nodes in the same position are exempt too, but reported as info.

    Returns:
        Tuple of (errors, info issues). Both are empty when the graph has no
        decision or no goal; Tier 1 already reports that.
    """
    errors: list[ValidationIssue] = []
    infos: list[ValidationIssue] = []

    decisions = index.nodes_of("decision")
    goals = index.nodes_of("goal")
    if not decisions or not goals:
        return errors, infos

    reachable_from_decision = bfs_forward([decisions[0].id], index)
    can_reach_goal = bfs_reverse([goals[0].id], index)

    for node in graph.nodes:
        if node.kind in ("decision", "goal") or node.id in reachable_from_decision:
            continue

        info = categories.get(node.id)
        if info is not None and info.is_exogenous and node.id in can_reach_goal:
            continue

        if node.kind in ("outcome", "risk") and node.id in can_reach_goal:
            reason = "exogenous" if index.predecessors(node.id) else "isolated"
            infos.append(
                ValidationIssue(
                    code="EXEMPT_UNREACHABLE_OUTCOME_RISK",
                    severity="info",
                    message=(
                        f'Outcome/risk "{node.label or node.id}" has no controllable path '
                        "from decision; decision influence is limited"
                    ),
                    path=f"nodesById.{node.id}",
                    context={"kind": node.kind, "nodeId": node.id, "reason": reason},
                )
            )
            continue

        errors.append(
            ValidationIssue(
                code="UNREACHABLE_FROM_DECISION",
                severity="error",
                message=f'Node "{node.id}" is not reachable from decision',
                path=f"nodesById.{node.id}",
                context={"kind": node.kind},
            )
        )

    for node in graph.nodes:
        if node.kind == "decision" or node.id in can_reach_goal:
            continue
        errors.append(
            ValidationIssue(
                code="NO_PATH_TO_GOAL",
                severity="error",
                message=f'Node "{node.id}" has no path to goal',
                path=f"nodesById.{node.id}",
                context={"kind": node.kind},
            )
        )

    return errors, infos


def compute_controllability_summary(
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
    exempt_node_ids: list[str],
) -> ControllabilitySummary:
    """Count outcome/risk nodes with and without a controllable factor upstream."""

    def is_controllable(node_id: str) -> bool:
        info = categories.get(node_id)
        return info is not None and info.category == "controllable"

    outcome_risk = [*index.nodes_of("outcome"), *index.nodes_of("risk")]
    with_controllable = sum(
        1 for node in outcome_risk if has_ancestor_matching(node.id, index, is_controllable)
    )
    return ControllabilitySummary(
        total_outcome_risk_nodes=len(outcome_risk),
        with_controllable_ancestry=with_controllable,
        without_controllable_ancestry=len(outcome_risk) - with_controllable,
        exempt_count=len(exempt_node_ids),
        exempt_node_ids=list(exempt_node_ids),
    )


# ---------------------------------------------------------------------------
# Tier 4: Factor data consistency
# ---------------------------------------------------------------------------


def check_factor_data(
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
) -> list[ValidationIssue]:
    """Required and forbidden data fields for each inferred factor category.

    Controllable factors need value, extractionType, factor_type and
    uncertainty_drivers. Observable factors need value and extractionType and
    must not carry factor_type or uncertainty_drivers. External factors carry
    none of value, factor_type or uncertainty_drivers.
    """
    issues: list[ValidationIssue] = []

    for factor in index.nodes_of("factor"):
        info = categories.get(factor.id)
        if info is None or not isinstance(factor, FactorNode):
            continue
        data = factor.data

        value = data.value if data else None
        extraction_type = data.extractionType if data else None
        factor_type = data.factor_type if data else None
        drivers = data.uncertainty_drivers if data else None
        path = f"nodesById.{factor.id}"

        if info.category == "controllable":
            missing: list[str] = []
            if value is None:
                missing.append("value")
            if not extraction_type:
                missing.append("extractionType")
            if not factor_type:
                missing.append("factor_type")
            if drivers is None:
                missing.append("uncertainty_drivers")
            if missing:
                issues.append(
                    ValidationIssue(
                        code="CONTROLLABLE_MISSING_DATA",
                        severity="error",
                        message=f'Controllable factor "{factor.id}" missing required data: {", ".join(missing)}',
                        path=path,
                        context={"missing": missing},
                    )
                )

        elif info.category == "observable":
            missing = []
            if value is None:
                missing.append("value")
            if not extraction_type:
                missing.append("extractionType")
            if missing:
                issues.append(
                    ValidationIssue(
                        code="OBSERVABLE_MISSING_DATA",
                        severity="error",
                        message=f'Observable factor "{factor.id}" missing required data: {", ".join(missing)}',
                        path=path,
                        context={"missing": missing},
                    )
                )

            extra: list[str] = []
            if factor_type:
                extra.append("factor_type")
            if drivers is not None:
                extra.append("uncertainty_drivers")
            if extra:
                issues.append(
                    ValidationIssue(
                        code="OBSERVABLE_EXTRA_DATA",
                        severity="error",
                        message=f'Observable factor "{factor.id}" should not have: {", ".join(extra)}',
                        path=path,
                        context={"extra": extra},
                    )
                )

        else:
            extra = []
            if value is not None:
                extra.append("value")
            if factor_type:
                extra.append("factor_type")
            if drivers is not None:
                extra.append("uncertainty_drivers")
            if extra:
                issues.append(
                    ValidationIssue(
                        code="EXTERNAL_HAS_DATA",
                        severity="error",
                        message=f'External factor "{factor.id}" should not have: {", ".join(extra)}',
                        path=path,
                        context={"extra": extra},
                    )
                )

        if info.explicit_category and info.explicit_category != info.category:
            issues.append(
                ValidationIssue(
                    code="CATEGORY_MISMATCH",
                    severity="error",
                    message=(
                        f'Factor "{factor.id}" declares category "{info.explicit_category}" '
                        f'but structure indicates "{info.category}"'
                    ),
                    path=path,
                    context={"explicit": info.explicit_category, "inferred": info.category},
                )
            )

    return issues


# ---------------------------------------------------------------------------
# Tier 5: Semantic integrity
# ---------------------------------------------------------------------------


def check_semantic(
    graph: Graph,
    index: GraphIndex,
    categories: Mapping[str, FactorCategoryInfo],
    goal_detector: GoalNumberDetector = DEFAULT_DETECTOR,
) -> list[ValidationIssue]:
    """Option effect paths, distinct interventions and canonical structural edges."""
    issues: list[ValidationIssue] = []

    goals = index.nodes_of("goal")
    if not goals:
        return issues
    can_reach_goal = bfs_reverse([goals[0].id], index)
    options = [n for n in index.nodes_of("option") if isinstance(n, OptionNode)]

    for option in options:
        targets = index.successors(option.id)
        effective = [
            target
            for target in targets
            if target in can_reach_goal
            and (info := categories.get(target)) is not None
            and info.category == "controllable"
        ]
        if not effective:
            issues.append(
                ValidationIssue(
                    code="NO_EFFECT_PATH",
                    severity="error",
                    message=f'Option "{option.id}" has no controllable factors with path to goal',
                    path=f"nodesById.{option.id}",
                    context={"targets": list(targets)},
                )
            )

    by_signature: dict[str, list[str]] = defaultdict(list)
    for option in options:
        if option.data is None or option.data.interventions is None:
            continue
        by_signature[intervention_signature(option.data.interventions)].append(option.id)

    for signature, option_ids in by_signature.items():
        if len(option_ids) > 1:
            issues.append(
                ValidationIssue(
                    code="OPTIONS_IDENTICAL",
                    severity="error",
                    message=f"Options have identical intervention signatures: {', '.join(option_ids)}",
                    context={"optionIds": option_ids, "signature": signature},
                )
            )

    for option in options:
        if option.data is None or option.data.interventions is None:
            continue
        path = f"nodesById.{option.id}.data.interventions"
        for factor_id in option.data.interventions:
            target = index.by_id.get(factor_id)
            if target is None:
                issues.append(
                    ValidationIssue(
                        code="INVALID_INTERVENTION_REF",
                        severity="error",
                        message=f'Option "{option.id}" references non-existent node: {factor_id}',
                        path=path,
                        context={"factorId": factor_id},
                    )
                )
            elif target.kind != "factor":
                issues.append(
                    ValidationIssue(
                        code="INVALID_INTERVENTION_REF",
                        severity="error",
                        message=(
                            f'Option "{option.id}" intervention references non-factor node: '
                            f"{factor_id} (kind: {target.kind})"
                        ),
                        path=path,
                        context={"factorId": factor_id, "actualKind": target.kind},
                    )
                )

    for factor in index.nodes_of("factor"):
        if not isinstance(factor, FactorNode):
            continue
        label = factor.label or factor.id
        if not goal_detector.is_goal_number(label):
            continue
        info = categories.get(factor.id)
        has_option_edge = info.has_option_edge if info else False
        # Either signal of controllability is enough to keep the factor
        if has_option_edge or factor.category == "controllable":
            continue
        issues.append(
            ValidationIssue(
                code="GOAL_NUMBER_AS_FACTOR",
                severity="error",
                message=f'Factor "{label}" appears to be a goal target value, not a causal factor',
                path=f"nodesById.{factor.id}",
                context={
                    "label": label,
                    "factorId": factor.id,
                    "hasOptionEdge": has_option_edge,
                    "category": factor.category,
                },
            )
        )

    for i, edge in enumerate(graph.edges):
        if index.kind_of(edge.from_) != "option" or index.kind_of(edge.to) != "factor":
            continue
        actual = {
            "mean": edge.mean,
            "std": edge.strength_std,
            "prob": edge.probability,
            "direction": edge.effect_direction,
        }
        if (
            actual["mean"] == CANONICAL_EDGE.mean
            and actual["std"] == CANONICAL_EDGE.std
            and actual["prob"] == CANONICAL_EDGE.prob
            and actual["direction"] == CANONICAL_EDGE.direction
        ):
            continue
        issues.append(
            ValidationIssue(
                code="STRUCTURAL_EDGE_NOT_CANONICAL_ERROR",
                severity="error",
                message=(
                    "Option->factor structural edge must have canonical values "
                    '(mean=1.0, std=0.01, prob=1.0, direction="positive")'
                ),
                path=f"edges[{i}]",
                context={
                    "from": edge.from_,
                    "to": edge.to,
                    "expected": CANONICAL_EDGE.as_dict(),
                    "actual": actual,
                },
            )
        )

    return issues


# ---------------------------------------------------------------------------
# Tier 6: Numeric
# ---------------------------------------------------------------------------


def check_numeric(graph: Graph) -> list[ValidationIssue]:
    """Report every NaN or infinite number, one issue per field."""
    issues: list[ValidationIssue] = []

    for node in graph.nodes:
        if isinstance(node, FactorNode) and node.data is not None:
            if is_invalid_number(node.data.value):
                issues.append(
                    ValidationIssue(
                        code="NAN_VALUE",
                        severity="error",
                        message=f'Factor "{node.id}" has invalid numeric value: {node.data.value}',
                        path=f"nodesById.{node.id}.data.value",
                        context={"value": node.data.value},
                    )
                )
            if is_invalid_number(node.data.baseline):
                issues.append(
                    ValidationIssue(
                        code="NAN_VALUE",
                        severity="error",
                        message=f'Factor "{node.id}" has invalid baseline: {node.data.baseline}',
                        path=f"nodesById.{node.id}.data.baseline",
                        context={"value": node.data.baseline},
                    )
                )
        elif isinstance(node, OptionNode) and node.data is not None and node.data.interventions:
            for factor_id, value in node.data.interventions.items():
                if is_invalid_number(value):
                    issues.append(
                        ValidationIssue(
                            code="NAN_VALUE",
                            severity="error",
                            message=f'Option "{node.id}" has invalid intervention value for {factor_id}: {value}',
                            path=f"nodesById.{node.id}.data.interventions.{factor_id}",
                            context={"factorId": factor_id, "value": value},
                        )
                    )

    for i, edge in enumerate(graph.edges):
        for field_name in ("strength_mean", "strength_std", "belief_exists"):
            value = getattr(edge, field_name)
            if is_invalid_number(value):
                issues.append(
                    ValidationIssue(
                        code="NAN_VALUE",
                        severity="error",
                        message=f"Edge has invalid {field_name}: {value}",
                        path=f"edges[{i}]",
                        context={"field": field_name, "value": value},
                    )
                )

    return issues


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def validate(
    graph: Graph | Mapping[str, Any],
    *,
    request_id: str | None = None,
    config: ValidationConfig | None = None,
    goal_detector: GoalNumberDetector | None = None,
) -> ValidationResult:
    """Validate a graph for structural, topological and semantic correctness.

    Args:
        graph: The graph, or a mapping that parses into one.
        request_id: Correlation id carried into log events.
        config: Limits and thresholds. Defaults to the built-in values.
        goal_detector: Strategy for GOAL_NUMBER_AS_FACTOR. Defaults to the
            regex heuristic.

    Returns:
        ValidationResult with every error from all six tiers, advisory
        warnings plus reachability exemptions, and the controllability
        summary.

    Raises:
        GraphContractError: If ``graph`` lacks its nodes/edges arrays.
    """
    from causalcheck.config import ValidationConfig

    graph = coerce_graph(graph)
    config = config or ValidationConfig()
    detector = goal_detector or DEFAULT_DETECTOR
    start = time.perf_counter()

    log.info(
        "graph_validation_started",
        request_id=request_id,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
    )

    index = build_index(graph.nodes, graph.edges)
    categories = infer_factor_categories(graph.edges, index)

    errors: list[ValidationIssue] = []
    errors.extend(check_structural(graph, index, config))
    errors.extend(check_topology(graph, index, categories))
    reachability_errors, exemptions = check_reachability(graph, index, categories)
    errors.extend(reachability_errors)
    errors.extend(check_factor_data(index, categories))
    errors.extend(check_semantic(graph, index, categories, detector))
    errors.extend(check_numeric(graph))

    warnings = collect_warnings(graph, index, categories, config)
    warnings.extend(exemptions)

    exempt_ids = [issue.context["nodeId"] for issue in exemptions if issue.context]
    summary = compute_controllability_summary(index, categories, exempt_ids)

    result = ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        controllability_summary=summary,
    )

    log.info(
        "graph_validation_complete",
        request_id=request_id,
        valid=result.valid,
        error_count=len(errors),
        warning_count=len(warnings),
        controllability_summary=summary.to_dict(),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    telemetry.emit("graph_validation.complete", result.counts())
    return result
