"""Structural truth reconciliation pass (STRP).

Deterministic metadata corrections that run before repair and validation.
Generators declare metadata (categories, enum values, effect directions)
that can contradict the graph structure they produced; these rules align
the metadata with the structure:

1. Category override: declared factor category follows structural inference
2. Enum validation: out-of-set enum values are reset to safe defaults
3. Constraint target: goal constraints pointing at unknown nodes are
   remapped by fuzzy match or dropped (only when constraints are given)
4. Sign reconciliation: ``effect_direction`` follows the sign of ``strength_mean``
5. Controllable data completeness: fill missing ``factor_type`` and
   ``uncertainty_drivers`` (opt-in, for late pipeline passes)

The pass never adds or removes nodes or edges. All writes go through
:class:`GraphFieldEditor`, which exposes only the field setters the rules
need and records one :class:`STRPMutation` per changed field. Running the
pass on its own output produces no mutations.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from causalcheck.graph.categories import infer_factor_categories
from causalcheck.graph.indices import build_index
from causalcheck.graph.rules import (
    EFFECT_DIRECTION_DEFAULT,
    EXTRACTION_TYPE_DEFAULT,
    FACTOR_TYPE_DEFAULT,
    UNCERTAINTY_DRIVERS_DEFAULT,
)
from causalcheck.graph.validation_types import ValidationIssue
from causalcheck.models.graph import (
    VALID_EFFECT_DIRECTIONS,
    VALID_EXTRACTION_TYPES,
    VALID_FACTOR_CATEGORIES,
    VALID_FACTOR_TYPES,
    FactorData,
    FactorNode,
    GoalConstraint,
    coerce_graph,
)
from causalcheck.observability import telemetry
from causalcheck.observability.logging import get_logger

if TYPE_CHECKING:
    from causalcheck.graph.categories import FactorCategoryInfo
    from causalcheck.models.graph import Edge, Graph

__all__ = [
    "ConstraintNormalisationResult",
    "GraphFieldEditor",
    "ReconciliationResult",
    "STRPMutation",
    "category_override_rule",
    "constraint_target_rule",
    "controllable_data_completeness_rule",
    "enum_validation_rule",
    "normalise_constraint_targets",
    "reconcile",
    "sign_reconciliation_rule",
]

log = get_logger(__name__)

MutationSeverity = Literal["info", "warn"]

CONSTRAINT_NODE_PREFIXES = ("fac_", "out_", "risk_")
MIN_FUZZY_STEM_LENGTH = 4
# Share of the shorter stem a common leading run must cover
MIN_SHARED_LEAD_RATIO = 0.75

# Factor data fields owned by the controllable category
_CONTROLLABLE_FIELDS = ("factor_type", "uncertainty_drivers")


@dataclass
class STRPMutation:
    """Audit record for one field written by a reconciliation rule.

    Attributes:
        rule: Rule that made the change (e.g. ``category_override``).
        code: Machine-readable change code (e.g. ``CATEGORY_OVERRIDE``).
        field: Field that changed, dotted for nested data
            (``data.factor_type``).
        before: Value before the change (None when absent).
        after: Value after the change (None when removed).
        reason: Human-readable explanation.
        severity: "warn" when the input was invalid, "info" otherwise.
        node_id: Node that changed, for node fields.
        edge_id: Edge that changed (``id`` or ``from::to``), for edge fields.
        constraint_id: Constraint that changed, for constraint targets.
    """

    rule: str
    code: str
    field: str
    before: Any
    after: Any
    reason: str
    severity: MutationSeverity
    node_id: str | None = None
    edge_id: str | None = None
    constraint_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"rule": self.rule, "code": self.code}
        for key in ("node_id", "edge_id", "constraint_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data.update(
            field=self.field,
            before=self.before,
            after=self.after,
            reason=self.reason,
            severity=self.severity,
        )
        return data


class GraphFieldEditor:
    """Write access to the graph fields reconciliation rules may change.

    Rules never touch the graph directly. Each setter writes a single field,
    appends the matching :class:`STRPMutation`, and does nothing (and records
    nothing) when the value is already in place. There is no way
    to add or remove nodes or edges through this class.
    """

    def __init__(self) -> None:
        self.mutations: list[STRPMutation] = []

    def set_factor_category(
        self,
        node: FactorNode,
        category: str | None,
        *,
        rule: str,
        code: str,
        reason: str,
        severity: MutationSeverity,
    ) -> None:
        before = node.category
        if before == category:
            return
        node.category = category
        self.mutations.append(
            STRPMutation(
                rule=rule,
                code=code,
                node_id=node.id,
                field="category",
                before=before,
                after=category,
                reason=reason,
                severity=severity,
            )
        )

    def set_factor_data(
        self,
        node: FactorNode,
        name: str,
        value: Any,
        *,
        rule: str,
        code: str,
        reason: str,
        severity: MutationSeverity,
    ) -> None:
        """Set ``node.data.<name>``, creating the data payload if needed.

        Setting a field to None removes it.
        """
        if isinstance(value, tuple):
            value = list(value)
        before = getattr(node.data, name, None) if node.data is not None else None
        if isinstance(before, list):
            before = list(before)
        if before == value:
            return
        if node.data is None:
            node.data = FactorData()
        setattr(node.data, name, value)
        after = getattr(node.data, name)
        if isinstance(after, list):
            after = list(after)
        self.mutations.append(
            STRPMutation(
                rule=rule,
                code=code,
                node_id=node.id,
                field=f"data.{name}",
                before=before,
                after=after,
                reason=reason,
                severity=severity,
            )
        )

    def set_edge_direction(
        self,
        edge: Edge,
        direction: str,
        *,
        rule: str,
        code: str,
        reason: str,
        severity: MutationSeverity,
    ) -> None:
        before = edge.effect_direction
        if before == direction:
            return
        edge.effect_direction = direction
        self.mutations.append(
            STRPMutation(
                rule=rule,
                code=code,
                edge_id=edge.key,
                field="effect_direction",
                before=before,
                after=direction,
                reason=reason,
                severity=severity,
            )
        )

    def record_constraint(
        self,
        constraint_id: str | None,
        *,
        code: str,
        before: str,
        after: str | None,
        reason: str,
    ) -> None:
        """Record a constraint retarget. Constraints are rebuilt, not edited in place."""
        self.mutations.append(
            STRPMutation(
                rule="constraint_target",
                code=code,
                constraint_id=constraint_id,
                field="node_id",
                before=before,
                after=after,
                reason=reason,
                severity="info",
            )
        )


# ---------------------------------------------------------------------------
# Rule 1: Category override
# ---------------------------------------------------------------------------


def category_override_rule(
    factors: Sequence[FactorNode],
    categories: Mapping[str, FactorCategoryInfo],
    editor: GraphFieldEditor,
) -> None:
    """Overwrite declared factor categories that disagree with inference.

    A factor newly classified as controllable gets default ``factor_type``
    and ``uncertainty_drivers`` when missing. A factor classified away from
    controllable loses both fields.
    """
    rule = "category_override"
    for node in factors:
        info = categories.get(node.id)
        declared = node.category
        if info is None or not declared or declared == info.category:
            continue

        inferred = info.category
        editor.set_factor_category(
            node,
            inferred,
            rule=rule,
            code="CATEGORY_OVERRIDE",
            reason=f"Structural inference: {info.reason}",
            severity="info",
        )

        data = node.data
        if inferred == "controllable":
            if data is None or not data.factor_type:
                editor.set_factor_data(
                    node,
                    "factor_type",
                    FACTOR_TYPE_DEFAULT,
                    rule=rule,
                    code="CATEGORY_DATA_FILLED",
                    reason=f'Reclassified "{declared}" -> controllable; filled default factor_type',
                    severity="info",
                )
            if node.data is None or node.data.uncertainty_drivers is None:
                editor.set_factor_data(
                    node,
                    "uncertainty_drivers",
                    UNCERTAINTY_DRIVERS_DEFAULT,
                    rule=rule,
                    code="CATEGORY_DATA_FILLED",
                    reason=f'Reclassified "{declared}" -> controllable; filled default uncertainty_drivers',
                    severity="info",
                )
        elif data is not None:
            for name in _CONTROLLABLE_FIELDS:
                if getattr(data, name) is not None:
                    editor.set_factor_data(
                        node,
                        name,
                        None,
                        rule=rule,
                        code="CATEGORY_DATA_STRIPPED",
                        reason=f'Reclassified "{declared}" -> {inferred}; {name} applies to controllable factors only',
                        severity="info",
                    )


# ---------------------------------------------------------------------------
# Rule 2: Enum validation
# ---------------------------------------------------------------------------


def _valid_list(values: frozenset[str]) -> str:
    return ", ".join(sorted(values))


def enum_validation_rule(graph: Graph, editor: GraphFieldEditor) -> None:
    """Reset enum fields holding values outside their allowed sets."""
    rule = "enum_validation"
    code = "ENUM_VALUE_CORRECTED"

    for node in graph.nodes:
        if not isinstance(node, FactorNode):
            continue

        data = node.data
        if data is not None:
            if data.factor_type is not None and data.factor_type not in VALID_FACTOR_TYPES:
                editor.set_factor_data(
                    node,
                    "factor_type",
                    FACTOR_TYPE_DEFAULT,
                    rule=rule,
                    code=code,
                    reason=f'Invalid factor_type "{data.factor_type}"; valid: {_valid_list(VALID_FACTOR_TYPES)}',
                    severity="warn",
                )
            if data.extractionType is not None and data.extractionType not in VALID_EXTRACTION_TYPES:
                editor.set_factor_data(
                    node,
                    "extractionType",
                    EXTRACTION_TYPE_DEFAULT,
                    rule=rule,
                    code=code,
                    reason=(
                        f'Invalid extractionType "{data.extractionType}"; '
                        f"valid: {_valid_list(VALID_EXTRACTION_TYPES)}"
                    ),
                    severity="warn",
                )

        if node.category is not None and node.category not in VALID_FACTOR_CATEGORIES:
            editor.set_factor_category(
                node,
                None,
                rule=rule,
                code=code,
                reason=(
                    f'Invalid category "{node.category}"; valid: '
                    f"{_valid_list(VALID_FACTOR_CATEGORIES)}; stripped for structural inference"
                ),
                severity="warn",
            )

    for edge in graph.edges:
        direction = edge.effect_direction
        if direction is not None and direction not in VALID_EFFECT_DIRECTIONS:
            editor.set_edge_direction(
                edge,
                EFFECT_DIRECTION_DEFAULT,
                rule=rule,
                code=code,
                reason=f'Invalid effect_direction "{direction}"; valid: {_valid_list(VALID_EFFECT_DIRECTIONS)}',
                severity="warn",
            )


# ---------------------------------------------------------------------------
# Rule 3: Constraint targets
# ---------------------------------------------------------------------------


@dataclass
class ConstraintNormalisationResult:
    """Goal constraints checked against the graph's node ids.

    Attributes:
        constraints: Kept constraints, remapped ones carrying their new target.
        issues: One info issue per remapped or dropped constraint.
        constraints_total: Number of constraints given.
        constraints_valid: Constraints whose target already existed.
        constraints_remapped: Constraints retargeted by fuzzy match.
        constraints_dropped: Constraints with no usable target.
    """

    constraints: list[GoalConstraint] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    constraints_total: int = 0
    constraints_valid: int = 0
    constraints_remapped: int = 0
    constraints_dropped: int = 0


def _split_prefix(node_id: str) -> tuple[str, str]:
    """Return (prefix, stem) with a known node prefix removed."""
    for prefix in CONSTRAINT_NODE_PREFIXES:
        if node_id.startswith(prefix):
            return prefix, node_id[len(prefix) :]
    return "", node_id


def _shared_lead(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b, strict=False):
        if x != y:
            break
        n += 1
    return n


def _covers_shorter_stem(a: str, b: str) -> bool:
    lead = _shared_lead(a, b)
    return lead >= MIN_FUZZY_STEM_LENGTH and lead >= MIN_SHARED_LEAD_RATIO * min(len(a), len(b))


def fuzzy_match_node_id(target: str, node_ids: Sequence[str]) -> str | None:
    """Find the single node id whose stem contains, or is contained in, ``target``'s stem.

    Stems are compared case-insensitively with ``fac_``/``out_``/``risk_``
    removed. Stems shorter than four characters never match, and ids whose
    prefixes are both present but differ are not compared. When no stem
    contains the other, stems whose common leading run is at least four
    characters and covers three quarters of the shorter stem are candidates
    instead (``pricing`` -> ``price``, but not ``market_share`` ->
    ``marketing_spend``). Returns None when nothing or more than one id
    matches.
    """
    target_prefix, target_stem = _split_prefix(target)
    target_stem = target_stem.lower()
    if len(target_stem) < MIN_FUZZY_STEM_LENGTH:
        return None

    contained: list[str] = []
    shared_lead: list[str] = []
    for node_id in node_ids:
        node_prefix, node_stem = _split_prefix(node_id)
        node_stem = node_stem.lower()
        if target_prefix and node_prefix and target_prefix != node_prefix:
            continue
        if len(node_stem) < MIN_FUZZY_STEM_LENGTH:
            continue
        if target_stem in node_stem or node_stem in target_stem:
            contained.append(node_id)
        elif _covers_shorter_stem(target_stem, node_stem):
            shared_lead.append(node_id)

    matches = contained or shared_lead
    return matches[0] if len(matches) == 1 else None


def normalise_constraint_targets(
    constraints: Sequence[GoalConstraint | Mapping[str, Any]],
    node_ids: Sequence[str],
    *,
    request_id: str | None = None,
) -> ConstraintNormalisationResult:
    """Normalise goal constraint ``node_id`` values against the graph's nodes.

    Exact matches are kept. A constraint with exactly one fuzzy match is
    remapped to it; anything else is dropped. Input constraints are not
    modified.
    """
    result = ConstraintNormalisationResult(constraints_total=len(constraints))
    known = set(node_ids)

    for raw in constraints:
        constraint = raw if isinstance(raw, GoalConstraint) else GoalConstraint.model_validate(raw)
        original = constraint.node_id

        if original in known:
            result.constraints.append(constraint)
            result.constraints_valid += 1
            continue

        match = fuzzy_match_node_id(original, node_ids)
        if match is not None:
            result.constraints.append(constraint.model_copy(update={"node_id": match}))
            result.constraints_remapped += 1
            result.issues.append(
                ValidationIssue(
                    code="CONSTRAINT_NODE_REMAPPED",
                    severity="info",
                    message=f'Constraint node_id "{original}" remapped to "{match}"',
                    path="goal_constraints[].node_id",
                    context={
                        "original_node_id": original,
                        "remapped_node_id": match,
                        "constraint_id": constraint.constraint_id,
                    },
                )
            )
        else:
            result.constraints_dropped += 1
            result.issues.append(
                ValidationIssue(
                    code="CONSTRAINT_DROPPED_NO_TARGET",
                    severity="info",
                    message=f'Constraint with node_id "{original}" dropped; no matching node found',
                    path="goal_constraints[].node_id",
                    context={"original_node_id": original, "constraint_id": constraint.constraint_id},
                )
            )

    if result.issues:
        log.info(
            "constraint_normalisation",
            request_id=request_id,
            constraints_total=result.constraints_total,
            constraints_valid=result.constraints_valid,
            constraints_remapped=result.constraints_remapped,
            constraints_dropped=result.constraints_dropped,
        )

    return result


def constraint_target_rule(
    constraints: Sequence[GoalConstraint | Mapping[str, Any]],
    node_ids: Sequence[str],
    editor: GraphFieldEditor,
    *,
    request_id: str | None = None,
) -> list[GoalConstraint]:
    """Normalise constraint targets and record one mutation per remap or drop."""
    normalised = normalise_constraint_targets(constraints, node_ids, request_id=request_id)
    for issue in normalised.issues:
        context = issue.context or {}
        if issue.code == "CONSTRAINT_NODE_REMAPPED":
            editor.record_constraint(
                context.get("constraint_id"),
                code="CONSTRAINT_REMAPPED",
                before=context["original_node_id"],
                after=context["remapped_node_id"],
                reason=issue.message,
            )
        elif issue.code == "CONSTRAINT_DROPPED_NO_TARGET":
            editor.record_constraint(
                context.get("constraint_id"),
                code="CONSTRAINT_DROPPED",
                before=context["original_node_id"],
                after=None,
                reason=issue.message,
            )
    return normalised.constraints


# ---------------------------------------------------------------------------
# Rule 4: Sign reconciliation
# ---------------------------------------------------------------------------


def sign_reconciliation_rule(graph: Graph, editor: GraphFieldEditor) -> None:
    """Align ``effect_direction`` with the sign of a non-zero ``strength_mean``."""
    for edge in graph.edges:
        mean = edge.strength_mean
        if not edge.effect_direction or mean is None or mean == 0:
            continue
        sign_positive = mean > 0
        if sign_positive == (edge.effect_direction == "positive"):
            continue
        editor.set_edge_direction(
            edge,
            "positive" if sign_positive else "negative",
            rule="sign_reconciliation",
            code="SIGN_CORRECTED",
            reason=f'effect_direction "{edge.effect_direction}" contradicts strength_mean sign ({mean})',
            severity="warn",
        )


# ---------------------------------------------------------------------------
# Rule 5: Controllable data completeness
# ---------------------------------------------------------------------------


def controllable_data_completeness_rule(
    factors: Sequence[FactorNode],
    categories: Mapping[str, FactorCategoryInfo],
    editor: GraphFieldEditor,
) -> None:
    """Fill missing ``factor_type`` and ``uncertainty_drivers`` on controllable factors.

    Only meant for the late pipeline pass: earlier, enrichment and repair
    would overwrite the defaults.
    """
    rule = "controllable_data_completeness"
    for node in factors:
        info = categories.get(node.id)
        if info is None or info.category != "controllable":
            continue

        if node.data is None or not node.data.factor_type:
            editor.set_factor_data(
                node,
                "factor_type",
                FACTOR_TYPE_DEFAULT,
                rule=rule,
                code="CONTROLLABLE_DATA_FILLED",
                reason="Controllable factor missing required factor_type; filled with schema default",
                severity="info",
            )
        if node.data is None or node.data.uncertainty_drivers is None:
            editor.set_factor_data(
                node,
                "uncertainty_drivers",
                UNCERTAINTY_DRIVERS_DEFAULT,
                rule=rule,
                code="CONTROLLABLE_DATA_FILLED",
                reason="Controllable factor missing required uncertainty_drivers; filled with default",
                severity="info",
            )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@dataclass
class ReconciliationResult:
    """Outcome of a reconciliation pass.

    Attributes:
        graph: The reconciled graph. Same object as the input when a
            :class:`Graph` was passed.
        mutations: Every field change, in rule order.
        goal_constraints: Normalised constraints, or None when none were given.
    """

    graph: Graph
    mutations: list[STRPMutation] = field(default_factory=list)
    goal_constraints: list[GoalConstraint] | None = None

    @property
    def rules_triggered(self) -> list[str]:
        """Rules that produced at least one mutation, in first-seen order."""
        return list(dict.fromkeys(m.rule for m in self.mutations))

    def counts(self) -> dict[str, Any]:
        """Stable count shape handed to telemetry sinks."""
        return {
            "mutation_count": len(self.mutations),
            "warn_count": sum(1 for m in self.mutations if m.severity == "warn"),
            "info_count": sum(1 for m in self.mutations if m.severity == "info"),
            "rules_triggered": self.rules_triggered,
            "mutation_codes": dict(Counter(m.code for m in self.mutations)),
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "graph": self.graph.to_dict(),
            "mutations": [m.to_dict() for m in self.mutations],
        }
        if self.goal_constraints is not None:
            data["goal_constraints"] = [c.model_dump(exclude_none=True) for c in self.goal_constraints]
        return data


def reconcile(
    graph: Graph | Mapping[str, Any],
    *,
    goal_constraints: Sequence[GoalConstraint | Mapping[str, Any]] | None = None,
    fill_controllable_data: bool = False,
    request_id: str | None = None,
) -> ReconciliationResult:
    """Run the reconciliation rules in order, mutating the graph in place.

    Args:
        graph: The graph. A :class:`Graph` is edited in place; a mapping is
            parsed into a new Graph first.
        goal_constraints: Constraints to normalise against node ids. Rule 3
            is skipped when this is None or empty.
        fill_controllable_data: Run Rule 5.
        request_id: Correlation id carried into log events.

    Returns:
        ReconciliationResult with the graph and the mutation log.

    Raises:
        GraphContractError: If ``graph`` lacks its nodes/edges arrays.
    """
    graph = coerce_graph(graph)
    start = time.perf_counter()
    editor = GraphFieldEditor()

    index = build_index(graph.nodes, graph.edges)
    categories = infer_factor_categories(graph.edges, index)
    factors = [n for n in index.nodes_of("factor") if isinstance(n, FactorNode)]

    category_override_rule(factors, categories, editor)
    enum_validation_rule(graph, editor)

    normalised: list[GoalConstraint] | None = None
    if goal_constraints is not None:
        normalised = [
            c if isinstance(c, GoalConstraint) else GoalConstraint.model_validate(c)
            for c in goal_constraints
        ]
    if normalised:
        normalised = constraint_target_rule(
            normalised, [n.id for n in graph.nodes], editor, request_id=request_id
        )

    sign_reconciliation_rule(graph, editor)

    if fill_controllable_data:
        controllable_data_completeness_rule(factors, categories, editor)

    result = ReconciliationResult(graph=graph, mutations=editor.mutations, goal_constraints=normalised)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    if result.mutations:
        log.info(
            "strp_complete",
            request_id=request_id,
            mutation_count=len(result.mutations),
            rules_triggered=result.rules_triggered,
            duration_ms=duration_ms,
        )
    else:
        log.debug("strp_clean", request_id=request_id, duration_ms=duration_ms)

    telemetry.emit("strp.complete", result.counts())
    return result
