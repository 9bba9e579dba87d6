"""Graph package - validation and structural reconciliation of causal graphs.

Typical pipeline order is ``reconcile -> (external repair) -> validate``:
:func:`reconcile` aligns generator-declared metadata with the structure,
then :func:`validate` runs the six-tier checks without modifying anything.
"""

from causalcheck.graph.advisories import collect_warnings
from causalcheck.graph.algorithms import bfs_forward, bfs_reverse, find_cycle_members, has_cycle
from causalcheck.graph.categories import (
    FactorCategoryInfo,
    infer_factor_categories,
    infer_factor_category,
)
from causalcheck.graph.goal_labels import (
    GoalNumberDetector,
    RegexGoalNumberDetector,
    is_goal_number_label,
)
from causalcheck.graph.indices import GraphIndex, build_index
from causalcheck.graph.io import dump_graph, load_constraints, load_graph
from causalcheck.graph.post_normalisation import validate_post_normalisation
from causalcheck.graph.reconciliation import (
    ConstraintNormalisationResult,
    GraphFieldEditor,
    ReconciliationResult,
    STRPMutation,
    normalise_constraint_targets,
    reconcile,
)
from causalcheck.graph.validation import validate
from causalcheck.graph.validation_types import (
    ControllabilitySummary,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "ConstraintNormalisationResult",
    "ControllabilitySummary",
    "FactorCategoryInfo",
    "GoalNumberDetector",
    "GraphFieldEditor",
    "GraphIndex",
    "ReconciliationResult",
    "RegexGoalNumberDetector",
    "STRPMutation",
    "ValidationIssue",
    "ValidationResult",
    "bfs_forward",
    "bfs_reverse",
    "build_index",
    "collect_warnings",
    "dump_graph",
    "find_cycle_members",
    "has_cycle",
    "infer_factor_categories",
    "infer_factor_category",
    "is_goal_number_label",
    "load_constraints",
    "load_graph",
    "normalise_constraint_targets",
    "reconcile",
    "validate",
    "validate_post_normalisation",
]
