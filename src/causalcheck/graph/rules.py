"""Structural rules shared by the validator and the reconciliation pass.

Graph size limits, the allowed edge matrix and the canonical values that
structural (decision->option, option->factor) edges must carry.
"""

from __future__ import annotations

from dataclasses import dataclass

# Causal graphs are densely connected, so the edge ceiling is four times the
# node ceiling. More than six options degrades generation quality without
# adding decision value.
NODE_LIMIT = 50
EDGE_LIMIT = 200
MIN_OPTIONS = 2
MAX_OPTIONS = 6

LOW_CONFIDENCE_THRESHOLD = 0.3
LOW_STD_THRESHOLD = 0.05
STRENGTH_RANGE = (-1.0, 1.0)
PROBABILITY_RANGE = (0.0, 1.0)

# Decimal places used when canonicalising intervention values
SIGNATURE_PRECISION = 4


@dataclass(frozen=True)
class AllowedEdgeRule:
    """One permitted (from kind, to kind) pair, optionally refined by factor category."""

    from_kind: str
    to_kind: str
    from_factor_category: str | None = None
    to_factor_category: str | None = None

    def matches(
        self,
        from_kind: str,
        to_kind: str,
        from_category: str | None,
        to_category: str | None,
    ) -> bool:
        if self.from_kind != from_kind or self.to_kind != to_kind:
            return False
        if self.to_factor_category and to_category != self.to_factor_category:
            return False
        return not (self.from_factor_category and from_category != self.from_factor_category)


ALLOWED_EDGES: tuple[AllowedEdgeRule, ...] = (
    AllowedEdgeRule("decision", "option"),
    AllowedEdgeRule("option", "factor", to_factor_category="controllable"),
    AllowedEdgeRule("factor", "factor", to_factor_category="observable"),
    AllowedEdgeRule("factor", "factor", to_factor_category="external"),
    AllowedEdgeRule("factor", "outcome"),
    AllowedEdgeRule("factor", "risk"),
    AllowedEdgeRule("outcome", "goal"),
    AllowedEdgeRule("risk", "goal"),
)

STRUCTURAL_EDGE_KINDS: frozenset[tuple[str, str]] = frozenset(
    {("decision", "option"), ("option", "factor")}
)


@dataclass(frozen=True)
class CanonicalEdge:
    """Fixed values carried by structural edges.

    ``std`` is the strict value option->factor edges must carry exactly;
    ``std_max`` is the looser tolerance used by the advisory warning.
    """

    mean: float = 1.0
    std: float = 0.01
    std_max: float = 0.05
    prob: float = 1.0
    direction: str = "positive"

    def as_dict(self) -> dict[str, float | str]:
        return {"mean": self.mean, "std": self.std, "prob": self.prob, "direction": self.direction}


CANONICAL_EDGE = CanonicalEdge()

# Reconciliation defaults
FACTOR_TYPE_DEFAULT = "other"
EXTRACTION_TYPE_DEFAULT = "inferred"
EFFECT_DIRECTION_DEFAULT = "positive"
UNCERTAINTY_DRIVERS_DEFAULT: tuple[str, ...] = ("Estimation uncertainty",)
