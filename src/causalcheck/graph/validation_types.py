"""Shared validation types used by the validator and the post-normalisation check."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Literal

Severity = Literal["error", "warn", "info"]


@dataclass
class ValidationIssue:
    """A single problem found in a graph.

    Attributes:
        code: Stable machine-readable issue code (e.g. ``MISSING_GOAL``).
        severity: "error" blocks the graph, "warn" is advisory, "info" is audit.
        message: Human-readable description.
        path: Location in the graph, e.g. ``edges[3]`` or
            ``nodesById.fac_price.data.value``.
        context: Extra structured detail for callers and logs.
    """

    code: str
    severity: Severity
    message: str
    path: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
        }
        if self.path is not None:
            data["path"] = self.path
        if self.context is not None:
            data["context"] = self.context
        return data


@dataclass
class ControllabilitySummary:
    """How many outcome/risk nodes trace back to a controllable factor.

    Attributes:
        total_outcome_risk_nodes: Number of outcome and risk nodes.
        with_controllable_ancestry: Those with a controllable factor upstream.
        without_controllable_ancestry: The remainder.
        exempt_count: Outcome/risk nodes exempted from the reachability check.
        exempt_node_ids: Their ids.
    """

    total_outcome_risk_nodes: int = 0
    with_controllable_ancestry: int = 0
    without_controllable_ancestry: int = 0
    exempt_count: int = 0
    exempt_node_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_outcome_risk_nodes": self.total_outcome_risk_nodes,
            "with_controllable_ancestry": self.with_controllable_ancestry,
            "without_controllable_ancestry": self.without_controllable_ancestry,
            "exempt_count": self.exempt_count,
            "exempt_node_ids": list(self.exempt_node_ids),
        }


@dataclass
class ValidationResult:
    """Aggregated outcome of a validation run.

    Attributes:
        valid: True iff ``errors`` is empty.
        errors: Blocking issues from every tier, in tier order.
        warnings: Advisory issues followed by info-level exemptions.
        controllability_summary: Present for full validation runs only.
    """

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    controllability_summary: ControllabilitySummary | None = None

    @property
    def has_failures(self) -> bool:
        """True if any issue has severity 'error'."""
        return bool(self.errors)

    @property
    def issues(self) -> list[ValidationIssue]:
        """Errors followed by warnings."""
        return [*self.errors, *self.warnings]

    def codes(self, severity: Severity | None = None) -> list[str]:
        """Issue codes in report order, optionally filtered by severity."""
        return [i.code for i in self.issues if severity is None or i.severity == severity]

    @property
    def summary(self) -> str:
        """Human-readable summary of the issue counts."""
        counts = self.counts()
        parts: list[str] = []
        if counts["error_count"]:
            parts.append(f"{counts['error_count']} errors")
        if counts["warn_count"]:
            parts.append(f"{counts['warn_count']} warnings")
        if counts["info_count"]:
            parts.append(f"{counts['info_count']} info")
        if not parts:
            return "no issues"
        return ", ".join(parts)

    def counts(self) -> dict[str, Any]:
        """Stable count shape handed to telemetry sinks."""
        by_severity = Counter(i.severity for i in self.issues)
        data: dict[str, Any] = {
            "valid": self.valid,
            "error_count": by_severity["error"],
            "warn_count": by_severity["warn"],
            "info_count": by_severity["info"],
            "error_codes": dict(Counter(i.code for i in self.errors)),
        }
        if self.controllability_summary is not None:
            summary = self.controllability_summary
            data["outcome_risk_total"] = summary.total_outcome_risk_nodes
            data["outcome_risk_with_controllable"] = summary.with_controllable_ancestry
            data["outcome_risk_without_controllable"] = summary.without_controllable_ancestry
            data["outcome_risk_exempt"] = summary.exempt_count
        return data

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "valid": self.valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
        }
        if self.controllability_summary is not None:
            data["controllability_summary"] = self.controllability_summary.to_dict()
        return data
