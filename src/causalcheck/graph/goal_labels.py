"""Heuristic detection of goal target values mislabelled as factors.

Generators sometimes model the goal's target number ("£20k MRR", "target
of $100k") as a factor node. This is a best-effort check: patterns require
a currency symbol or a financial keyword so that labels such as "target
customer segments" do not match, and references to a target ("share of £20k
target", "progress toward $100k") are excluded before matching.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Protocol

GOAL_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # "goal of reaching £20k", "goal of $1M"
        r"goal of (?:reaching |achieving )?[£$€]?[\d,]+[kKmM]?",
        # Currency symbol required so "target 5 segments" does not match
        r"target (?:of )?[£$€][\d,]+[kKmM]?",
        r"(?:revenue|sales|MRR|ARR)\s*target\s*(?:of\s*)?[\d,]+[kKmM]?",
        r"target\s*(?:of\s*)?[\d,]+[kKmM]?\s*(?:revenue|sales|MRR|ARR)",
        # Standalone amounts: "£20k MRR", "$50k"
        r"^[£$€][\d,]+[kKmM]?\s*(?:MRR|ARR|revenue|sales)?$",
        r"^\d+[kKmM]\s*(?:MRR|ARR|revenue|sales|target|goal)",
        r"[£$€]\d+[kKmM]?\s*(?:revenue|sales)?\s*target",
    )
)

GOAL_REFERENCE_EXCLUSIONS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(?:share|fraction|portion|percentage|%)\s+of\s+[£$€]?[\d,]+[kKmM]?\s*(?:target|goal)?",
        r"progress\s+(?:toward|towards|to)\s+[£$€]?[\d,]+[kKmM]?",
        # "(0-1, share of £20k target)"
        r"\([\d.]+[-–][\d.]+,?\s*(?:share|fraction|portion)\s+of\s+[£$€]?[\d,]+[kKmM]?\s*(?:target|goal)?\)",
        r"(?:relative|compared)\s+to\s+[£$€]?[\d,]+[kKmM]?\s*(?:target|goal)?",
        r"as\s+(?:%|percent|percentage|fraction|share)\s+of\s+[£$€]?[\d,]+[kKmM]?",
    )
)


class GoalNumberDetector(Protocol):
    """Decides whether a factor label is really the goal's target number."""

    def is_goal_number(self, label: str) -> bool: ...


class RegexGoalNumberDetector:
    """Default detector: curated patterns minus reference exclusions."""

    def __init__(
        self,
        patterns: Sequence[re.Pattern[str]] = GOAL_NUMBER_PATTERNS,
        exclusions: Sequence[re.Pattern[str]] = GOAL_REFERENCE_EXCLUSIONS,
    ) -> None:
        self._patterns = tuple(patterns)
        self._exclusions = tuple(exclusions)

    def is_goal_number(self, label: str) -> bool:
        if not label:
            return False
        if any(p.search(label) for p in self._exclusions):
            return False
        return any(p.search(label) for p in self._patterns)


DEFAULT_DETECTOR = RegexGoalNumberDetector()


def is_goal_number_label(label: str) -> bool:
    """Check a label with the default detector."""
    return DEFAULT_DETECTOR.is_goal_number(label)
