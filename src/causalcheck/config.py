"""Validator configuration loading.

Limits and advisory thresholds default to the values in
:mod:`causalcheck.graph.rules`. They can be overridden from a YAML file::

    limits:
      node_limit: 50
      edge_limit: 200
      min_options: 2
      max_options: 6
    thresholds:
      low_confidence: 0.3
      low_std: 0.05
      structural_std_tolerance: 0.05
      strength_min: -1.0
      strength_max: 1.0

Resolution order for each limit:
1. Environment variable (e.g., CAUSALCHECK_NODE_LIMIT)
2. Config file value
3. Built-in default
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from causalcheck.errors import ConfigError
from causalcheck.graph.rules import (
    CANONICAL_EDGE,
    EDGE_LIMIT,
    LOW_CONFIDENCE_THRESHOLD,
    LOW_STD_THRESHOLD,
    MAX_OPTIONS,
    MIN_OPTIONS,
    NODE_LIMIT,
    STRENGTH_RANGE,
)

ENV_OVERRIDES = {
    "node_limit": "CAUSALCHECK_NODE_LIMIT",
    "edge_limit": "CAUSALCHECK_EDGE_LIMIT",
    "max_options": "CAUSALCHECK_MAX_OPTIONS",
}

_LIMIT_KEYS = ("node_limit", "edge_limit", "min_options", "max_options")
_THRESHOLD_KEYS = {
    "low_confidence": "low_confidence_threshold",
    "low_std": "low_std_threshold",
    "structural_std_tolerance": "structural_std_tolerance",
    "strength_min": "strength_min",
    "strength_max": "strength_max",
}

_SIGNED_FIELDS = frozenset({"strength_min", "strength_max"})


@dataclass(frozen=True)
class ValidationConfig:
    """Tunable limits and advisory thresholds for the validator.

    Attributes:
        node_limit: Maximum node count before NODE_LIMIT_EXCEEDED.
        edge_limit: Maximum edge count before EDGE_LIMIT_EXCEEDED.
        min_options: Minimum option count.
        max_options: Maximum option count.
        low_confidence_threshold: belief_exists below this warns.
        low_std_threshold: Non-structural std below this warns.
        structural_std_tolerance: Max std a structural edge may carry before
            the (soft) non-canonical warning fires.
        strength_min: Lower bound of the plausible strength_mean range.
        strength_max: Upper bound of the plausible strength_mean range.
    """

    node_limit: int = NODE_LIMIT
    edge_limit: int = EDGE_LIMIT
    min_options: int = MIN_OPTIONS
    max_options: int = MAX_OPTIONS
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD
    low_std_threshold: float = LOW_STD_THRESHOLD
    structural_std_tolerance: float = CANONICAL_EDGE.std_max
    strength_min: float = STRENGTH_RANGE[0]
    strength_max: float = STRENGTH_RANGE[1]

    def __post_init__(self) -> None:
        if self.min_options > self.max_options:
            raise ConfigError(
                "limits.min_options",
                f"min_options ({self.min_options}) exceeds max_options ({self.max_options})",
            )
        if self.strength_min >= self.strength_max:
            raise ConfigError(
                "thresholds.strength_min",
                f"strength_min ({self.strength_min}) must be below "
                f"strength_max ({self.strength_max})",
            )
        for f in fields(self):
            if f.name not in _SIGNED_FIELDS and getattr(self, f.name) < 0:
                raise ConfigError(f.name, "must not be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationConfig:
        """Create config from a parsed YAML mapping.

        Raises:
            ConfigError: On unknown sections/keys or non-numeric values.
        """
        unknown_sections = set(data) - {"limits", "thresholds"}
        if unknown_sections:
            raise ConfigError(sorted(unknown_sections)[0], "unknown configuration section")

        kwargs: dict[str, Any] = {}

        limits = data.get("limits") or {}
        if not isinstance(limits, dict):
            raise ConfigError("limits", "must be a mapping")
        for key, value in limits.items():
            if key not in _LIMIT_KEYS:
                raise ConfigError(f"limits.{key}", "unknown limit")
            kwargs[key] = _as_int(f"limits.{key}", value)

        thresholds = data.get("thresholds") or {}
        if not isinstance(thresholds, dict):
            raise ConfigError("thresholds", "must be a mapping")
        for key, value in thresholds.items():
            if key not in _THRESHOLD_KEYS:
                raise ConfigError(f"thresholds.{key}", "unknown threshold")
            kwargs[_THRESHOLD_KEYS[key]] = _as_float(f"thresholds.{key}", value)

        for key, env_var in ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if raw:
                kwargs[key] = _as_int(env_var, raw)

        return cls(**kwargs)


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(key, f"expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"expected an integer, got {value!r}") from e


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(key, f"expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"expected a number, got {value!r}") from e


def load_config(path: Path | None = None) -> ValidationConfig:
    """Load validator configuration.

    Args:
        path: YAML config file. When None, only environment overrides apply.

    Returns:
        ValidationConfig instance.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        return ValidationConfig.from_dict({})

    if not path.exists():
        raise ConfigError(str(path), "File not found")

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except (OSError, YAMLError) as e:
        raise ConfigError(str(path), str(e)) from e

    if data is None:
        return ValidationConfig.from_dict({})
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    return ValidationConfig.from_dict(dict(data))
