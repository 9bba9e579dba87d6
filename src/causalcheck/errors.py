"""Exception types for causalcheck.

Validation problems in a graph are never raised; they are reported as
``ValidationIssue`` records. The exceptions here cover the remaining cases:
a caller handing the engine something that is not a graph at all, and a
broken configuration file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class CausalCheckError(Exception):
    """Base class for all causalcheck exceptions."""


@dataclass
class GraphContractError(CausalCheckError):
    """Raised when the input violates the caller contract.

    This is a precondition failure, distinct from a validation issue: the
    engine cannot even begin checking because the object lacks its
    ``nodes``/``edges`` arrays or does not pass the schema layer.

    Attributes:
        reason: Human-readable description of the violation.
        missing: Top-level keys that were absent or not lists.
    """

    reason: str
    missing: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Invalid graph input: {self.reason}"
        if self.missing:
            msg += f" (missing: {', '.join(self.missing)})"
        return msg


@dataclass
class GraphFileError(CausalCheckError):
    """Raised when a graph or constraints file cannot be read or parsed.

    Attributes:
        path: File that failed to load.
        reason: Parser or filesystem error text.
    """

    path: Path
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Failed to load {self.path}: {self.reason}")


@dataclass
class ConfigError(CausalCheckError):
    """Raised when a configuration file or override is invalid.

    Attributes:
        key: Dotted configuration key at fault (e.g. ``limits.node_limit``).
        reason: What is wrong with it.
    """

    key: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid configuration for '{self.key}': {self.reason}")
