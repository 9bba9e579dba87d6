"""causalcheck - validation and structural reconciliation for causal decision graphs."""

from __future__ import annotations

__version__ = "0.1.0"
