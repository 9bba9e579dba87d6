"""Reading and writing graph and constraint files.

Graphs are JSON documents (``{"nodes": [...], "edges": [...]}``). Files with
a ``.yaml``/``.yml`` suffix are read with ruamel.yaml instead, which is handy
for hand-written fixtures.
"""

from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from causalcheck.errors import GraphFileError
from causalcheck.models.graph import GoalConstraint, Graph, coerce_graph

_YAML_SUFFIXES = {".yaml", ".yml"}


def _read_document(path: Path) -> Any:
    if not path.exists():
        raise GraphFileError(path, "File not found")

    try:
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() in _YAML_SUFFIXES:
                return YAML(typ="safe").load(f)
            return json.load(f)
    except (OSError, ValueError, YAMLError) as e:
        raise GraphFileError(path, str(e)) from e


def load_graph(path: Path) -> Graph:
    """Load and parse a graph file.

    Args:
        path: JSON (or YAML) file holding one graph.

    Returns:
        The parsed graph.

    Raises:
        GraphFileError: If the file is missing or not valid JSON/YAML.
        GraphContractError: If the document is not a graph.
    """
    return coerce_graph(_read_document(path))


def load_constraints(path: Path) -> list[GoalConstraint]:
    """Load goal constraints.

    Accepts either a bare list of constraints or an object with a
    ``goal_constraints`` list.

    Raises:
        GraphFileError: If the file cannot be read or has the wrong shape.
    """
    data = _read_document(path)
    if isinstance(data, dict):
        data = data.get("goal_constraints")
    if not isinstance(data, list):
        raise GraphFileError(path, "expected a list of goal constraints")

    try:
        return [GoalConstraint.model_validate(item) for item in data]
    except ValidationError as e:
        raise GraphFileError(path, f"invalid goal constraint: {e}") from e


def dump_graph(graph: Graph, path: Path) -> Path:
    """Write ``graph`` as indented JSON using wire field names.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(graph.to_dict(), f, indent=2)
        f.write("\n")
    return path
