"""Test CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
from typer.testing import CliRunner

from causalcheck import __version__
from causalcheck.cli import app
from tests.fixtures.graph_fixtures import edge, node

if TYPE_CHECKING:
    from pathlib import Path

runner = CliRunner()


def _write(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def graph_file(tmp_path: Path, graph_data: dict[str, Any]) -> Path:
    return _write(tmp_path / "graph.json", graph_data)


@pytest.fixture
def messy_graph_file(tmp_path: Path, graph_data: dict[str, Any]) -> Path:
    node(graph_data, "fac_market")["category"] = "controllable"
    edge(graph_data, "risk_churn", "goal_1")["effect_direction"] = "positive"
    return _write(tmp_path / "messy.json", graph_data)


def test_version_command() -> None:
    """Test causalcheck version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.stdout


def test_no_args_shows_help() -> None:
    """Test that no arguments shows help."""
    result = runner.invoke(app, [])
    # no_args_is_help=True returns exit code 2 (not 0 like --help)
    assert result.exit_code == 2
    assert "causalcheck" in result.output


# --- validate ---


def test_validate_valid_graph(graph_file: Path) -> None:
    result = runner.invoke(app, ["validate", str(graph_file)])

    assert result.exit_code == 0
    assert "Graph is valid" in result.stdout


def test_validate_invalid_graph_exits_1(messy_graph_file: Path) -> None:
    result = runner.invoke(app, ["validate", str(messy_graph_file)])

    assert result.exit_code == 1
    assert "Graph is invalid" in result.stdout


def test_validate_json(messy_graph_file: Path) -> None:
    result = runner.invoke(app, ["validate", str(messy_graph_file), "--json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["valid"] is False
    assert [e["code"] for e in payload["errors"]] == ["CATEGORY_MISMATCH"]
    assert payload["controllability_summary"]["total_outcome_risk_nodes"] == 2


def test_validate_with_reconcile(messy_graph_file: Path) -> None:
    result = runner.invoke(app, ["validate", str(messy_graph_file), "--reconcile"])

    assert result.exit_code == 0
    assert "2 mutation(s) applied" in result.stdout
    assert "Graph is valid" in result.stdout


def test_validate_with_reconcile_json(messy_graph_file: Path) -> None:
    result = runner.invoke(app, ["validate", str(messy_graph_file), "--reconcile", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["valid"] is True
    assert [m["code"] for m in payload["mutations"]] == ["CATEGORY_OVERRIDE", "SIGN_CORRECTED"]


def test_validate_with_config(tmp_path: Path, graph_file: Path) -> None:
    config = tmp_path / "causalcheck.yaml"
    config.write_text("limits:\n  node_limit: 5\n")

    result = runner.invoke(app, ["validate", str(graph_file), "--config", str(config), "--json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert [e["code"] for e in payload["errors"]] == ["NODE_LIMIT_EXCEEDED"]


def test_validate_bad_config(tmp_path: Path, graph_file: Path) -> None:
    config = tmp_path / "causalcheck.yaml"
    config.write_text("limits:\n  vertex_limit: 5\n")

    result = runner.invoke(app, ["validate", str(graph_file), "-c", str(config)])

    assert result.exit_code == 1
    assert "Error" in result.stdout


def test_validate_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", str(tmp_path / "nope.json")])

    assert result.exit_code == 1
    assert "Error" in result.stdout


def test_validate_not_a_graph(tmp_path: Path) -> None:
    path = _write(tmp_path / "graph.json", {"nodes": []})

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1
    assert "Error" in result.stdout


def test_validate_yaml_graph(tmp_path: Path, graph_data: dict[str, Any]) -> None:
    # JSON is valid YAML
    path = _write(tmp_path / "graph.yaml", graph_data)

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 0


def test_log_option_creates_jsonl(tmp_path: Path, graph_file: Path) -> None:
    log_dir = tmp_path / "logs"

    result = runner.invoke(app, ["--log", str(log_dir), "validate", str(graph_file)])

    assert result.exit_code == 0
    assert (log_dir / "debug.jsonl").exists()


# --- reconcile ---


def test_reconcile_clean_graph(graph_file: Path) -> None:
    result = runner.invoke(app, ["reconcile", str(graph_file)])

    assert result.exit_code == 0
    assert "No reconciliation needed" in result.stdout


def test_reconcile_writes_output(tmp_path: Path, messy_graph_file: Path) -> None:
    output = tmp_path / "out" / "reconciled.json"

    result = runner.invoke(app, ["reconcile", str(messy_graph_file), "-o", str(output)])

    assert result.exit_code == 0
    assert "2 mutation(s) applied" in result.stdout
    assert "Reconciled graph written" in result.stdout

    written = json.loads(output.read_text())
    assert node(written, "fac_market")["category"] == "observable"
    assert edge(written, "risk_churn", "goal_1")["effect_direction"] == "negative"


def test_reconcile_json_with_constraints(tmp_path: Path, graph_file: Path) -> None:
    constraints = _write(
        tmp_path / "constraints.json",
        {"goal_constraints": [{"node_id": "fac_pricing", "constraint_id": "c1"}, {"node_id": "fac_xyz"}]},
    )

    result = runner.invoke(
        app, ["reconcile", str(graph_file), "--constraints", str(constraints), "--json"]
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [m["code"] for m in payload["mutations"]] == ["CONSTRAINT_REMAPPED", "CONSTRAINT_DROPPED"]
    assert payload["goal_constraints"] == [{"node_id": "fac_price", "constraint_id": "c1"}]


def test_reconcile_bad_constraints(tmp_path: Path, graph_file: Path) -> None:
    constraints = _write(tmp_path / "constraints.json", {"goal_constraints": "fac_price"})

    result = runner.invoke(app, ["reconcile", str(graph_file), "--constraints", str(constraints)])

    assert result.exit_code == 1
    assert "Error" in result.stdout


def test_reconcile_fill_controllable(tmp_path: Path, graph_data: dict[str, Any]) -> None:
    del node(graph_data, "fac_price")["data"]["factor_type"]
    path = _write(tmp_path / "graph.json", graph_data)

    result = runner.invoke(app, ["reconcile", str(path), "--fill-controllable", "--json"])

    payload = json.loads(result.stdout)
    assert [m["code"] for m in payload["mutations"]] == ["CONTROLLABLE_DATA_FILLED"]


# --- post-norm ---


def test_post_norm_clean(graph_file: Path) -> None:
    result = runner.invoke(app, ["post-norm", str(graph_file)])

    assert result.exit_code == 0
    assert "Graph is valid" in result.stdout


def test_post_norm_sign_mismatch(tmp_path: Path, graph_data: dict[str, Any]) -> None:
    edge(graph_data, "fac_price", "out_revenue")["strength_mean"] = -0.2
    path = _write(tmp_path / "graph.json", graph_data)

    result = runner.invoke(app, ["post-norm", str(path), "--json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert [e["code"] for e in payload["errors"]] == ["SIGN_MISMATCH"]
    assert payload["warnings"] == []
