"""Tests for the post-normalisation sign check."""

from __future__ import annotations

from typing import Any

import pytest

from causalcheck.graph.post_normalisation import validate_post_normalisation
from causalcheck.models import Graph
from causalcheck.observability import register_sink
from tests.fixtures.graph_fixtures import edge, edge_index


def test_consistent_graph_passes(graph_data: dict[str, Any]) -> None:
    result = validate_post_normalisation(graph_data)

    assert result.valid is True
    assert result.errors == []
    assert result.warnings == []
    assert result.controllability_summary is None


def test_negative_mean_with_positive_direction(graph_data: dict[str, Any]) -> None:
    edge(graph_data, "fac_price", "out_revenue")["strength_mean"] = -0.3

    result = validate_post_normalisation(graph_data)

    [issue] = result.errors
    assert result.valid is False
    assert issue.code == "SIGN_MISMATCH"
    assert issue.path == f"edges[{edge_index(graph_data, 'fac_price', 'out_revenue')}]"
    assert issue.context == {"effect_direction": "positive", "strength_mean": -0.3}


def test_positive_mean_with_negative_direction(graph_data: dict[str, Any]) -> None:
    edge(graph_data, "risk_churn", "goal_1")["strength_mean"] = 0.5
    assert [i.code for i in validate_post_normalisation(graph_data).errors] == ["SIGN_MISMATCH"]


def test_mixed_direction_disagrees_with_positive_mean(graph_data: dict[str, Any]) -> None:
    edge(graph_data, "fac_price", "out_revenue")["effect_direction"] = "mixed"
    assert validate_post_normalisation(graph_data).valid is False


@pytest.mark.parametrize(
    "change",
    [
        {"strength_mean": 0.0, "effect_direction": "negative"},
        {"effect_direction": None},
    ],
)
def test_skipped_edges(graph_data: dict[str, Any], change: dict[str, Any]) -> None:
    edge(graph_data, "fac_price", "out_revenue").update(change)
    assert validate_post_normalisation(graph_data).valid is True


def test_missing_mean_is_skipped(graph_data: dict[str, Any]) -> None:
    e = edge(graph_data, "fac_price", "out_revenue")
    del e["strength_mean"]
    e["effect_direction"] = "negative"

    assert validate_post_normalisation(graph_data).valid is True


def test_graph_is_not_modified(graph_data: dict[str, Any]) -> None:
    edge(graph_data, "fac_price", "out_revenue")["strength_mean"] = -0.3
    graph = Graph.model_validate(graph_data)
    before = graph.to_dict()

    validate_post_normalisation(graph)

    assert graph.to_dict() == before


def test_emits_telemetry(graph_data: dict[str, Any]) -> None:
    events: list[tuple[str, dict[str, Any]]] = []
    register_sink(lambda event, counts: events.append((event, counts)))
    edge(graph_data, "fac_price", "out_revenue")["strength_mean"] = -0.3

    validate_post_normalisation(graph_data)

    [(event, counts)] = events
    assert event == "graph_validation.post_norm"
    assert counts["error_codes"] == {"SIGN_MISMATCH": 1}
    assert "outcome_risk_total" not in counts
