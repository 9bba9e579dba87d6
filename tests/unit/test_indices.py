"""Tests for graph index building and category inference."""

from __future__ import annotations

from typing import Any

from causalcheck.graph.categories import infer_factor_categories, infer_factor_category
from causalcheck.graph.indices import build_index
from causalcheck.models import Graph
from tests.fixtures.graph_fixtures import node


def _index(data: dict[str, Any]):
    graph = Graph.model_validate(data)
    return graph, build_index(graph.nodes, graph.edges)


class TestBuildIndex:
    def test_by_kind_preserves_graph_order(self, graph_data: dict[str, Any]) -> None:
        _, index = _index(graph_data)
        assert [n.id for n in index.nodes_of("option")] == ["opt_a", "opt_b"]
        assert index.nodes_of("action") == []

    def test_adjacency(self, graph_data: dict[str, Any]) -> None:
        _, index = _index(graph_data)
        assert index.successors("dec_1") == ["opt_a", "opt_b"]
        assert sorted(index.predecessors("out_revenue")) == ["fac_market", "fac_price"]
        assert index.successors("goal_1") == []

    def test_duplicate_ids_last_wins(self, graph_data: dict[str, Any]) -> None:
        graph_data["nodes"].append({"id": "out_revenue", "kind": "risk", "label": "dup"})
        _, index = _index(graph_data)
        assert index.kind_of("out_revenue") == "risk"

    def test_edges_to_unknown_nodes_are_indexed(self, graph_data: dict[str, Any]) -> None:
        graph_data["edges"].append({"from": "ghost", "to": "goal_1"})
        _, index = _index(graph_data)
        assert "ghost" in index.predecessors("goal_1")
        assert index.kind_of("ghost") is None


class TestInferFactorCategory:
    def test_option_edge_wins(self) -> None:
        assert infer_factor_category(has_option_edge=True, has_value=True) == "controllable"

    def test_value_without_option_edge(self) -> None:
        assert infer_factor_category(has_option_edge=False, has_value=True) == "observable"

    def test_neither(self) -> None:
        assert infer_factor_category(has_option_edge=False, has_value=False) == "external"


class TestInferFactorCategories:
    def test_reference_graph(self, graph_data: dict[str, Any]) -> None:
        graph, index = _index(graph_data)
        categories = infer_factor_categories(graph.edges, index)

        assert categories["fac_price"].category == "controllable"
        assert categories["fac_price"].has_option_edge is True
        assert categories["fac_market"].category == "observable"
        assert categories["fac_market"].is_exogenous is True

    def test_declared_category_is_not_trusted(self, graph_data: dict[str, Any]) -> None:
        node(graph_data, "fac_market")["category"] = "controllable"
        graph, index = _index(graph_data)
        info = infer_factor_categories(graph.edges, index)["fac_market"]

        assert info.category == "observable"
        assert info.explicit_category == "controllable"

    def test_factor_without_value_is_external(self, graph_data: dict[str, Any]) -> None:
        node(graph_data, "fac_market")["data"] = {"extractionType": "observed"}
        graph, index = _index(graph_data)
        info = infer_factor_categories(graph.edges, index)["fac_market"]

        assert info.category == "external"
        assert info.reason == "no option edge, no value -> external"

    def test_zero_value_counts_as_present(self, graph_data: dict[str, Any]) -> None:
        node(graph_data, "fac_market")["data"]["value"] = 0
        graph, index = _index(graph_data)
        assert infer_factor_categories(graph.edges, index)["fac_market"].has_value is True

    def test_edge_from_unknown_option_id_is_ignored(self, graph_data: dict[str, Any]) -> None:
        graph_data["edges"].append({"from": "opt_ghost", "to": "fac_market"})
        graph, index = _index(graph_data)
        assert infer_factor_categories(graph.edges, index)["fac_market"].category == "observable"
