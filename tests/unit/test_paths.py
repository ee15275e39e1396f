"""
Unit tests for weighted shortest paths.
"""
import itertools

import networkx as nx
import pytest

from insightgraph.graph.paths import PathFinder


@pytest.fixture
def finder():
    return PathFinder()


class TestPathFinder:

    def test_prefers_strong_edges(self, make_graph, finder):
        graph = make_graph([("A", "B", 1.0), ("B", "C", 1.0), ("A", "C", 0.1)])
        result = finder.shortest_path(graph, "A", "C")

        assert result.path == ["A", "B", "C"]
        assert result.total_weight == pytest.approx(2.0)
        assert result.hops == 2
        assert result.edge_labels == ["SIMILAR_TO", "SIMILAR_TO"]
        assert result.node_labels == ["Label A", "Label B", "Label C"]

    def test_same_node(self, make_graph, finder):
        graph = make_graph([("A", "B", 1.0)])
        result = finder.shortest_path(graph, "A", "A")

        assert result.path == ["A"]
        assert result.total_weight == 0.0
        assert result.hops == 0

    def test_missing_node(self, make_graph, finder):
        graph = make_graph([("A", "B", 1.0)])
        assert finder.shortest_path(graph, "A", "ghost") is None
        assert finder.shortest_path(graph, "ghost", "A") is None

    def test_disconnected(self, make_graph, finder):
        graph = make_graph([("A", "B", 1.0), ("C", "D", 1.0)])
        assert finder.shortest_path(graph, "A", "D") is None

    def test_zero_weight_edges_are_not_traversable(self, make_graph, finder):
        graph = make_graph([("A", "B", 0.0)])
        assert finder.shortest_path(graph, "A", "B") is None

    def test_tie_broken_lexicographically(self, make_graph, finder):
        graph = make_graph([("A", "C", 1.0), ("C", "D", 1.0), ("A", "B", 1.0), ("B", "D", 1.0)])
        assert finder.shortest_path(graph, "A", "D").path == ["A", "B", "D"]

    def test_matches_brute_force(self, make_graph, finder):
        weights = [0.9, 0.3, 0.6, 0.15, 0.75, 0.45, 1.0]
        pairs = list(itertools.combinations(["a", "b", "c", "d", "e", "f"], 2))
        edges = [(u, v, weights[i % len(weights)]) for i, (u, v) in enumerate(pairs) if i % 3 != 1]
        graph = make_graph(edges)
        G = graph.to_networkx()

        for source, target in [("a", "f"), ("b", "e"), ("c", "d")]:
            result = finder.shortest_path(graph, source, target)
            best = min(
                sum(G[u][v]["cost"] for u, v in zip(p, p[1:]))
                for p in nx.all_simple_paths(G, source, target)
            )
            assert result.total_weight == pytest.approx(best)
            assert result.path[0] == source and result.path[-1] == target

    def test_to_dict(self, make_graph, finder):
        graph = make_graph([("A", "B", 0.5)])
        data = finder.shortest_path(graph, "A", "B").to_dict()

        assert data["path"] == ["A", "B"]
        assert data["total_weight"] == pytest.approx(2.0)
        assert data["hops"] == 1
