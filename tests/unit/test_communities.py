"""
Unit tests for Louvain community detection.
"""
import networkx as nx
import pytest

from insightgraph.core.schemas import NodeType
from insightgraph.graph.communities import (
    CommunityDetector,
    dominant_type,
    louvain_partition,
)
from insightgraph.graph.knowledge_graph import KnowledgeGraph


TWO_TRIANGLES = [
    ("a1", "a2", 1.0), ("a2", "a3", 1.0), ("a1", "a3", 1.0),
    ("b1", "b2", 1.0), ("b2", "b3", 1.0), ("b1", "b3", 1.0),
    ("a3", "b1", 0.1),
]


class TestCommunityDetector:

    def test_two_triangles(self, make_graph):
        communities = CommunityDetector().detect(make_graph(TWO_TRIANGLES))

        assert len(communities) == 2
        assert communities[0].node_ids == ["a1", "a2", "a3"]
        assert communities[1].node_ids == ["b1", "b2", "b3"]
        assert [c.id for c in communities] == [0, 1]
        for community in communities:
            assert community.size == 3
            assert community.cohesion == pytest.approx(1.0)
            assert community.dominant_type == "insight"

    def test_disjoint_triangles(self, make_graph):
        communities = CommunityDetector().detect(make_graph(TWO_TRIANGLES[:6]))

        assert [c.size for c in communities] == [3, 3]
        assert [c.cohesion for c in communities] == [1.0, 1.0]

    def test_partition_covers_every_node_once(self, make_graph):
        edges = [(f"n{i}", f"n{(i * 7 + 3) % 15}", 0.1 + (i % 5) * 0.2) for i in range(15)]
        graph = make_graph(edges, extra_nodes=["lonely"])

        communities = CommunityDetector().detect(graph)
        seen = [n for c in communities for n in c.node_ids]

        assert sorted(seen) == graph.node_ids()
        assert len(seen) == len(set(seen))

    def test_improves_modularity(self, make_graph):
        G = make_graph(TWO_TRIANGLES).to_networkx()
        partition = louvain_partition(G)

        assert nx.community.modularity(G, partition, weight="weight") > 0.4

    def test_deterministic(self, make_graph):
        graph = make_graph(TWO_TRIANGLES + [("b3", "c1", 0.6), ("c1", "c2", 0.6)])
        first = [c.to_dict() for c in CommunityDetector().detect(graph)]
        second = [c.to_dict() for c in CommunityDetector().detect(graph)]
        assert first == second

    def test_empty_graph(self):
        assert CommunityDetector().detect(KnowledgeGraph(project_id="p")) == []

    def test_isolated_nodes_are_singletons(self, make_graph):
        communities = CommunityDetector().detect(make_graph([], extra_nodes=["x", "y"]))

        assert [c.node_ids for c in communities] == [["x"], ["y"]]
        assert all(c.cohesion == 0.0 for c in communities)

    def test_sorted_by_size(self, make_graph):
        graph = make_graph([("z1", "z2", 1.0)] + TWO_TRIANGLES[:3])
        communities = CommunityDetector().detect(graph)
        assert [c.size for c in communities] == [3, 2]


class TestDominantType:

    def test_tie_is_none(self, make_graph):
        graph = make_graph([("i", "e", 1.0)], types={"e": NodeType.ENTITY})
        G = graph.to_networkx()

        assert dominant_type(G, ["i", "e"]) is None

    def test_majority(self, make_graph):
        graph = make_graph(
            [("i1", "e", 1.0), ("i2", "e", 1.0)],
            types={"e": NodeType.ENTITY},
        )
        G = graph.to_networkx()

        assert dominant_type(G, ["i1", "i2", "e"]) == "insight"
