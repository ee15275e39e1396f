"""
Unit tests for related-insight traversal.
"""
import pytest

from insightgraph.core.errors import InvalidParameterError
from insightgraph.core.schemas import Edge, NodeType, RelationshipType
from insightgraph.graph.traversal import RelatedInsightsTraversal, parse_relationship_types


def link(store, source, target, rel=RelationshipType.SIMILAR_TO, score=0.8):
    store.add_edge(Edge(
        source_id=source,
        source_type=NodeType.INSIGHT,
        target_id=target,
        target_type=NodeType.INSIGHT,
        relationship_type=rel,
        similarity_score=score,
    ))


@pytest.fixture
def chain(store):
    """I1 -> I2 -> I3 -> I4"""
    store.add_project("p")
    for n in range(1, 5):
        store.add_insight(f"I{n}", "p")
    for n in range(1, 4):
        link(store, f"I{n}", f"I{n + 1}")
    return RelatedInsightsTraversal(store)


class TestTraversal:

    def test_chain_depth_two(self, chain):
        assert chain.related("I1", 2) == ["I2", "I3"]

    def test_chain_full_depth(self, chain):
        assert chain.related("I1", 10) == ["I2", "I3", "I4"]

    def test_follows_outgoing_edges_only(self, chain):
        assert chain.related("I4", 3) == []
        assert chain.related("I3", 3) == ["I4"]

    @pytest.mark.parametrize("depth", [0, -1])
    def test_non_positive_depth(self, chain, depth):
        assert chain.related("I1", depth) == []

    def test_non_integer_depth(self, chain):
        with pytest.raises(InvalidParameterError):
            chain.related("I1", "2")

    def test_cycle_terminates_and_excludes_start(self, store):
        store.add_project("p")
        link(store, "x", "y")
        link(store, "y", "x")
        link(store, "y", "z")
        link(store, "z", "x", RelationshipType.RELATED_TO)

        related = RelatedInsightsTraversal(store).related("x", 5)
        assert related == ["y", "z"]

    def test_provenance(self, chain):
        found = RelatedInsightsTraversal(chain.store).walk("I1", 3)

        assert [r.depth for r in found] == [1, 2, 3]
        assert found[2].path == ["I1", "I2", "I3", "I4"]
        assert found[2].relationship_types == ["SIMILAR_TO"] * 3
        assert found[0].similarity_score == 0.8

    def test_relationship_filter(self, seeded_store):
        traversal = RelatedInsightsTraversal(seeded_store)

        assert traversal.related("i3", 1, ["SIMILAR_TO"]) == []
        assert traversal.related("i3", 1, ["related_to"]) == ["i4"]
        assert traversal.related("i3", 1, []) == []

    def test_entities_are_not_followed(self, seeded_store):
        related = RelatedInsightsTraversal(seeded_store).related(
            "i1", 3, [RelationshipType.MENTIONS, RelationshipType.SIMILAR_TO]
        )
        assert "e_coral" not in related
        assert related == ["i2", "i3"]

    def test_seeded_bfs_order(self, seeded_store):
        assert RelatedInsightsTraversal(seeded_store).related("i1", 2) == ["i2", "i3", "i4"]


def test_parse_relationship_types():
    assert parse_relationship_types(["similar_to", RelationshipType.MENTIONS]) == [
        RelationshipType.SIMILAR_TO,
        RelationshipType.MENTIONS,
    ]
    with pytest.raises(InvalidParameterError):
        parse_relationship_types(["FRIENDS_WITH"])
