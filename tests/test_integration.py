"""
insightgraph - engine integration tests

Runs every engine operation against a seeded SQLite store and an on-disk
analytics cache:
1. Analytics (communities + centrality) and caching
2. Clusters (connected components and Louvain)
3. Related insights
4. Shortest paths
5. Search
6. Engine lifecycle
"""
import json

import pytest

from insightgraph.core.config import Settings
from insightgraph.core.errors import InvalidParameterError, NotFoundError
from insightgraph.engine import GraphAnalyticsEngine
from insightgraph.graph.analytics_cache import AnalyticsCache


@pytest.fixture
def engine(seeded_store, tmp_path):
    cache = AnalyticsCache(tmp_path / "cache", ttl_seconds=60)
    engine = GraphAnalyticsEngine(seeded_store, cache=cache, settings=Settings())
    yield engine
    cache.close()


def payload(result) -> str:
    data = result.to_dict()
    data.pop("from_cache")
    return json.dumps(data, sort_keys=True)


# ============================================================
# 1. Analytics
# ============================================================

class TestComputeAnalytics:

    def test_full_graph(self, engine):
        result = engine.compute_analytics("proj_1")

        assert result.node_count == 9
        assert result.edge_count == 12
        assert result.from_cache is False

        members = [n for c in result.communities for n in c.node_ids]
        assert sorted(members) == ["e_coral", "e_reef", "i1", "i2", "i3", "i4", "i5", "i6", "s1"]
        assert len(members) == len(set(members))

        for metric in ("degree", "betweenness", "pagerank"):
            rankings = result.centrality[metric]
            assert 0 < len(rankings) <= 10
            scores = [r.score for r in rankings]
            assert scores == sorted(scores, reverse=True)

    def test_node_analytics(self, engine):
        result = engine.compute_analytics("proj_1", include_entities=False)

        assert sorted(result.node_analytics) == ["i1", "i2", "i3", "i4", "i5", "i6"]
        i1 = result.node_analytics["i1"]
        assert set(i1) == {"community", "degree", "betweenness", "pagerank"}
        home = next(c for c in result.communities if "i1" in c.node_ids)
        assert i1["community"] == home.id
        assert result.node_analytics["i3"]["betweenness"] > i1["betweenness"]
        assert result.to_dict()["node_analytics"]["i4"]["community"] == result.node_analytics["i4"]["community"]

    def test_insights_only_communities(self, engine):
        result = engine.compute_analytics("proj_1", include_entities=False)

        assert [c.node_ids for c in result.communities] == [["i1", "i2", "i3"], ["i4", "i5", "i6"]]
        assert result.communities[0].cohesion == pytest.approx(0.85)
        assert result.communities[1].cohesion == pytest.approx(0.833)

    def test_second_call_served_from_cache(self, engine):
        first = engine.compute_analytics("proj_1")
        second = engine.compute_analytics("proj_1")

        assert first.from_cache is False
        assert second.from_cache is True
        assert payload(first) == payload(second)

    def test_refresh_bypasses_cache(self, engine):
        engine.compute_analytics("proj_1")
        refreshed = engine.compute_analytics("proj_1", refresh=True)

        assert refreshed.from_cache is False
        assert engine.compute_analytics("proj_1").from_cache is True

    def test_other_options_recompute(self, engine):
        engine.compute_analytics("proj_1")
        other = engine.compute_analytics("proj_1", include_entities=False)

        assert other.from_cache is False
        assert other.node_count == 6

    def test_invalidate(self, engine):
        engine.compute_analytics("proj_1")
        engine.invalidate("proj_1")

        assert engine.compute_analytics("proj_1").from_cache is False

    def test_unknown_project(self, engine):
        with pytest.raises(NotFoundError):
            engine.compute_analytics("nope")

    def test_project_without_insights(self, engine):
        with pytest.raises(NotFoundError):
            engine.compute_analytics("proj_empty")

    def test_max_nodes(self, engine):
        result = engine.compute_analytics("proj_1", max_nodes=3)
        assert result.node_count == 3

        with pytest.raises(InvalidParameterError):
            engine.compute_analytics("proj_1", max_nodes=0, refresh=True)

    def test_result_is_json_serializable(self, engine):
        data = json.loads(json.dumps(engine.compute_analytics("proj_1").to_dict()))
        assert set(data["centrality"]) == {"top_by_degree", "top_by_betweenness", "top_by_pagerank"}


# ============================================================
# 2. Clusters
# ============================================================

class TestFindClusters:

    def test_connected_components(self, engine):
        result = engine.find_clusters("proj_1", min_size=3)

        assert result.algorithm == "connected_components"
        assert len(result.clusters) == 1
        cluster = result.clusters[0]
        assert cluster.insight_ids == ["i1", "i2", "i3", "i4", "i5", "i6"]
        assert cluster.average_similarity == pytest.approx(5.05 / 6)

    def test_louvain(self, engine):
        result = engine.find_clusters("proj_1", min_size=3, algorithm="louvain")

        assert [c.insight_ids for c in result.clusters] == [["i1", "i2", "i3"], ["i4", "i5", "i6"]]
        assert [c.community_id for c in result.clusters] == [0, 1]
        assert result.clusters[0].average_similarity == pytest.approx(0.85)
        assert result.from_cache is False

    def test_louvain_uses_community_cache(self, engine):
        engine.find_clusters("proj_1", algorithm="louvain")
        cached = engine.find_clusters("proj_1", min_size=4, algorithm="louvain")

        assert cached.from_cache is True
        assert cached.clusters == []

    def test_invalid_parameters(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.find_clusters("proj_1", min_size=0)
        with pytest.raises(InvalidParameterError):
            engine.find_clusters("proj_1", algorithm="spectral")


# ============================================================
# 3. Related insights
# ============================================================

class TestFindRelated:

    def test_depth_two(self, engine):
        result = engine.find_related("i1", depth=2)

        assert result.ids == ["i2", "i3", "i4"]
        assert result.relationship_types == ["SIMILAR_TO", "RELATED_TO"]

    def test_depth_zero(self, engine):
        assert engine.find_related("i1", depth=0).ids == []

    def test_depth_above_maximum(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.find_related("i1", depth=6)

    def test_unknown_insight(self, engine):
        with pytest.raises(NotFoundError):
            engine.find_related("ghost", depth=2)

    def test_unknown_relationship_type(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.find_related("i1", types=["LIKES"])


# ============================================================
# 4. Shortest paths
# ============================================================

class TestShortestPath:

    def test_through_shared_entity(self, engine):
        result = engine.shortest_path("proj_1", "i1", "i6")

        assert result.path == ["i1", "e_coral", "i4", "i6"]
        assert result.edge_labels == ["MENTIONS", "MENTIONS", "SIMILAR_TO"]
        assert result.total_weight == pytest.approx(2 / 0.6 + 1 / 0.7)

    def test_insights_only(self, engine):
        result = engine.shortest_path("proj_1", "i1", "i6", include_entities=False)
        assert result.path == ["i1", "i3", "i4", "i6"]

    def test_missing_node(self, engine):
        assert engine.shortest_path("proj_1", "i1", "j1") is None

    def test_missing_parameter(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.shortest_path("proj_1", "", "i6")

    def test_zero_max_nodes_rejected(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.shortest_path("proj_1", "i1", "i6", max_nodes=0)

    def test_explicit_max_nodes(self, engine):
        # the six insights are newer than the entities and synthesis
        result = engine.shortest_path("proj_1", "i1", "i6", max_nodes=6)
        assert result.path == ["i1", "i3", "i4", "i6"]


# ============================================================
# 5. Search and lookups
# ============================================================

class TestSearch:

    def test_keyword_search(self, engine):
        hits = engine.search("coral bleaching", search_type="keyword", project_id="proj_1")
        assert [h.to_dict() for h in hits] == [
            {"id": "i1", "type": "insight", "method": "keyword"},
            {"id": "i4", "type": "insight", "method": "keyword"},
        ]

    def test_semantic_without_index_degrades(self, engine):
        hits = engine.search("reef")
        assert [h.id for h in hits] == ["i5"]

    def test_invalid_limit(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.search("reef", limit=500)

    def test_syntheses_for_insight(self, engine):
        assert [n.id for n in engine.syntheses_for_insight("i1")] == ["s1"]


# ============================================================
# 6. Engine lifecycle
# ============================================================

class TestLifecycle:

    def test_close_removes_own_cache(self, seeded_store):
        engine = GraphAnalyticsEngine(seeded_store, settings=Settings())
        engine.compute_analytics("proj_1")
        directory = engine.cache.directory
        assert directory.is_dir()

        engine.close()

        assert not directory.exists()

    def test_close_leaves_shared_cache_open(self, engine):
        engine.compute_analytics("proj_1")
        engine.close()

        assert engine.cache.directory.is_dir()
        assert engine.compute_analytics("proj_1").from_cache is True
