"""
Engine facade: the request-level operations of the analytics engine.

Each call builds what it needs fresh from the GraphStore; the only shared
state is the AnalyticsCache.

Operations:
- compute_analytics: communities + centrality rankings (cached)
- find_clusters: insight clusters via connected components or Louvain
- find_related: bounded traversal from an insight
- shortest_path: cheapest path between two nodes
- search: hybrid semantic/keyword/graph insight search
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .core.config import Settings, get_settings
from .core.errors import InvalidParameterError, NotFoundError
from .core.schemas import Node, RelationshipType
from .graph.analytics_cache import AnalyticsCache
from .graph.centrality import METRICS, CentralityAnalyzer, CentralityRanking, node_analytics_map
from .graph.clusters import (
    InsightCluster,
    LouvainClusterFinder,
    clusters_from_communities,
    get_cluster_strategy,
    validate_min_size,
)
from .graph.communities import Community, CommunityDetector
from .graph.graph_builder import GraphBuilder
from .graph.paths import PathFinder, PathResult
from .graph.traversal import (
    DEFAULT_RELATIONSHIPS,
    RelatedInsight,
    RelatedInsightsTraversal,
    parse_relationship_types,
)
from .retrieval.embedder import SentenceTransformerEmbedder
from .retrieval.hybrid_search import HybridSearch, SearchHit, SearchType
from .retrieval.vector_store import InsightVectorIndex
from .store.graph_store import GraphStore, SQLiteGraphStore

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsResult:
    """Full analytics payload for a project."""
    project_id: str
    node_count: int
    edge_count: int
    communities: list[Community]
    centrality: dict[str, list[CentralityRanking]]
    computed_at: str
    node_analytics: dict[str, dict] = field(default_factory=dict)
    include_entities: bool = True
    max_nodes: int = 1000
    from_cache: bool = False

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "communities": [c.to_dict() for c in self.communities],
            "centrality": {
                f"top_by_{metric}": [r.to_dict() for r in rankings]
                for metric, rankings in self.centrality.items()
            },
            "node_analytics": {k: dict(v) for k, v in self.node_analytics.items()},
            "computed_at": self.computed_at,
            "include_entities": self.include_entities,
            "max_nodes": self.max_nodes,
            "from_cache": self.from_cache,
        }


@dataclass
class ClusterResult:
    clusters: list[InsightCluster]
    algorithm: str
    from_cache: bool = False

    def to_dict(self) -> dict:
        return {
            "clusters": [c.to_dict() for c in self.clusters],
            "algorithm": self.algorithm,
            "from_cache": self.from_cache,
        }


@dataclass
class RelatedResult:
    insight_id: str
    depth: int
    relationship_types: list[str]
    related: list[RelatedInsight] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self.related]

    def to_dict(self) -> dict:
        return {
            "insight_id": self.insight_id,
            "depth": self.depth,
            "relationship_types": list(self.relationship_types),
            "related": [r.to_dict() for r in self.related],
        }


class GraphAnalyticsEngine:
    """
    Entry point for all analytics operations.

    Args:
        store: GraphStore adapter
        cache: AnalyticsCache shared across requests (a temporary one, owned
            and closed by the engine, if None)
        search: HybridSearch instance (keyword-only over ``store`` if None)
        settings: Defaults for limits and graph sizes
    """

    def __init__(
        self,
        store: GraphStore,
        cache: AnalyticsCache | None = None,
        search: HybridSearch | None = None,
        settings: Settings | None = None
    ):
        self.settings = settings or get_settings()
        self.store = store
        self._owns_cache = cache is None
        self.cache = cache or AnalyticsCache(ttl_seconds=self.settings.cache.ttl_seconds)
        self.hybrid_search = search or HybridSearch(store, max_limit=self.settings.search.max_limit)

        self.builder = GraphBuilder(store)
        self.centrality = CentralityAnalyzer(top_n=self.settings.graph.top_n)
        self.detector = CommunityDetector()
        self.path_finder = PathFinder()
        self.traversal = RelatedInsightsTraversal(store)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "GraphAnalyticsEngine":
        """Wire a SQLite store, a disk cache and (optionally) semantic search."""
        settings = settings or get_settings()
        store = SQLiteGraphStore(settings.store.db_path)
        cache = AnalyticsCache(settings.cache.directory, settings.cache.ttl_seconds)

        embedder = vector_index = None
        if settings.embedding.enabled:
            embedder = SentenceTransformerEmbedder(settings.embedding.model)
            vector_index = InsightVectorIndex(
                vector_size=settings.embedding.vector_size,
                collection_name=settings.qdrant.collection,
                location=settings.qdrant.location,
                host=settings.qdrant.host,
                port=settings.qdrant.port,
            )
        search = HybridSearch(store, embedder, vector_index, settings.search.max_limit)
        engine = cls(store, cache=cache, search=search, settings=settings)
        engine._owns_cache = True
        return engine

    def close(self):
        """Close the cache if this engine created it."""
        if self._owns_cache:
            self.cache.close()

    # --------------------------------------------------------
    # Analytics
    # --------------------------------------------------------

    def compute_analytics(
        self,
        project_id: str,
        include_entities: bool | None = None,
        max_nodes: int | None = None,
        refresh: bool = False
    ) -> AnalyticsResult:
        """
        Communities and centrality rankings for a project.

        A cached result is returned (``from_cache=True``) when one exists
        within the TTL for the same options and ``refresh`` is False.
        """
        if include_entities is None:
            include_entities = self.settings.graph.include_entities
        if max_nodes is None:
            max_nodes = self.settings.graph.max_nodes

        if not refresh:
            cached = self.cache.analytics.get(project_id)
            if cached is not None:
                result = cached.payload
                if result.include_entities == include_entities and result.max_nodes == max_nodes:
                    result.from_cache = True
                    return result
                logger.debug(f"Cached analytics for {project_id} used other options, recomputing")

        if not self.store.project_exists(project_id):
            raise NotFoundError(f"Project not found: {project_id}")

        graph = self.builder.build(project_id, include_entities=include_entities, max_nodes=max_nodes)
        communities = self.detector.detect(graph)
        centrality = self.centrality.analyze(graph)

        result = AnalyticsResult(
            project_id=project_id,
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            communities=communities,
            centrality={m: centrality.rankings(graph, m) for m in METRICS},
            node_analytics=node_analytics_map(communities, centrality),
            computed_at=datetime.now(timezone.utc).isoformat(),
            include_entities=include_entities,
            max_nodes=max_nodes,
        )
        self.cache.analytics.set(project_id, result)
        return result

    def find_clusters(
        self,
        project_id: str,
        min_size: int = 3,
        algorithm: str = "connected_components",
        refresh: bool = False
    ) -> ClusterResult:
        """Insight clusters of at least ``min_size`` members."""
        validate_min_size(min_size)
        strategy = get_cluster_strategy(algorithm)

        if isinstance(strategy, LouvainClusterFinder):
            communities = None if refresh else self.cache.communities.get(project_id)
            if communities is not None:
                clusters = clusters_from_communities(communities.payload, min_size)
                return ClusterResult(clusters=clusters, algorithm=strategy.name, from_cache=True)

            graph = self._insight_graph(project_id)
            detected = strategy.communities(graph)
            self.cache.communities.set(project_id, detected)
            return ClusterResult(
                clusters=clusters_from_communities(detected, min_size),
                algorithm=strategy.name,
            )

        graph = self._insight_graph(project_id)
        return ClusterResult(clusters=strategy.find(graph, min_size), algorithm=strategy.name)

    def _insight_graph(self, project_id: str):
        return self.builder.build(
            project_id,
            include_entities=False,
            max_nodes=self.settings.graph.max_nodes,
        )

    # --------------------------------------------------------
    # Traversal and paths
    # --------------------------------------------------------

    def find_related(
        self,
        insight_id: str,
        depth: int = 2,
        types: Iterable[str | RelationshipType] = DEFAULT_RELATIONSHIPS
    ) -> RelatedResult:
        """Insights within ``depth`` hops along the given relationship types."""
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise InvalidParameterError(f"depth must be an integer, got {depth!r}")
        if depth > self.settings.graph.max_depth:
            raise InvalidParameterError(
                f"depth must be at most {self.settings.graph.max_depth}, got {depth}"
            )
        parsed = parse_relationship_types(types)
        related = self.traversal.walk(insight_id, depth, parsed) if depth > 0 else []
        if depth > 0 and not related and self.store.get_node(insight_id) is None:
            raise NotFoundError(f"Insight not found: {insight_id}")

        return RelatedResult(
            insight_id=insight_id,
            depth=depth,
            relationship_types=[t.value for t in parsed],
            related=related,
        )

    def shortest_path(
        self,
        project_id: str,
        from_id: str,
        to_id: str,
        include_entities: bool = True,
        max_nodes: int | None = None
    ) -> PathResult | None:
        """Cheapest path between two nodes, or None when there is none."""
        for name, value in (("from", from_id), ("to", to_id)):
            if not isinstance(value, str) or not value:
                raise InvalidParameterError(f"Missing required parameter: {name}")

        graph = self.builder.build(
            project_id,
            include_entities=include_entities,
            max_nodes=self.settings.graph.max_nodes if max_nodes is None else max_nodes,
        )
        return self.path_finder.shortest_path(graph, from_id, to_id)

    # --------------------------------------------------------
    # Search and lookups
    # --------------------------------------------------------

    def search(
        self,
        query: str,
        search_type: str | SearchType = SearchType.SEMANTIC,
        project_id: str | None = None,
        limit: int | None = None,
        threshold: float | None = None
    ) -> list[SearchHit]:
        return self.hybrid_search.search(
            query,
            search_type=search_type,
            project_id=project_id,
            limit=self.settings.search.default_limit if limit is None else limit,
            threshold=self.settings.search.default_threshold if threshold is None else threshold,
        )

    def syntheses_for_insight(self, insight_id: str) -> list[Node]:
        return self.store.list_syntheses_for_insight(insight_id)

    def invalidate(self, project_id: str):
        """Drop cached analytics after the project's graph was rebuilt."""
        self.cache.invalidate(project_id)
