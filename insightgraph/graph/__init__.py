"""
Graph module - In-memory knowledge graph and its analytics.

Provides:
- GraphBuilder: Build a project's KnowledgeGraph from the GraphStore
- CentralityAnalyzer: Degree, betweenness and PageRank
- CommunityDetector: Deterministic Louvain communities
- PathFinder: Weighted shortest paths
- Cluster strategies: connected components and Louvain
- RelatedInsightsTraversal: Bounded BFS over typed edges
- AnalyticsCache: Per-project cache of computed analytics
"""
from .knowledge_graph import KnowledgeGraph
from .graph_builder import GraphBuilder
from .centrality import CentralityAnalyzer, CentralityRanking, CentralityResult, node_analytics_map
from .communities import Community, CommunityDetector, louvain_partition
from .paths import PathFinder, PathResult
from .clusters import (
    ClusterStrategy,
    ConnectedComponentsClusterFinder,
    InsightCluster,
    LouvainClusterFinder,
    get_cluster_strategy,
)
from .traversal import RelatedInsight, RelatedInsightsTraversal
from .analytics_cache import AnalyticsCache, CachedEntry

__all__ = [
    "KnowledgeGraph",
    "GraphBuilder",
    "CentralityAnalyzer",
    "CentralityRanking",
    "CentralityResult",
    "node_analytics_map",
    "Community",
    "CommunityDetector",
    "louvain_partition",
    "PathFinder",
    "PathResult",
    "ClusterStrategy",
    "ConnectedComponentsClusterFinder",
    "InsightCluster",
    "LouvainClusterFinder",
    "get_cluster_strategy",
    "RelatedInsight",
    "RelatedInsightsTraversal",
    "AnalyticsCache",
    "CachedEntry",
]
