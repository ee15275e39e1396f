"""
Insight clustering strategies.

Two interchangeable strategies, selected by name at the call boundary:
- connected_components: legacy clustering over insight-to-insight
  SIMILAR_TO / RELATED_TO edges
- louvain: CommunityDetector output over the insight-only graph

Both drop clusters strictly smaller than min_size.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import networkx as nx

from ..core.errors import InvalidParameterError
from ..core.schemas import NodeType, RelationshipType
from .communities import Community, CommunityDetector
from .knowledge_graph import KnowledgeGraph

logger = logging.getLogger(__name__)

CLUSTER_RELATIONSHIPS = (RelationshipType.SIMILAR_TO, RelationshipType.RELATED_TO)


@dataclass
class InsightCluster:
    """A group of insights meeting the minimum size."""
    id: str  # smallest member id
    insight_ids: list[str]
    size: int
    average_similarity: float
    community_id: int | None = None
    dominant_type: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "insight_ids": list(self.insight_ids),
            "size": self.size,
            "average_similarity": self.average_similarity,
        }
        if self.community_id is not None:
            data["community_id"] = self.community_id
            data["dominant_type"] = self.dominant_type
        return data


def validate_min_size(min_size: int) -> int:
    if isinstance(min_size, bool) or not isinstance(min_size, int) or min_size < 1:
        raise InvalidParameterError(f"min_size must be a positive integer, got {min_size!r}")
    return min_size


class ClusterStrategy(ABC):
    """Turns an insight graph into clusters of at least ``min_size`` members."""

    name: str = ""

    @abstractmethod
    def find(self, graph: KnowledgeGraph, min_size: int) -> list[InsightCluster]:
        ...


class ConnectedComponentsClusterFinder(ClusterStrategy):
    """
    Legacy clustering: connected components of the insight-only subgraph.

    Only SIMILAR_TO and RELATED_TO edges between insights connect nodes.
    average_similarity is the mean similarity_score of the cluster's edges
    that carry one (0 when none do).
    """

    name = "connected_components"

    def find(self, graph: KnowledgeGraph, min_size: int) -> list[InsightCluster]:
        validate_min_size(min_size)
        insights = graph.subgraph(NodeType.INSIGHT)

        G = nx.Graph()
        G.add_nodes_from(insights.node_ids())
        scores: dict[frozenset[str], list[float]] = {}
        for edge in insights.edges:
            if edge.relationship_type not in CLUSTER_RELATIONSHIPS:
                continue
            G.add_edge(edge.source_id, edge.target_id)
            if edge.similarity_score is not None:
                scores.setdefault(frozenset((edge.source_id, edge.target_id)), []).append(
                    edge.similarity_score
                )

        clusters = []
        for component in nx.connected_components(G):
            if len(component) < min_size:
                continue
            members = sorted(component)
            similarities = [
                s for pair, values in scores.items() if pair <= component for s in values
            ]
            average = sum(similarities) / len(similarities) if similarities else 0.0
            clusters.append(InsightCluster(
                id=members[0],
                insight_ids=members,
                size=len(members),
                average_similarity=average,
            ))

        clusters.sort(key=lambda c: (-c.size, c.id))
        logger.info(
            f"Connected components: {len(clusters)} clusters >= {min_size} "
            f"(project {graph.project_id})"
        )
        return clusters


def clusters_from_communities(communities: list[Community], min_size: int) -> list[InsightCluster]:
    """Map Louvain communities onto clusters, dropping the small ones."""
    validate_min_size(min_size)
    return [
        InsightCluster(
            id=community.node_ids[0],
            insight_ids=list(community.node_ids),
            size=community.size,
            average_similarity=community.cohesion,
            community_id=community.id,
            dominant_type=community.dominant_type,
        )
        for community in communities
        if community.size >= min_size
    ]


class LouvainClusterFinder(ClusterStrategy):
    """Clusters from Louvain communities over insight nodes only."""

    name = "louvain"

    def __init__(self, detector: CommunityDetector | None = None):
        self.detector = detector or CommunityDetector()

    def communities(self, graph: KnowledgeGraph) -> list[Community]:
        return self.detector.detect(graph.subgraph(NodeType.INSIGHT))

    def find(self, graph: KnowledgeGraph, min_size: int) -> list[InsightCluster]:
        validate_min_size(min_size)
        return clusters_from_communities(self.communities(graph), min_size)


CLUSTER_STRATEGIES: dict[str, type[ClusterStrategy]] = {
    ConnectedComponentsClusterFinder.name: ConnectedComponentsClusterFinder,
    LouvainClusterFinder.name: LouvainClusterFinder,
}


def get_cluster_strategy(algorithm: str) -> ClusterStrategy:
    """Instantiate the strategy registered under ``algorithm``."""
    if algorithm not in CLUSTER_STRATEGIES:
        raise InvalidParameterError(
            f"Unknown algorithm: {algorithm}. Must be one of {sorted(CLUSTER_STRATEGIES)}"
        )
    return CLUSTER_STRATEGIES[algorithm]()
