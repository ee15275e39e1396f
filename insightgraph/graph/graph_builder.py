"""
Graph builder: assembles a project's KnowledgeGraph from GraphStore rows.

Build steps:
1. Insight nodes of the project (direct table filter)
2. Optionally entity/challenge/synthesis nodes one hop away from the insights
3. All edges touching the loaded nodes
4. Recency truncation to max_nodes (edges to dropped nodes are removed)
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone

from ..core.errors import InvalidParameterError, NotFoundError
from ..core.schemas import Node, NodeType
from ..store.graph_store import GraphStore
from .knowledge_graph import KnowledgeGraph

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _recency_key(node: Node) -> tuple[int, float, str]:
    """Newest first; undated nodes last; id ascending on ties."""
    created = node.created_at
    if created is None:
        return (1, 0.0, node.id)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (0, -(created - _OLDEST).total_seconds(), node.id)


def rank_by_recency(nodes: list[Node]) -> list[Node]:
    return sorted(nodes, key=_recency_key)


class GraphBuilder:
    """
    Builds per-request KnowledgeGraphs from a GraphStore.

    The builder keeps no state between builds; every call reads fresh rows.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def build(
        self,
        project_id: str,
        include_entities: bool = True,
        max_nodes: int = 1000
    ) -> KnowledgeGraph:
        """
        Build the graph for a project.

        Args:
            project_id: Project whose insights seed the graph
            include_entities: Also load entity/challenge/synthesis nodes linked to insights
            max_nodes: Cap on the number of nodes (newest kept)

        Returns:
            KnowledgeGraph with at most max_nodes nodes and no dangling edges

        Raises:
            NotFoundError: If the project has no insights
            InvalidParameterError: If max_nodes < 1
        """
        if isinstance(max_nodes, bool) or not isinstance(max_nodes, int) or max_nodes < 1:
            raise InvalidParameterError(f"max_nodes must be a positive integer, got {max_nodes!r}")

        insights = self.store.list_insight_nodes(project_id)
        if not insights:
            raise NotFoundError(f"Project {project_id} has no insights")

        nodes: dict[str, Node] = {n.id: n for n in insights}

        if include_entities:
            for node in self._load_neighbours(nodes):
                nodes.setdefault(node.id, node)

        edges = self.store.list_edges_touching(nodes.keys())

        kept = list(nodes.values())
        if len(kept) > max_nodes:
            kept = rank_by_recency(kept)[:max_nodes]
            logger.info(
                f"Truncated graph for project {project_id}: "
                f"{len(nodes)} -> {max_nodes} nodes by recency"
            )

        graph = KnowledgeGraph.from_parts(project_id, kept, edges)
        logger.info(
            f"Built graph for project {project_id}: "
            f"{graph.node_count} nodes, {len(graph.edges)} edges "
            f"(entities={'yes' if include_entities else 'no'})"
        )
        return graph

    def _load_neighbours(self, insights: dict[str, Node]) -> list[Node]:
        """Non-insight nodes one edge away from the insights."""
        wanted: dict[NodeType, set[str]] = defaultdict(set)
        for edge in self.store.list_edges_touching(insights.keys()):
            for node_id, node_type in (
                (edge.source_id, edge.source_type),
                (edge.target_id, edge.target_type),
            ):
                if node_type != NodeType.INSIGHT and node_id not in insights:
                    wanted[node_type].add(node_id)

        loaded: list[Node] = []
        for node_type in (NodeType.ENTITY, NodeType.CHALLENGE, NodeType.SYNTHESIS):
            ids = wanted.get(node_type)
            if ids:
                found = self.store.list_nodes(node_type, ids)
                logger.debug(f"Loaded {len(found)}/{len(ids)} {node_type.value} nodes")
                loaded.extend(found)
        return loaded
