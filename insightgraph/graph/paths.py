"""
Weighted shortest paths (Dijkstra) over a KnowledgeGraph.

Edge cost is 1 / weight, so strongly related nodes are "closer". Among
paths of equal cost the lexicographically smallest id sequence wins, which
picks the smaller next hop first.
"""
import heapq
import logging
from dataclasses import dataclass, field

import networkx as nx

from .knowledge_graph import KnowledgeGraph, cost_view

logger = logging.getLogger(__name__)


@dataclass
class PathResult:
    """Shortest path between two nodes with its labels."""
    path: list[str]
    total_weight: float  # sum of edge costs along the path
    edge_labels: list[str] = field(default_factory=list)
    node_labels: list[str] = field(default_factory=list)

    @property
    def hops(self) -> int:
        return max(len(self.path) - 1, 0)

    def to_dict(self) -> dict:
        return {
            "path": list(self.path),
            "total_weight": self.total_weight,
            "hops": self.hops,
            "edge_labels": list(self.edge_labels),
            "node_labels": list(self.node_labels),
        }


def dijkstra_path(G: nx.Graph, source: str, target: str) -> tuple[list[str], float] | None:
    """
    Cheapest path from ``source`` to ``target`` using the ``cost`` attribute.

    Heap entries are (distance, path) so equal distances fall back to
    comparing the id sequences.
    """
    if source == target:
        return [source], 0.0

    settled: set[str] = set()
    best: dict[str, float] = {source: 0.0}
    heap: list[tuple[float, tuple[str, ...]]] = [(0.0, (source,))]

    while heap:
        dist, path = heapq.heappop(heap)
        node = path[-1]
        if node in settled:
            continue
        settled.add(node)
        if node == target:
            return list(path), dist

        for nbr, data in G[node].items():
            if nbr in settled:
                continue
            candidate = dist + data["cost"]
            if candidate <= best.get(nbr, float("inf")):
                best[nbr] = candidate
                heapq.heappush(heap, (candidate, path + (nbr,)))

    return None


class PathFinder:
    """Finds cheapest paths between two nodes of a KnowledgeGraph."""

    def shortest_path(self, graph: KnowledgeGraph, from_id: str, to_id: str) -> PathResult | None:
        """
        Find the cheapest path.

        Returns None when either node is missing or they are disconnected;
        that is a valid negative result, not an error.
        """
        if not graph.has_node(from_id) or not graph.has_node(to_id):
            logger.debug(f"Path endpoints not in graph: {from_id} -> {to_id}")
            return None

        G = graph.to_networkx()
        found = dijkstra_path(cost_view(G), from_id, to_id)
        if found is None:
            logger.debug(f"No path between {from_id} and {to_id}")
            return None

        path, total = found
        edge_labels = [
            G[u][v].get("relationship_type") or "CONNECTED"
            for u, v in zip(path, path[1:])
        ]
        node_labels = [G.nodes[n].get("label") or n for n in path]
        return PathResult(
            path=path,
            total_weight=total,
            edge_labels=edge_labels,
            node_labels=node_labels,
        )
