"""
In-memory knowledge graph built per request.

A KnowledgeGraph owns its nodes and edges and converts them into an
undirected weighted NetworkX graph for the algorithms.
"""
import logging
from dataclasses import dataclass, field

import networkx as nx

from ..core.schemas import Edge, Node, NodeType

logger = logging.getLogger(__name__)


@dataclass
class KnowledgeGraph:
    """Nodes and edges of one project, with no dangling edges."""
    project_id: str
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    @classmethod
    def from_parts(cls, project_id: str, nodes: list[Node], edges: list[Edge]) -> "KnowledgeGraph":
        """Assemble a graph, dropping self-loops and edges to unknown nodes."""
        graph = cls(project_id=project_id, nodes={n.id: n for n in nodes})
        for edge in edges:
            if edge.source_id == edge.target_id:
                continue
            if edge.source_id in graph.nodes and edge.target_id in graph.nodes:
                graph.edges.append(edge)
        return graph

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        """Number of distinct undirected node pairs that are connected."""
        return self.to_networkx().number_of_edges()

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def node_ids(self, node_type: NodeType | None = None) -> list[str]:
        """Sorted node ids, optionally restricted to one type."""
        return sorted(
            node_id for node_id, node in self.nodes.items()
            if node_type is None or node.type == node_type
        )

    def subgraph(self, node_type: NodeType) -> "KnowledgeGraph":
        """Graph restricted to nodes of ``node_type`` and the edges among them."""
        keep = [n for n in self.nodes.values() if n.type == node_type]
        return KnowledgeGraph.from_parts(self.project_id, keep, self.edges)

    def to_networkx(self) -> nx.Graph:
        """
        Undirected weighted view of the graph.

        Parallel edges between the same pair collapse into one, keeping the
        highest weight. Each edge carries ``weight``, ``cost`` (1/weight,
        infinite for zero weight) and ``relationship_type``.
        """
        G = nx.Graph()
        for node_id in sorted(self.nodes):
            node = self.nodes[node_id]
            G.add_node(node_id, type=node.type.value, label=node.label or node_id)

        for edge in self.edges:
            u, v = edge.source_id, edge.target_id
            weight = edge.weight
            if G.has_edge(u, v) and G[u][v]["weight"] >= weight:
                continue
            G.add_edge(
                u, v,
                weight=weight,
                cost=(1.0 / weight) if weight > 0 else float("inf"),
                relationship_type=edge.relationship_type.value,
            )
        return G


def cost_view(G: nx.Graph) -> nx.Graph:
    """View of ``G`` without zero-weight edges, for cost-based algorithms."""
    return nx.subgraph_view(G, filter_edge=lambda u, v: G[u][v]["weight"] > 0)
