"""
Louvain community detection over a KnowledgeGraph.

Deterministic variant of the Louvain method (resolution 1.0):
- Local moving: nodes are visited in id order and join the neighbouring
  community with the greatest weighted modularity gain; candidate
  communities are compared in id order and only strict gains move a node
- Aggregation: communities become super-nodes (named by their smallest
  member id) and local moving repeats until nothing improves

NetworkX's louvain_communities shuffles nodes with a random seed, so it is
not used here; networkx is still the graph container.
"""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass

import networkx as nx

from .knowledge_graph import KnowledgeGraph

logger = logging.getLogger(__name__)

RESOLUTION = 1.0

# Gains closer than this are treated as ties
_GAIN_EPSILON = 1e-12


@dataclass
class Community:
    """A cell of a Louvain partition."""
    id: int
    node_ids: list[str]
    size: int
    cohesion: float  # mean intra-community edge weight
    dominant_type: str | None  # None when the most frequent types tie

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "node_ids": list(self.node_ids),
            "size": self.size,
            "cohesion": self.cohesion,
            "dominant_type": self.dominant_type,
        }


def _local_moving(graph: nx.Graph, m: float, resolution: float) -> tuple[bool, dict[str, str]]:
    """One Louvain level. Returns (any node moved, node -> community label)."""
    nodes = sorted(graph.nodes())
    node2com = {u: u for u in nodes}
    k = dict(graph.degree(weight="weight"))
    tot = {u: k[u] for u in nodes}

    improved = False
    while True:
        moved = 0
        for u in nodes:
            current = node2com[u]
            links: dict[str, float] = defaultdict(float)
            for v, data in graph[u].items():
                if v != u:
                    links[node2com[v]] += data.get("weight", 1.0)

            tot[current] -= k[u]
            best_com = current
            best_gain = links.get(current, 0.0) - resolution * tot[current] * k[u] / (2.0 * m)
            for com in sorted(links):
                gain = links[com] - resolution * tot[com] * k[u] / (2.0 * m)
                if gain > best_gain + _GAIN_EPSILON:
                    best_gain = gain
                    best_com = com
            tot[best_com] += k[u]

            if best_com != current:
                node2com[u] = best_com
                moved += 1
        if moved == 0:
            break
        improved = True
    return improved, node2com


def _aggregate(graph: nx.Graph, node2super: dict[str, str]) -> nx.Graph:
    """Collapse each community into a super-node, summing edge weights."""
    H = nx.Graph()
    H.add_nodes_from(sorted(set(node2super.values())))
    for u, v, w in graph.edges(data="weight", default=1.0):
        cu, cv = node2super[u], node2super[v]
        if H.has_edge(cu, cv):
            H[cu][cv]["weight"] += w
        else:
            H.add_edge(cu, cv, weight=w)
    return H


def louvain_partition(G: nx.Graph, resolution: float = RESOLUTION) -> list[set[str]]:
    """
    Partition the nodes of ``G`` into communities.

    Every node appears in exactly one returned set; isolated nodes (and all
    nodes of a graph without positive edge weight) are singletons.
    """
    members: dict[str, set[str]] = {u: {u} for u in G.nodes()}
    m = G.size(weight="weight")
    if m <= 0:
        return [members[u] for u in sorted(members)]

    graph = nx.Graph()
    graph.add_nodes_from(G.nodes())
    graph.add_edges_from((u, v, {"weight": w}) for u, v, w in G.edges(data="weight", default=1.0))

    level = 0
    while True:
        improved, node2com = _local_moving(graph, m, resolution)
        if not improved:
            break

        grouped: dict[str, set[str]] = defaultdict(set)
        for super_node, com in node2com.items():
            grouped[com] |= members[super_node]
        # Name each new super-node by its smallest original member
        com_name = {com: min(group) for com, group in grouped.items()}
        node2super = {u: com_name[com] for u, com in node2com.items()}

        members = {com_name[com]: group for com, group in grouped.items()}
        graph = _aggregate(graph, node2super)
        level += 1
        logger.debug(f"Louvain level {level}: {len(members)} communities")

    return [members[name] for name in sorted(members)]


def community_cohesion(G: nx.Graph, node_ids: list[str]) -> float:
    """Mean weight of edges with both endpoints in ``node_ids`` (0 below 2 members)."""
    if len(node_ids) < 2:
        return 0.0
    weights = [w for _, _, w in G.subgraph(node_ids).edges(data="weight", default=1.0)]
    if not weights:
        return 0.0
    return round(sum(weights) / len(weights), 3)


def dominant_type(G: nx.Graph, node_ids: list[str]) -> str | None:
    """Most frequent node type, or None when the top counts tie."""
    counts = Counter(G.nodes[n].get("type") for n in node_ids).most_common()
    if not counts:
        return None
    if len(counts) > 1 and counts[0][1] == counts[1][1]:
        return None
    return counts[0][0]


class CommunityDetector:
    """Runs Louvain on a KnowledgeGraph and describes each community."""

    def __init__(self, resolution: float = RESOLUTION):
        self.resolution = resolution

    def detect(self, graph: KnowledgeGraph) -> list[Community]:
        """
        Detect communities.

        Returns communities sorted by size (descending) then smallest node
        id; community ids follow that order starting at 0. An empty graph
        returns an empty list.
        """
        G = graph.to_networkx()
        if G.number_of_nodes() == 0:
            return []

        cells = [sorted(cell) for cell in louvain_partition(G, self.resolution)]
        cells.sort(key=lambda ids: (-len(ids), ids[0]))

        communities = [
            Community(
                id=index,
                node_ids=ids,
                size=len(ids),
                cohesion=community_cohesion(G, ids),
                dominant_type=dominant_type(G, ids),
            )
            for index, ids in enumerate(cells)
        ]
        logger.info(
            f"Detected {len(communities)} communities over {G.number_of_nodes()} nodes "
            f"(project {graph.project_id})"
        )
        return communities
