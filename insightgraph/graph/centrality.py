"""
Centrality metrics over a KnowledgeGraph.

- Degree: neighbour count normalized by (n - 1)
- Betweenness: Brandes over the weighted graph, edge cost = 1 / weight
- PageRank: weighted power iteration, damping 0.85

Top-N rankings break score ties by node id ascending so repeated runs on
the same graph give the same order.
"""
import logging
from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from .knowledge_graph import KnowledgeGraph, cost_view

logger = logging.getLogger(__name__)

METRICS = ("degree", "betweenness", "pagerank")

DAMPING = 0.85
PAGERANK_TOLERANCE = 1e-6
PAGERANK_MAX_ITER = 100


@dataclass
class CentralityRanking:
    """One entry of a top-N centrality list."""
    id: str
    score: float
    label: str | None = None
    type: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "score": self.score,
            "label": self.label,
            "type": self.type,
        }


@dataclass
class CentralityResult:
    """Per-node scores for each metric plus the top-N ids per metric."""
    degree: dict[str, float] = field(default_factory=dict)
    betweenness: dict[str, float] = field(default_factory=dict)
    pagerank: dict[str, float] = field(default_factory=dict)
    top_by_metric: dict[str, list[str]] = field(
        default_factory=lambda: {m: [] for m in METRICS}
    )

    def scores(self, metric: str) -> dict[str, float]:
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric}. Must be one of {METRICS}")
        return getattr(self, metric)

    def rankings(self, graph: KnowledgeGraph, metric: str) -> list[CentralityRanking]:
        """Top-N entries of ``metric`` with labels, scores rounded to 4 decimals."""
        scores = self.scores(metric)
        ranked = []
        for node_id in self.top_by_metric.get(metric, []):
            node = graph.nodes.get(node_id)
            ranked.append(CentralityRanking(
                id=node_id,
                score=round(scores.get(node_id, 0.0), 4),
                label=node.label if node else None,
                type=node.type.value if node else None,
            ))
        return ranked

    def to_dict(self) -> dict:
        return {
            "degree": dict(self.degree),
            "betweenness": dict(self.betweenness),
            "pagerank": dict(self.pagerank),
            "top_by_metric": {m: list(ids) for m, ids in self.top_by_metric.items()},
        }


def top_n(scores: dict[str, float], n: int = 10) -> list[str]:
    """Ids of the ``n`` highest scores, ties by id ascending."""
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [node_id for node_id, _ in ordered[:n]]


def weighted_pagerank(
    G: nx.Graph,
    alpha: float = DAMPING,
    tol: float = PAGERANK_TOLERANCE,
    max_iter: int = PAGERANK_MAX_ITER
) -> dict[str, float]:
    """
    Power-iteration PageRank on an undirected weighted graph.

    Starts from the uniform distribution and stops when the L1 change drops
    below ``tol`` or after ``max_iter`` iterations, returning the last
    iterate either way. Nodes without positive incident weight are dangling
    and spread their rank uniformly.
    """
    nodes = sorted(G.nodes())
    n = len(nodes)
    if n == 0:
        return {}

    strength = {
        v: sum(d.get("weight", 1.0) for _, _, d in G.edges(v, data=True))
        for v in nodes
    }
    dangling = [v for v in nodes if strength[v] <= 0]

    x = {v: 1.0 / n for v in nodes}
    err = float("inf")
    for iteration in range(1, max_iter + 1):
        last = x
        dangling_share = alpha * sum(last[v] for v in dangling) / n
        base = (1.0 - alpha) / n + dangling_share
        x = {v: base for v in nodes}
        for v in nodes:
            if strength[v] <= 0:
                continue
            share = alpha * last[v] / strength[v]
            for nbr, data in G[v].items():
                x[nbr] += share * data.get("weight", 1.0)

        err = sum(abs(x[v] - last[v]) for v in nodes)
        if err < tol:
            logger.debug(f"PageRank converged after {iteration} iterations")
            break
    else:
        logger.debug(f"PageRank stopped at max_iter={max_iter} (err={err:.2e})")

    return x


class CentralityAnalyzer:
    """Computes degree, betweenness and PageRank for a KnowledgeGraph."""

    def __init__(self, top_n: int = 10):
        self.top_n = top_n

    def analyze(self, graph: KnowledgeGraph) -> CentralityResult:
        """
        Compute all centrality metrics.

        Graphs with fewer than two nodes return zero scores without error.
        """
        G = graph.to_networkx()

        if G.number_of_nodes() < 2:
            zeros = {node_id: 0.0 for node_id in G.nodes()}
            return CentralityResult(
                degree=dict(zeros),
                betweenness=dict(zeros),
                pagerank=dict(zeros),
                top_by_metric={m: sorted(zeros) for m in METRICS},
            )

        degree = nx.degree_centrality(G)
        betweenness = nx.betweenness_centrality(cost_view(G), weight="cost", normalized=True)
        pagerank = weighted_pagerank(G)

        result = CentralityResult(
            degree=degree,
            betweenness=betweenness,
            pagerank=pagerank,
            top_by_metric={
                "degree": top_n(degree, self.top_n),
                "betweenness": top_n(betweenness, self.top_n),
                "pagerank": top_n(pagerank, self.top_n),
            },
        )
        logger.info(
            f"Centrality computed for {G.number_of_nodes()} nodes "
            f"(project {graph.project_id})"
        )
        return result


def node_analytics_map(
    communities: list[Any],
    centrality: CentralityResult
) -> dict[str, dict[str, Any]]:
    """
    Merge community membership and centrality scores per node.

    Used to enrich graph visualisations; keys are node ids, values hold
    ``community``, ``betweenness``, ``pagerank`` and ``degree`` when known.
    """
    merged: dict[str, dict[str, Any]] = {}
    for community in communities:
        for node_id in community.node_ids:
            merged.setdefault(node_id, {})["community"] = community.id

    for metric in METRICS:
        for node_id, score in centrality.scores(metric).items():
            merged.setdefault(node_id, {})[metric] = score
    return merged
