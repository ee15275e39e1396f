"""
Hybrid insight search combining semantic, keyword and graph methods.

Strategy:
1. semantic: embed the query, then cosine lookup in the insight index
2. keyword: match query concepts against entity names and return the
   insights that MENTION those entities
3. graph: run both and union the results

An id found by several methods is kept once, preferring the semantic
score. Scored hits rank first by descending score; scoreless keyword hits
follow in discovery order. If the embedder or the vector index fails, the
search falls back to keyword results instead of failing.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum

from ..core.errors import InvalidParameterError
from ..store.graph_store import GraphStore, normalize_entity_name
from .embedder import Embedder
from .vector_store import InsightVectorIndex

logger = logging.getLogger(__name__)

STOP_WORDS = {
    'a', 'an', 'the', 'of', 'in', 'for', 'and', 'or', 'to', 'on',
    'with', 'by', 'from', 'as', 'at', 'its', 'is', 'are', 'was',
    'were', 'be', 'been', 'this', 'that', 'it', 'not', 'but', 'if',
    'do', 'does', 'did', 'has', 'have', 'had', 'how', 'what', 'which',
    'who', 'why', 'when', 'where', 'can', 'about', 'into', 'than',
}


class SearchType(str, Enum):
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    GRAPH = "graph"


@dataclass
class SearchHit:
    """One ranked search result."""
    id: str
    type: str
    method: str
    score: float | None = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "type": self.type, "method": self.method}
        if self.score is not None:
            data["score"] = self.score
        return data


def query_concepts(query: str) -> list[str]:
    """The whole normalized query plus its significant tokens."""
    normalized = normalize_entity_name(query)
    concepts = [normalized] if normalized else []
    for token in re.findall(r"[\w-]+", normalized):
        if len(token) > 2 and token not in STOP_WORDS and token not in concepts:
            concepts.append(token)
    return concepts


def merge_hits(*groups: list[SearchHit]) -> list[SearchHit]:
    """Union hit lists in order; a repeated id keeps its first scored entry."""
    merged: dict[str, SearchHit] = {}
    for hits in groups:
        for hit in hits:
            existing = merged.get(hit.id)
            if existing is None or (existing.score is None and hit.score is not None):
                merged[hit.id] = hit
    return list(merged.values())


def rank_hits(hits: list[SearchHit], limit: int) -> list[SearchHit]:
    """Scored hits by descending score, then scoreless hits in original order."""
    ordered = sorted(
        hits,
        key=lambda h: (0, -h.score) if h.score is not None else (1, 0.0),
    )
    return ordered[:limit]


class HybridSearch:
    """
    Insight search over the vector index and the entity-mention graph.

    Args:
        store: GraphStore used for keyword/concept lookups
        embedder: Query embedder (semantic search disabled if None)
        vector_index: Qdrant insight index (semantic search disabled if None)
        max_limit: Largest accepted ``limit``
    """

    def __init__(
        self,
        store: GraphStore,
        embedder: Embedder | None = None,
        vector_index: InsightVectorIndex | None = None,
        max_limit: int = 100
    ):
        self.store = store
        self.embedder = embedder
        self.vector_index = vector_index
        self.max_limit = max_limit

        logger.info(
            f"HybridSearch initialized "
            f"(semantic={'yes' if embedder and vector_index else 'no'})"
        )

    def _validate(self, query, search_type, limit, threshold) -> SearchType:
        if not isinstance(query, str) or not query.strip():
            raise InvalidParameterError("Query is required")
        try:
            parsed = SearchType(search_type)
        except ValueError as e:
            raise InvalidParameterError(
                f"Unknown search type: {search_type!r}. "
                f"Must be one of {[t.value for t in SearchType]}"
            ) from e
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.max_limit:
            raise InvalidParameterError(f"limit must be an integer in [1, {self.max_limit}], got {limit!r}")
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0.0 <= threshold <= 1.0:
            raise InvalidParameterError(f"threshold must be in [0, 1], got {threshold!r}")
        return parsed

    def search(
        self,
        query: str,
        search_type: str | SearchType = SearchType.SEMANTIC,
        project_id: str | None = None,
        limit: int = 20,
        threshold: float = 0.75
    ) -> list[SearchHit]:
        """
        Search insights.

        Args:
            query: Free-text query
            search_type: "semantic", "keyword" or "graph"
            project_id: Restrict results to one project (optional)
            limit: Maximum number of results
            threshold: Minimum cosine similarity for semantic hits

        Returns:
            Ranked, de-duplicated hits (at most ``limit``)
        """
        kind = self._validate(query, search_type, limit, threshold)

        semantic: list[SearchHit] = []
        keyword: list[SearchHit] = []
        degraded = False

        if kind in (SearchType.SEMANTIC, SearchType.GRAPH):
            try:
                semantic = self._semantic(query, project_id, limit, threshold)
            except Exception as e:
                logger.warning(f"Semantic search failed, falling back to keyword results: {e}")
                degraded = True

        if kind in (SearchType.KEYWORD, SearchType.GRAPH) or degraded:
            keyword = self._keyword(query, project_id)

        hits = rank_hits(merge_hits(semantic, keyword), limit)
        logger.info(
            f"Search '{query[:40]}' ({kind.value}): {len(semantic)} semantic, "
            f"{len(keyword)} keyword -> {len(hits)} results"
        )
        return hits

    def _semantic(
        self,
        query: str,
        project_id: str | None,
        limit: int,
        threshold: float
    ) -> list[SearchHit]:
        if self.embedder is None or self.vector_index is None:
            raise RuntimeError("semantic search is not configured")

        vector = self.embedder.embed(query)
        matches = self.vector_index.search(
            vector,
            limit=limit,
            score_threshold=threshold,
            project_id=project_id,
        )
        return [
            SearchHit(id=m.insight_id, type="insight", method="semantic", score=m.score)
            for m in matches
        ]

    def _keyword(self, query: str, project_id: str | None) -> list[SearchHit]:
        entities = self.store.find_entities_by_names(query_concepts(query))
        if not entities:
            return []
        insight_ids = self.store.list_insights_mentioning(
            [e.id for e in entities], project_id=project_id
        )
        return [SearchHit(id=i, type="insight", method="keyword") for i in insight_ids]
