"""
Bounded breadth-first traversal from an insight along typed edges.
"""
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.errors import InvalidParameterError
from ..core.schemas import NodeType, RelationshipType
from ..store.graph_store import GraphStore

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIPS = (RelationshipType.SIMILAR_TO, RelationshipType.RELATED_TO)


@dataclass
class RelatedInsight:
    """An insight reached from the start node, with how it was reached."""
    id: str
    depth: int
    path: list[str] = field(default_factory=list)
    relationship_types: list[str] = field(default_factory=list)
    similarity_score: float | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "depth": self.depth,
            "path": list(self.path),
            "relationship_types": list(self.relationship_types),
            "similarity_score": self.similarity_score,
        }


def parse_relationship_types(types: Iterable[str | RelationshipType]) -> list[RelationshipType]:
    """Validate relationship type names (e.g. "SIMILAR_TO")."""
    parsed = []
    for value in types:
        if isinstance(value, RelationshipType):
            parsed.append(value)
            continue
        try:
            parsed.append(RelationshipType(str(value).strip().upper()))
        except ValueError as e:
            raise InvalidParameterError(f"Unknown relationship type: {value!r}") from e
    return parsed


class RelatedInsightsTraversal:
    """
    Walks outgoing edges level by level from a start insight.

    Each node is visited at most once, so cycles terminate; the start node
    is never part of the result.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def walk(
        self,
        start_id: str,
        depth: int,
        relationship_types: Iterable[str | RelationshipType] = DEFAULT_RELATIONSHIPS
    ) -> list[RelatedInsight]:
        """Related insights in BFS order (by level, then target id)."""
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise InvalidParameterError(f"depth must be an integer, got {depth!r}")
        types = parse_relationship_types(relationship_types)
        if depth <= 0 or not types:
            return []

        results: list[RelatedInsight] = []
        visited = {start_id}
        queue = deque([(start_id, [start_id], [])])

        for level in range(1, depth + 1):
            next_queue = deque()
            while queue:
                node_id, path, rel_types = queue.popleft()
                for edge in self.store.list_outgoing_edges(node_id, types):
                    if edge.target_type != NodeType.INSIGHT or edge.target_id in visited:
                        continue
                    visited.add(edge.target_id)
                    found = RelatedInsight(
                        id=edge.target_id,
                        depth=level,
                        path=path + [edge.target_id],
                        relationship_types=rel_types + [edge.relationship_type.value],
                        similarity_score=edge.similarity_score,
                    )
                    results.append(found)
                    next_queue.append((found.id, found.path, found.relationship_types))
            if not next_queue:
                break
            queue = next_queue

        logger.debug(f"Traversal from {start_id} (depth={depth}) reached {len(results)} insights")
        return results

    def related(
        self,
        start_id: str,
        depth: int,
        relationship_types: Iterable[str | RelationshipType] = DEFAULT_RELATIONSHIPS
    ) -> list[str]:
        """Ids of insights within ``depth`` hops of ``start_id``."""
        return [r.id for r in self.walk(start_id, depth, relationship_types)]
