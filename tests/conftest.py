"""
Pytest configuration and fixtures.
"""
import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from insightgraph.core.schemas import Edge, Node, NodeType, RelationshipType
from insightgraph.graph.knowledge_graph import KnowledgeGraph
from insightgraph.store.graph_store import SQLiteGraphStore


BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def day(n: int) -> datetime:
    return BASE_TIME + timedelta(days=n)


def insight_edge(source, target, rel=RelationshipType.SIMILAR_TO, similarity=None, confidence=None):
    return Edge(
        source_id=source,
        source_type=NodeType.INSIGHT,
        target_id=target,
        target_type=NodeType.INSIGHT,
        relationship_type=rel,
        similarity_score=similarity,
        confidence=confidence,
    )


@pytest.fixture
def make_graph():
    """
    Factory for in-memory KnowledgeGraphs.

    ``edges`` are (source, target, weight) triples between insight nodes;
    ``types`` overrides the node type of individual ids.
    """
    def _make(edges, extra_nodes=(), types=None, project_id="test_project"):
        types = types or {}
        ids = sorted({n for u, v, _ in edges for n in (u, v)} | set(extra_nodes))
        nodes = [
            Node(id=i, type=types.get(i, NodeType.INSIGHT), label=f"Label {i}")
            for i in ids
        ]
        graph_edges = [
            Edge(
                source_id=u,
                source_type=types.get(u, NodeType.INSIGHT),
                target_id=v,
                target_type=types.get(v, NodeType.INSIGHT),
                relationship_type=RelationshipType.SIMILAR_TO,
                similarity_score=w,
            )
            for u, v, w in edges
        ]
        return KnowledgeGraph.from_parts(project_id, nodes, graph_edges)

    return _make


@pytest.fixture
def store(tmp_path):
    """Empty SQLite store in a temporary directory."""
    return SQLiteGraphStore(tmp_path / "graph.db")


@pytest.fixture
def seeded_store(store):
    """
    Two triangles of insights joined by a weak RELATED_TO bridge.

        i1 - i2 - i3 ~~ i4 - i5 - i6     (i1-i3 and i4-i6 close the triangles)

    Plus entity mentions (i1, i4 -> "coral bleaching"; i5 -> "reef"), a
    synthesis of i1 and i2, a second project and an empty project.
    Insights i1..i6 are created on days 1..6; other nodes on day 0.
    """
    store.add_project("proj_1", "Reef research", created_at=day(0))
    store.add_project("proj_2", "Other", created_at=day(0))
    store.add_project("proj_empty", "Nothing yet", created_at=day(0))

    for n in range(1, 7):
        store.add_insight(
            f"i{n}", "proj_1",
            summary=f"Insight {n}",
            content=f"Observation number {n} about reef ecosystems",
            insight_type="observation" if n <= 3 else "idea",
            created_at=day(n),
        )
    store.add_insight("j1", "proj_2", content="Unrelated project insight", created_at=day(1))

    store.add_entity("e_coral", "Coral Bleaching", "concept", created_at=day(0))
    store.add_entity("e_reef", "reef", "keyword", created_at=day(0))
    store.add_synthesis("s1", "proj_1", "Bleaching drives reef decline", created_at=day(0))

    for source, target, score in [
        ("i1", "i2", 0.9), ("i2", "i3", 0.8), ("i1", "i3", 0.85),
        ("i4", "i5", 0.9), ("i5", "i6", 0.9), ("i4", "i6", 0.7),
    ]:
        store.add_edge(insight_edge(source, target, similarity=score))
    store.add_edge(insight_edge("i3", "i4", RelationshipType.RELATED_TO, confidence=0.1))

    for insight_id, entity_id in [("i1", "e_coral"), ("i4", "e_coral"), ("i5", "e_reef"), ("j1", "e_coral")]:
        store.add_edge(Edge(
            source_id=insight_id,
            source_type=NodeType.INSIGHT,
            target_id=entity_id,
            target_type=NodeType.ENTITY,
            relationship_type=RelationshipType.MENTIONS,
            confidence=0.6,
        ))
    for insight_id in ("i1", "i2"):
        store.add_edge(Edge(
            source_id="s1",
            source_type=NodeType.SYNTHESIS,
            target_id=insight_id,
            target_type=NodeType.INSIGHT,
            relationship_type=RelationshipType.SYNTHESIZES,
            confidence=0.7,
        ))
    return store
