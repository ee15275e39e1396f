"""
GraphStore adapter: read-only access to a project's knowledge-graph rows.

Provides:
- GraphStore: the contract the engine consumes
- SQLiteGraphStore: relational implementation over the insight/entity/edge schema

Rows are validated into Node/Edge models here; invalid rows and database
errors surface as UpstreamFailureError.
"""
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..core.errors import UpstreamFailureError
from ..core.schemas import Edge, Node, NodeType, RelationshipType

logger = logging.getLogger(__name__)

# Chunks are bound up to twice per query; keep 2 * size below SQLite's 999 limit
_IN_CHUNK_SIZE = 400


def _chunked(values: list[str], size: int = _IN_CHUNK_SIZE) -> Iterator[list[str]]:
    for i in range(0, len(values), size):
        yield values[i:i + size]


def _placeholders(values: list[Any]) -> str:
    return ",".join("?" for _ in values)


def normalize_entity_name(name: str) -> str:
    """Lowercase, trim and collapse whitespace (entity names are stored this way)."""
    return " ".join(name.lower().split())


class GraphStore(ABC):
    """
    Read contract over the relational knowledge-graph tables.

    Implementations must raise UpstreamFailureError when the backing store
    is unreachable or returns rows that do not validate.
    """

    @abstractmethod
    def project_exists(self, project_id: str) -> bool:
        ...

    @abstractmethod
    def list_insight_nodes(self, project_id: str) -> list[Node]:
        ...

    @abstractmethod
    def list_edges_touching(self, node_ids: Iterable[str]) -> list[Edge]:
        """All edges whose source or target is one of ``node_ids``."""

    @abstractmethod
    def list_entity_nodes(self, ids: Iterable[str]) -> list[Node]:
        ...

    @abstractmethod
    def list_challenge_nodes(self, ids: Iterable[str]) -> list[Node]:
        ...

    @abstractmethod
    def list_synthesis_nodes(self, ids: Iterable[str]) -> list[Node]:
        ...

    @abstractmethod
    def get_node(self, node_id: str) -> Node | None:
        ...

    @abstractmethod
    def list_outgoing_edges(
        self,
        node_id: str,
        relationship_types: Iterable[RelationshipType]
    ) -> list[Edge]:
        ...

    @abstractmethod
    def find_entities_by_names(self, names: Iterable[str]) -> list[Node]:
        ...

    @abstractmethod
    def list_insights_mentioning(
        self,
        entity_ids: Iterable[str],
        project_id: str | None = None
    ) -> list[str]:
        """Insight ids linked to the entities via MENTIONS, in discovery order."""

    @abstractmethod
    def list_syntheses_for_insight(self, insight_id: str) -> list[Node]:
        ...

    def list_nodes(self, node_type: NodeType, ids: Iterable[str]) -> list[Node]:
        """Dispatch to the per-type loader for non-insight nodes."""
        loaders = {
            NodeType.ENTITY: self.list_entity_nodes,
            NodeType.CHALLENGE: self.list_challenge_nodes,
            NodeType.SYNTHESIS: self.list_synthesis_nodes,
        }
        if node_type not in loaders:
            raise ValueError(f"No id-based loader for node type: {node_type}")
        return loaders[node_type](ids)


class SQLiteGraphStore(GraphStore):
    """
    SQLite-backed GraphStore.

    Tables mirror the production schema: projects, insights,
    knowledge_entities, challenges, insight_syntheses and
    knowledge_graph_edges. The write helpers exist for seeding and tests;
    the engine itself only reads.
    """

    def __init__(self, db_path: str | Path = "data/knowledge_graph.db"):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()
        logger.info(f"SQLiteGraphStore initialized at {self.db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Cannot open graph store {self.db_path}: {e}")
            raise UpstreamFailureError(f"Graph store unavailable: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Graph store query failed: {e}")
            raise UpstreamFailureError(f"Graph store query failed: {e}") from e
        finally:
            conn.close()

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS insights (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    summary TEXT,
                    content TEXT,
                    insight_type TEXT,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS knowledge_entities (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,  -- normalized (lowercase, trimmed)
                    type TEXT NOT NULL DEFAULT 'keyword',
                    description TEXT,
                    frequency INTEGER DEFAULT 1,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS challenges (
                    id TEXT PRIMARY KEY,
                    project_id TEXT,
                    name TEXT,
                    status TEXT,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS insight_syntheses (
                    id TEXT PRIMARY KEY,
                    project_id TEXT,
                    synthesized_text TEXT NOT NULL,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS knowledge_graph_edges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_id TEXT NOT NULL,
                    source_type TEXT NOT NULL,
                    target_id TEXT NOT NULL,
                    target_type TEXT NOT NULL,
                    relationship_type TEXT NOT NULL,
                    similarity_score REAL,
                    confidence REAL,
                    metadata TEXT,  -- JSON
                    created_at TEXT,
                    UNIQUE(source_id, source_type, target_id, target_type, relationship_type)
                );

                CREATE INDEX IF NOT EXISTS idx_insights_project ON insights(project_id);
                CREATE INDEX IF NOT EXISTS idx_entities_name ON knowledge_entities(name);
                CREATE INDEX IF NOT EXISTS idx_edges_source ON knowledge_graph_edges(source_id, source_type);
                CREATE INDEX IF NOT EXISTS idx_edges_target ON knowledge_graph_edges(target_id, target_type);
                CREATE INDEX IF NOT EXISTS idx_edges_relationship ON knowledge_graph_edges(relationship_type);
            """)

    # --------------------------------------------------------
    # Row conversion
    # --------------------------------------------------------

    @staticmethod
    def _validate_node(**fields) -> Node:
        try:
            return Node(**fields)
        except ValidationError as e:
            raise UpstreamFailureError(f"Invalid node row {fields.get('id')!r}: {e}") from e

    @staticmethod
    def _row_to_edge(row: sqlite3.Row) -> Edge:
        try:
            return Edge(
                source_id=row["source_id"],
                source_type=row["source_type"],
                target_id=row["target_id"],
                target_type=row["target_type"],
                relationship_type=row["relationship_type"],
                similarity_score=row["similarity_score"],
                confidence=row["confidence"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            )
        except (ValidationError, json.JSONDecodeError) as e:
            raise UpstreamFailureError(
                f"Invalid edge row {row['source_id']!r} -> {row['target_id']!r}: {e}"
            ) from e

    def _insight_node(self, row: sqlite3.Row) -> Node:
        content = row["content"] or ""
        label = row["summary"] or content[:50] or "Insight"
        return self._validate_node(
            id=row["id"],
            type=NodeType.INSIGHT,
            label=label,
            attributes={
                "project_id": row["project_id"],
                "insight_type": row["insight_type"] or "idea",
                "content": content,
            },
            created_at=row["created_at"],
        )

    def _entity_node(self, row: sqlite3.Row) -> Node:
        return self._validate_node(
            id=row["id"],
            type=NodeType.ENTITY,
            label=row["name"],
            attributes={
                "entity_type": row["type"],
                "description": row["description"],
                "frequency": row["frequency"],
            },
            created_at=row["created_at"],
        )

    def _challenge_node(self, row: sqlite3.Row) -> Node:
        return self._validate_node(
            id=row["id"],
            type=NodeType.CHALLENGE,
            label=row["name"] or "Challenge",
            attributes={"project_id": row["project_id"], "status": row["status"]},
            created_at=row["created_at"],
        )

    def _synthesis_node(self, row: sqlite3.Row) -> Node:
        text = row["synthesized_text"] or ""
        return self._validate_node(
            id=row["id"],
            type=NodeType.SYNTHESIS,
            label=text[:50] or "Synthesis",
            attributes={"project_id": row["project_id"], "synthesized_text": text},
            created_at=row["created_at"],
        )

    def _select_by_ids(self, table: str, ids: Iterable[str]) -> list[sqlite3.Row]:
        id_list = sorted(set(ids))
        rows: list[sqlite3.Row] = []
        if not id_list:
            return rows
        with self._connect() as conn:
            for chunk in _chunked(id_list):
                rows.extend(conn.execute(
                    f"SELECT * FROM {table} WHERE id IN ({_placeholders(chunk)})",
                    chunk,
                ).fetchall())
        return rows

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------

    def project_exists(self, project_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
        return row is not None

    def list_insight_nodes(self, project_id: str) -> list[Node]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM insights WHERE project_id = ? ORDER BY id",
                (project_id,),
            ).fetchall()
        return [self._insight_node(r) for r in rows]

    def list_edges_touching(self, node_ids: Iterable[str]) -> list[Edge]:
        id_list = sorted(set(node_ids))
        if not id_list:
            return []

        seen: set[int] = set()
        edges: list[Edge] = []
        with self._connect() as conn:
            for chunk in _chunked(id_list):
                marks = _placeholders(chunk)
                rows = conn.execute(
                    f"""
                    SELECT * FROM knowledge_graph_edges
                    WHERE source_id IN ({marks}) OR target_id IN ({marks})
                    ORDER BY id
                    """,
                    chunk + chunk,
                ).fetchall()
                for row in rows:
                    if row["id"] in seen:
                        continue
                    seen.add(row["id"])
                    edges.append(self._row_to_edge(row))
        return edges

    def list_entity_nodes(self, ids: Iterable[str]) -> list[Node]:
        return [self._entity_node(r) for r in self._select_by_ids("knowledge_entities", ids)]

    def list_challenge_nodes(self, ids: Iterable[str]) -> list[Node]:
        return [self._challenge_node(r) for r in self._select_by_ids("challenges", ids)]

    def list_synthesis_nodes(self, ids: Iterable[str]) -> list[Node]:
        return [self._synthesis_node(r) for r in self._select_by_ids("insight_syntheses", ids)]

    def get_node(self, node_id: str) -> Node | None:
        lookups = [
            ("insights", self._insight_node),
            ("knowledge_entities", self._entity_node),
            ("challenges", self._challenge_node),
            ("insight_syntheses", self._synthesis_node),
        ]
        for table, convert in lookups:
            rows = self._select_by_ids(table, [node_id])
            if rows:
                return convert(rows[0])
        return None

    def list_outgoing_edges(
        self,
        node_id: str,
        relationship_types: Iterable[RelationshipType]
    ) -> list[Edge]:
        types = [RelationshipType(t).value for t in relationship_types]
        if not types:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM knowledge_graph_edges
                WHERE source_id = ? AND relationship_type IN ({_placeholders(types)})
                ORDER BY target_id, id
                """,
                [node_id, *types],
            ).fetchall()
        return [self._row_to_edge(r) for r in rows]

    def find_entities_by_names(self, names: Iterable[str]) -> list[Node]:
        normalized = sorted({normalize_entity_name(n) for n in names if n and n.strip()})
        if not normalized:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM knowledge_entities
                WHERE lower(name) IN ({_placeholders(normalized)})
                ORDER BY id
                """,
                normalized,
            ).fetchall()
        return [self._entity_node(r) for r in rows]

    def list_insights_mentioning(
        self,
        entity_ids: Iterable[str],
        project_id: str | None = None
    ) -> list[str]:
        id_list = list(dict.fromkeys(entity_ids))
        if not id_list:
            return []

        query = f"""
            SELECT e.source_id AS insight_id
            FROM knowledge_graph_edges e
            JOIN insights i ON i.id = e.source_id
            WHERE e.relationship_type = 'MENTIONS'
              AND e.source_type = 'insight'
              AND e.target_type = 'entity'
              AND e.target_id IN ({_placeholders(id_list)})
        """
        params: list[Any] = list(id_list)
        if project_id:
            query += " AND i.project_id = ?"
            params.append(project_id)
        query += " ORDER BY e.id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return list(dict.fromkeys(r["insight_id"] for r in rows))

    def list_syntheses_for_insight(self, insight_id: str) -> list[Node]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT source_id FROM knowledge_graph_edges
                WHERE target_id = ? AND target_type = 'insight'
                  AND source_type = 'synthesis' AND relationship_type = 'SYNTHESIZES'
                """,
                (insight_id,),
            ).fetchall()
        return self.list_synthesis_nodes(r["source_id"] for r in rows)

    # --------------------------------------------------------
    # Writes (seeding)
    # --------------------------------------------------------

    @staticmethod
    def _timestamp(value: datetime | None) -> str:
        return (value or datetime.now(timezone.utc)).isoformat()

    def add_project(self, project_id: str, name: str = "", created_at: datetime | None = None):
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO projects (id, name, created_at) VALUES (?, ?, ?)",
                (project_id, name, self._timestamp(created_at)),
            )

    def add_insight(
        self,
        insight_id: str,
        project_id: str,
        summary: str | None = None,
        content: str | None = None,
        insight_type: str | None = None,
        created_at: datetime | None = None
    ):
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO insights
                (id, project_id, summary, content, insight_type, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (insight_id, project_id, summary, content, insight_type,
                  self._timestamp(created_at)))

    def add_entity(
        self,
        entity_id: str,
        name: str,
        entity_type: str = "keyword",
        description: str | None = None,
        created_at: datetime | None = None
    ):
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO knowledge_entities
                (id, name, type, description, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (entity_id, normalize_entity_name(name), entity_type, description,
                  self._timestamp(created_at)))

    def add_challenge(
        self,
        challenge_id: str,
        project_id: str,
        name: str,
        status: str | None = None,
        created_at: datetime | None = None
    ):
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO challenges (id, project_id, name, status, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (challenge_id, project_id, name, status, self._timestamp(created_at)))

    def add_synthesis(
        self,
        synthesis_id: str,
        project_id: str,
        synthesized_text: str,
        created_at: datetime | None = None
    ):
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO insight_syntheses
                (id, project_id, synthesized_text, created_at)
                VALUES (?, ?, ?, ?)
            """, (synthesis_id, project_id, synthesized_text, self._timestamp(created_at)))

    def add_edge(self, edge: Edge):
        """Insert or update an edge (unique on endpoints + relationship type)."""
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO knowledge_graph_edges
                (source_id, source_type, target_id, target_type, relationship_type,
                 similarity_score, confidence, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(source_id, source_type, target_id, target_type, relationship_type)
                DO UPDATE SET
                    similarity_score = excluded.similarity_score,
                    confidence = excluded.confidence,
                    metadata = excluded.metadata
            """, (
                edge.source_id,
                edge.source_type.value,
                edge.target_id,
                edge.target_type.value,
                edge.relationship_type.value,
                edge.similarity_score,
                edge.confidence,
                json.dumps(edge.metadata) if edge.metadata else None,
                self._timestamp(None),
            ))
