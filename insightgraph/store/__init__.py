"""
Store module - Read access to the relational knowledge-graph tables.

Provides:
- GraphStore: adapter contract consumed by the engine
- SQLiteGraphStore: SQLite implementation (with seeding helpers)
"""
from .graph_store import GraphStore, SQLiteGraphStore, normalize_entity_name

__all__ = [
    "GraphStore",
    "SQLiteGraphStore",
    "normalize_entity_name",
]
