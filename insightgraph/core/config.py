"""
Central configuration management for insightgraph.

Loads settings from environment variables and provides typed access.
"""
from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class GraphSettings(BaseSettings):
    """Graph building and algorithm defaults."""
    max_nodes: int = Field(default=1000, alias="GRAPH_MAX_NODES")
    include_entities: bool = Field(default=True, alias="GRAPH_INCLUDE_ENTITIES")
    top_n: int = Field(default=10, alias="GRAPH_TOP_N")
    max_depth: int = Field(
        default=5,
        alias="GRAPH_MAX_DEPTH",
        description="Largest traversal depth accepted by find_related"
    )


class CacheSettings(BaseSettings):
    """Analytics cache configuration."""
    ttl_seconds: float = Field(default=300.0, alias="ANALYTICS_CACHE_TTL")
    directory: Path | None = Field(default=Path(".cache/analytics"), alias="ANALYTICS_CACHE_DIR")


class SearchSettings(BaseSettings):
    """Hybrid search defaults."""
    default_limit: int = Field(default=20, alias="SEARCH_DEFAULT_LIMIT")
    max_limit: int = Field(default=100, alias="SEARCH_MAX_LIMIT")
    default_threshold: float = Field(default=0.75, alias="SEARCH_DEFAULT_THRESHOLD")


class StoreSettings(BaseSettings):
    """Relational store configuration."""
    db_path: Path = Field(default=Path("data/knowledge_graph.db"), alias="GRAPH_DB_PATH")


class QdrantSettings(BaseSettings):
    """Qdrant insight index configuration.

    ``location`` takes precedence over host/port; use ":memory:" for a
    process-local index.
    """
    location: str | None = Field(default=None, alias="QDRANT_LOCATION")
    host: str = Field(default="localhost", alias="QDRANT_HOST")
    port: int = Field(default=6333, alias="QDRANT_PORT")
    collection: str = Field(default="insight_embeddings", alias="QDRANT_COLLECTION")


class EmbeddingSettings(BaseSettings):
    """Embedding configuration."""
    model: str = Field(default="all-MiniLM-L6-v2", alias="EMBEDDING_MODEL")
    vector_size: int = Field(default=384, alias="EMBEDDING_VECTOR_SIZE")
    enabled: bool = Field(
        default=False,
        alias="SEMANTIC_SEARCH_ENABLED",
        description="Load the embedding model and Qdrant index for semantic search"
    )


class Settings(BaseSettings):
    """Main settings aggregator."""
    graph: GraphSettings = Field(default_factory=GraphSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
