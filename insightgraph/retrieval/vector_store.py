"""
Qdrant index of insight embeddings for semantic lookup.

Provides:
- Upsert of precomputed insight embeddings (embedding generation is upstream)
- Cosine similarity search with a score threshold
- Optional filtering by project
"""
import hashlib
import logging
from dataclasses import dataclass

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointStruct,
    VectorParams,
)

logger = logging.getLogger(__name__)


@dataclass
class VectorMatch:
    """An insight whose embedding matched the query vector."""
    insight_id: str
    score: float
    project_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "insight_id": self.insight_id,
            "score": self.score,
            "project_id": self.project_id,
        }


class InsightVectorIndex:
    """
    Qdrant collection holding one point per insight.

    Pass ``location=":memory:"`` for a process-local index, otherwise
    host/port of a Qdrant server.
    """

    def __init__(
        self,
        vector_size: int,
        collection_name: str = "insight_embeddings",
        location: str | None = None,
        host: str = "localhost",
        port: int = 6333
    ):
        """
        Initialize the index.

        Args:
            vector_size: Dimension of the insight embeddings
            collection_name: Name of the Qdrant collection
            location: Qdrant location (":memory:" or URL); overrides host/port
            host: Qdrant server host
            port: Qdrant server port
        """
        self.collection_name = collection_name
        self.vector_size = vector_size

        try:
            if location:
                self.client = QdrantClient(location=location)
            else:
                self.client = QdrantClient(host=host, port=port)
            logger.info(f"Connected to Qdrant at {location or f'{host}:{port}'}")
        except Exception as e:
            logger.error(f"Failed to connect to Qdrant: {e}")
            raise

        self._ensure_collection()

    def _ensure_collection(self):
        """Create collection if it doesn't exist."""
        if not self.client.collection_exists(self.collection_name):
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
            )
            logger.info(f"Created collection: {self.collection_name}")

    @staticmethod
    def _point_id(insight_id: str) -> int:
        """Numeric point ID derived from the insight id."""
        return int(hashlib.md5(insight_id.encode()).hexdigest()[:15], 16)

    def upsert(self, insight_id: str, embedding: list[float], project_id: str | None = None):
        """Add or replace the embedding of one insight."""
        self.client.upsert(
            collection_name=self.collection_name,
            points=[
                PointStruct(
                    id=self._point_id(insight_id),
                    vector=list(embedding),
                    payload={"insight_id": insight_id, "project_id": project_id},
                )
            ],
        )

    def search(
        self,
        query_vector: list[float],
        limit: int = 20,
        score_threshold: float = 0.75,
        project_id: str | None = None
    ) -> list[VectorMatch]:
        """
        Insights whose cosine similarity to ``query_vector`` reaches the threshold.

        Returns matches sorted by descending score.
        """
        query_filter = None
        if project_id:
            query_filter = Filter(
                must=[FieldCondition(key="project_id", match=MatchValue(value=project_id))]
            )

        response = self.client.query_points(
            collection_name=self.collection_name,
            query=list(query_vector),
            query_filter=query_filter,
            limit=limit,
            score_threshold=score_threshold,
            with_payload=True,
        )
        return [
            VectorMatch(
                insight_id=point.payload.get("insight_id", ""),
                score=point.score,
                project_id=point.payload.get("project_id"),
            )
            for point in response.points
        ]

    def close(self):
        """Close the client connection."""
        self.client.close()
