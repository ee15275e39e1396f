"""
Query embedders for semantic search.

The engine only needs ``embed(text) -> list[float]``; embedding of stored
insights happens upstream.
"""
import logging
from typing import Protocol

from ..core.errors import UpstreamFailureError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"  # 384 dimensions


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]:
        ...


class SentenceTransformerEmbedder:
    """Local sentence-transformers model, loaded on first use."""

    def __init__(self, model_name: str = DEFAULT_MODEL):
        self.model_name = model_name
        self._model = None

    def _load(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed(self, text: str) -> list[float]:
        try:
            embedding = self._load().encode(text)
        except Exception as e:
            raise UpstreamFailureError(f"Embedding failed with {self.model_name}: {e}") from e
        # Convert to list if numpy array
        if hasattr(embedding, "tolist"):
            embedding = embedding.tolist()
        return embedding
