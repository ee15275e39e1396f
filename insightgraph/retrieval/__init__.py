"""
Retrieval module - Semantic, keyword and graph search over insights.

Provides:
- InsightVectorIndex: Qdrant cosine index of insight embeddings
- SentenceTransformerEmbedder: Query embedder
- HybridSearch: Merged, ranked search with keyword fallback
"""
from .vector_store import InsightVectorIndex, VectorMatch
from .embedder import Embedder, SentenceTransformerEmbedder
from .hybrid_search import HybridSearch, SearchHit, SearchType

__all__ = [
    "InsightVectorIndex",
    "VectorMatch",
    "Embedder",
    "SentenceTransformerEmbedder",
    "HybridSearch",
    "SearchHit",
    "SearchType",
]
