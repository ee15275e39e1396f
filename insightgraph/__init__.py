"""
insightgraph - Knowledge-graph analytics over project insights

Turns a project's insights, entities, challenges and syntheses into an
in-memory graph and runs structural algorithms over it:
- Louvain community detection
- Centrality ranking (degree, betweenness, PageRank)
- Weighted shortest paths (Dijkstra)
- Insight clustering (connected components or Louvain)
- Hybrid retrieval (semantic + keyword + graph)

Modules:
    core        - Configuration, schemas, error taxonomy
    store       - Relational GraphStore adapter (SQLite)
    graph       - Graph builder, algorithms, traversal, analytics cache
    retrieval   - Qdrant insight index, embedder, hybrid search
    engine      - Request-level facade exposing the engine operations
"""

__version__ = "0.3.0"
