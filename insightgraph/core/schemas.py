"""
Pydantic schemas for knowledge-graph rows.

Rows coming out of the relational store are validated into these models at
the adapter boundary so that an unknown node type or relationship type fails
fast instead of flowing untyped into the algorithms.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_EDGE_WEIGHT = 0.5


class NodeType(str, Enum):
    """Kinds of graph vertices."""
    INSIGHT = "insight"
    ENTITY = "entity"
    CHALLENGE = "challenge"
    SYNTHESIS = "synthesis"


class RelationshipType(str, Enum):
    """Relationship types written by the upstream extraction process."""
    SIMILAR_TO = "SIMILAR_TO"
    RELATED_TO = "RELATED_TO"
    MENTIONS = "MENTIONS"
    SYNTHESIZES = "SYNTHESIZES"
    CONTAINS = "CONTAINS"


class Node(BaseModel):
    """A graph vertex: insight, entity, challenge or synthesis."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Globally unique within a project")
    type: NodeType
    label: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = Field(None, description="Used for recency ranking")


class Edge(BaseModel):
    """A typed, weighted relationship between two nodes.

    Edges keep their direction for traversal but are treated as undirected
    by the graph algorithms.
    """
    model_config = ConfigDict(frozen=True)

    source_id: str = Field(..., min_length=1)
    source_type: NodeType
    target_id: str = Field(..., min_length=1)
    target_type: NodeType
    relationship_type: RelationshipType
    similarity_score: float | None = Field(None, ge=0.0, le=1.0)
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def weight(self) -> float:
        """Similarity score, else confidence, else the default weight."""
        if self.similarity_score is not None:
            return self.similarity_score
        if self.confidence is not None:
            return self.confidence
        return DEFAULT_EDGE_WEIGHT

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id
