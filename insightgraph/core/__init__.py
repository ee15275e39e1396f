"""
Core module - Configuration, schemas, and error taxonomy.
"""
from .config import Settings, get_settings
from .errors import (
    GraphEngineError,
    NotFoundError,
    InvalidParameterError,
    UpstreamFailureError,
)
from .schemas import (
    DEFAULT_EDGE_WEIGHT,
    Edge,
    Node,
    NodeType,
    RelationshipType,
)

__all__ = [
    "Settings",
    "get_settings",
    "GraphEngineError",
    "NotFoundError",
    "InvalidParameterError",
    "UpstreamFailureError",
    "DEFAULT_EDGE_WEIGHT",
    "Edge",
    "Node",
    "NodeType",
    "RelationshipType",
]
