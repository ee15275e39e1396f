"""
Error taxonomy for the analytics engine.

NotFoundError and InvalidParameterError are caller errors (4xx-equivalent).
UpstreamFailureError means a collaborator (store, embedder, vector index)
could not be reached or returned unusable data (5xx-equivalent).
Degenerate graphs are never errors.
"""


class GraphEngineError(Exception):
    """Base class for all engine errors."""


class NotFoundError(GraphEngineError, LookupError):
    """Unknown project, project without insights, or missing node id."""


class InvalidParameterError(GraphEngineError, ValueError):
    """Malformed request parameter (depth, limit, threshold, ...)."""


class UpstreamFailureError(GraphEngineError, ConnectionError):
    """Store or embedding collaborator unreachable or returned bad data."""
