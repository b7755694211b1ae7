"""Repository layer - Neo4j data access."""

from annotations_rw.repositories.graph_store import (
    GraphStore,
    Statement,
    StatementSummary,
    WriteResult,
)

__all__ = [
    "GraphStore",
    "Statement",
    "StatementSummary",
    "WriteResult",
]
