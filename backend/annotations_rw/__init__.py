"""Annotations read/write service backed by Neo4j."""

__version__ = "1.0.0"
