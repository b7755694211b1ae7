"""
Neo4j database connection and management.

This module owns the process-wide Neo4j driver. The driver manages its own
connection pool and is safe to share between request threads.
"""
from neo4j import GraphDatabase, Driver
from neo4j.exceptions import DriverError, Neo4jError
from typing import Optional
import time

from annotations_rw.core.config import settings
from annotations_rw.utils.exceptions import StoreError
from annotations_rw.utils.metrics import (
    neo4j_connection_errors_total,
    neo4j_connection_duration_seconds,
    neo4j_active_connections,
)
from annotations_rw.utils.logging import get_logger

logger = get_logger(__name__)

# Global Neo4j driver instance
_neo4j_driver: Optional[Driver] = None


def get_neo4j_driver() -> Driver:
    """
    Get or create Neo4j driver instance.

    Returns:
        Neo4j driver instance

    Raises:
        StoreError: If driver creation or the connectivity check fails
    """
    global _neo4j_driver

    if _neo4j_driver is not None:
        return _neo4j_driver

    connection_start = time.time()
    driver = None
    try:
        driver = GraphDatabase.driver(
            settings.neo4j_uri,
            auth=(settings.neo4j_user, settings.neo4j_password),
            max_connection_pool_size=settings.neo4j_max_connection_pool_size,
            connection_timeout=settings.neo4j_timeout,
        )
        driver.verify_connectivity()
    except (DriverError, Neo4jError, ValueError) as e:
        neo4j_connection_errors_total.inc()
        if driver is not None:
            driver.close()
        logger.error("neo4j_driver_failed", neo4j_uri=settings.neo4j_uri, error=str(e))
        raise StoreError(
            "connect",
            f"Failed to create Neo4j driver: {str(e)}",
            {"neo4j_uri": settings.neo4j_uri},
        ) from e

    neo4j_connection_duration_seconds.observe(time.time() - connection_start)
    neo4j_active_connections.inc()
    _neo4j_driver = driver

    logger.info("neo4j_driver_initialized", neo4j_uri=settings.neo4j_uri)
    return _neo4j_driver


def close_neo4j_driver() -> None:
    """Close the Neo4j driver connection."""
    global _neo4j_driver
    if _neo4j_driver is not None:
        _neo4j_driver.close()
        _neo4j_driver = None
        neo4j_active_connections.dec()
        logger.info("neo4j_driver_closed")
