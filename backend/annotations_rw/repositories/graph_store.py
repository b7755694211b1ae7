"""
Graph store adapter for Neo4j.

Executes parameterized statements built by the annotation query builder:
1. Batches of write statements run in a single explicit transaction
2. Every committed write returns a bookmark for causal consistency
3. Reads accept prior bookmarks so they observe at least those writes
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import time

from neo4j import Bookmarks, Driver, READ_ACCESS, WRITE_ACCESS
from neo4j.exceptions import DriverError, Neo4jError

from annotations_rw.utils.exceptions import NoResultsFoundError, StoreError
from annotations_rw.utils.metrics import (
    neo4j_query_duration_seconds,
    neo4j_queries_total,
    neo4j_transactions_total,
    neo4j_statements_per_transaction,
    neo4j_relationships_deleted_total,
)
from annotations_rw.utils.logging import get_logger

logger = get_logger(__name__)

# Separator used when several raw bookmark values are returned as one token
BOOKMARK_SEPARATOR = ","


@dataclass(frozen=True)
class Statement:
    """
    A parameterized Cypher statement.

    Attributes:
        operation: Short name used for logging and metrics (e.g. "delete_annotations")
        cypher: Statement text
        parameters: Statement parameters
        include_summary: Whether the caller needs the mutation counters after commit
    """
    operation: str
    cypher: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    include_summary: bool = False


@dataclass(frozen=True)
class StatementSummary:
    """Mutation counters reported for one statement."""
    relationships_created: int = 0
    relationships_deleted: int = 0
    properties_set: int = 0
    nodes_created: int = 0


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a committed write batch.

    Attributes:
        bookmark: Opaque causal-consistency token for the committed transaction
        summaries: One entry per submitted statement; None unless the statement
            set ``include_summary``
    """
    bookmark: str
    summaries: List[Optional[StatementSummary]]


def encode_bookmarks(bookmarks: Bookmarks) -> str:
    """Serialize driver bookmarks into a single opaque token."""
    return BOOKMARK_SEPARATOR.join(sorted(bookmarks.raw_values))


def decode_bookmarks(tokens: Iterable[Optional[str]]) -> Optional[Bookmarks]:
    """Turn opaque tokens back into driver bookmarks, ignoring empty ones."""
    raw_values = [
        value
        for token in tokens
        if token
        for value in token.split(BOOKMARK_SEPARATOR)
        if value
    ]
    if not raw_values:
        return None
    return Bookmarks.from_raw_values(raw_values)


class GraphStore:
    """
    Neo4j-backed store for annotation statements.

    The store holds no state besides the driver, which manages its own
    connection pool; one instance serves all concurrent requests.
    """

    def __init__(self, driver: Driver, database: Optional[str] = None):
        """
        Initialize graph store.

        Args:
            driver: Neo4j driver instance
            database: Database name (server default if None)
        """
        self.driver = driver
        self.database = database

    def write(self, statements: List[Statement], operation: str = "write") -> WriteResult:
        """
        Run statements in order inside one transaction and commit.

        Either every statement is applied or none is.

        Args:
            statements: Statements to execute
            operation: Name of the batch, used in errors, logs and metrics

        Returns:
            WriteResult with the new bookmark and requested summaries

        Raises:
            StoreError: If any statement or the commit fails
        """
        query_start = time.time()
        current: Optional[str] = None
        summaries: List[Optional[StatementSummary]] = []
        session = self.driver.session(database=self.database, default_access_mode=WRITE_ACCESS)
        try:
            with session.begin_transaction() as tx:
                for statement in statements:
                    current = statement.operation
                    result = tx.run(statement.cypher, statement.parameters)
                    summary = result.consume()
                    if statement.include_summary:
                        counters = summary.counters
                        summaries.append(StatementSummary(
                            relationships_created=counters.relationships_created,
                            relationships_deleted=counters.relationships_deleted,
                            properties_set=counters.properties_set,
                            nodes_created=counters.nodes_created,
                        ))
                    else:
                        summaries.append(None)
                current = "commit"
                tx.commit()
            bookmark = encode_bookmarks(session.last_bookmarks())
        except (DriverError, Neo4jError) as e:
            query_duration = time.time() - query_start
            neo4j_query_duration_seconds.labels(operation=operation).observe(query_duration)
            neo4j_queries_total.labels(operation=operation, status="error").inc()
            neo4j_transactions_total.labels(status="error").inc()
            logger.error(
                "neo4j_write_failed",
                operation=operation,
                statement=current,
                statements=len(statements),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise StoreError(operation, f"{operation} failed", {"statement": current}) from e
        finally:
            session.close()

        query_duration = time.time() - query_start
        neo4j_query_duration_seconds.labels(operation=operation).observe(query_duration)
        neo4j_queries_total.labels(operation=operation, status="success").inc()
        neo4j_transactions_total.labels(status="success").inc()
        neo4j_statements_per_transaction.observe(len(statements))
        deleted = sum(s.relationships_deleted for s in summaries if s is not None)
        if deleted:
            neo4j_relationships_deleted_total.inc(deleted)

        logger.debug(
            "neo4j_write_committed",
            operation=operation,
            statements=len(statements),
            duration_seconds=round(query_duration, 3),
        )
        return WriteResult(bookmark=bookmark, summaries=summaries)

    def read(self, statement: Statement, bookmarks: Iterable[Optional[str]] = ()) -> List[Dict[str, Any]]:
        """
        Run a read statement after every given bookmark is visible.

        Args:
            statement: Statement to execute
            bookmarks: Tokens returned by earlier writes (empty values ignored)

        Returns:
            Result rows as dictionaries

        Raises:
            NoResultsFoundError: If the statement returned no rows
            StoreError: If the query fails
        """
        query_start = time.time()
        session = self.driver.session(
            database=self.database,
            default_access_mode=READ_ACCESS,
            bookmarks=decode_bookmarks(bookmarks),
        )
        try:
            result = session.run(statement.cypher, statement.parameters)
            rows = [record.data() for record in result]
        except (DriverError, Neo4jError) as e:
            neo4j_queries_total.labels(operation=statement.operation, status="error").inc()
            logger.error(
                "neo4j_read_failed",
                operation=statement.operation,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise StoreError(statement.operation, f"{statement.operation} failed") from e
        finally:
            session.close()

        neo4j_query_duration_seconds.labels(operation=statement.operation).observe(time.time() - query_start)
        neo4j_queries_total.labels(operation=statement.operation, status="success").inc()

        if not rows:
            raise NoResultsFoundError(
                "No results found",
                {"operation": statement.operation},
            )
        return rows

    def verify_connectivity(self) -> None:
        """
        Check that the database is reachable.

        Raises:
            StoreError: If the driver cannot reach the server
        """
        try:
            self.driver.verify_connectivity()
        except (DriverError, Neo4jError) as e:
            logger.warning("neo4j_unreachable", error_type=type(e).__name__, error=str(e))
            raise StoreError("check", f"Error connecting to neo4j: {type(e).__name__}") from e
