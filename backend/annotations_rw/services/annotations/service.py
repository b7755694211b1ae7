"""
Annotations service.

Orchestrates validation, statement building and the graph store for the
read/write/delete/count operations on one (content, lifecycle) scope.
"""
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import urlparse

from annotations_rw.repositories.graph_store import GraphStore
from annotations_rw.services.annotations.identifiers import thing_url
from annotations_rw.services.annotations.models import Annotation, AnnotationSet, Scope
from annotations_rw.services.annotations.predicates import PredicateMapper
from annotations_rw.services.annotations.queries import (
    build_constraint_statements,
    build_count_statement,
    build_delete_statement,
    build_read_statement,
    build_write_statements,
)
from annotations_rw.utils.exceptions import (
    AnnotationInputError,
    NoResultsFoundError,
    StoreError,
    ValidationError,
)
from annotations_rw.utils.logging import get_logger
from annotations_rw.utils.metrics import (
    annotations_written_total,
    annotation_writes_total,
    annotation_deletes_total,
    annotation_reads_total,
)

logger = get_logger(__name__)


class AnnotationsService:
    """
    Replace, read, delete and count annotations stored in Neo4j.

    The service keeps no state between calls; the store's driver pool is the
    only shared resource, so one instance serves every request thread.
    """

    def __init__(
        self,
        store: GraphStore,
        public_api_url: str,
        mapper: Optional[PredicateMapper] = None,
    ):
        """
        Initialize the annotations service.

        Args:
            store: Graph store executing statements
            public_api_url: Base URL for thing links in read results
            mapper: Predicate mapper (default vocabulary, no default predicate if None)

        Raises:
            ValueError: If public_api_url is not an absolute http(s) URL
        """
        parsed = urlparse(public_api_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"public_api_url must be an absolute http(s) URL, got {public_api_url!r}")
        self.store = store
        self.public_api_url = public_api_url
        self.mapper = mapper or PredicateMapper()

    def write(
        self,
        content_id: str,
        lifecycle: str,
        platform_version: str,
        annotations: Iterable[Annotation],
    ) -> str:
        """
        Replace every annotation of a content in one lifecycle.

        The whole batch is built before anything is sent, so invalid input
        never reaches the database. The delete and the merges then commit
        together or not at all.

        Args:
            content_id: Content uuid
            lifecycle: Annotation lifecycle being replaced
            platform_version: Platform version recorded on each relationship
            annotations: New annotation set (may be empty)

        Returns:
            Bookmark of the committed transaction

        Raises:
            ValidationError: If the content id or a concept reference is missing
            UnsupportedPredicateError: If a predicate is outside the vocabulary
            MalformedReferenceError: If a concept or agent reference has no uuid
            StoreError: If the transaction fails
        """
        annotations = tuple(annotations)
        if not content_id:
            raise ValidationError("Content uuid is required", {"lifecycle": lifecycle})
        for index, annotation in enumerate(annotations):
            if not annotation.concept_ref:
                raise ValidationError(
                    f"Concept uuid missing for annotation {index}",
                    {"uuid": content_id, "index": index},
                )

        scope = Scope(content_id=content_id, lifecycle=lifecycle, platform_version=platform_version)
        try:
            statements = build_write_statements(scope, annotations, self.mapper)
        except AnnotationInputError:
            annotation_writes_total.labels(lifecycle=lifecycle, status="rejected").inc()
            raise

        try:
            result = self.store.write(statements, operation="write")
        except StoreError:
            annotation_writes_total.labels(lifecycle=lifecycle, status="error").inc()
            raise
        except Exception as e:
            annotation_writes_total.labels(lifecycle=lifecycle, status="error").inc()
            logger.error("annotations_write_failed", uuid=content_id, error_type=type(e).__name__, error=str(e))
            raise StoreError("write", "write failed", {"uuid": content_id}) from e

        annotation_writes_total.labels(lifecycle=lifecycle, status="success").inc()
        annotations_written_total.labels(lifecycle=lifecycle).inc(len(annotations))
        logger.info(
            "annotations_written",
            uuid=content_id,
            lifecycle=lifecycle,
            platform_version=platform_version,
            annotations=len(annotations),
        )
        return result.bookmark

    def read(self, content_id: str, bookmark: Optional[str], lifecycle: str) -> Tuple[AnnotationSet, bool]:
        """
        Read the annotations of a content in one lifecycle.

        Args:
            content_id: Content uuid
            bookmark: Token from an earlier write the read must observe (may be empty)
            lifecycle: Annotation lifecycle to read

        Returns:
            Tuple of (annotations ordered by concept uuid, found flag)

        Raises:
            StoreError: If the query fails
        """
        statement = build_read_statement(content_id, lifecycle)
        try:
            rows = self.store.read(statement, [bookmark])
        except NoResultsFoundError:
            annotation_reads_total.labels(lifecycle=lifecycle, found="false").inc()
            return (), False

        annotation_reads_total.labels(lifecycle=lifecycle, found="true").inc()
        return tuple(self._to_annotation(row) for row in rows), True

    def delete(self, content_id: str, lifecycle: str) -> Tuple[bool, str]:
        """
        Delete every annotation of a content in one lifecycle.

        Thing nodes are left in place.

        Returns:
            Tuple of (whether anything was deleted, bookmark)

        Raises:
            StoreError: If the transaction fails
        """
        statement = build_delete_statement(content_id, lifecycle, include_summary=True)
        result = self.store.write([statement], operation="delete")
        summary = result.summaries[0]
        found = summary is not None and summary.relationships_deleted > 0

        annotation_deletes_total.labels(lifecycle=lifecycle, found=str(found).lower()).inc()
        logger.info(
            "annotations_deleted",
            uuid=content_id,
            lifecycle=lifecycle,
            found=found,
        )
        return found, result.bookmark

    def count(self, lifecycle: str, bookmark: Optional[str], platform_version: str) -> int:
        """
        Count annotations written by a platform for a lifecycle.

        Relationships stored before lifecycles existed are included.

        Raises:
            StoreError: If the query fails
        """
        statement = build_count_statement(lifecycle, platform_version)
        try:
            rows = self.store.read(statement, [bookmark])
        except NoResultsFoundError:
            return 0
        return int(rows[0]["c"])

    def check(self) -> None:
        """
        Check that Neo4j is reachable.

        Raises:
            StoreError: If the store cannot be reached
        """
        self.store.verify_connectivity()

    def initialise(self) -> None:
        """Create the node uniqueness constraints (no-op when they exist)."""
        self.store.write(build_constraint_statements(), operation="initialise")
        logger.info("graph_constraints_ensured")

    def _to_annotation(self, row: Dict[str, Any]) -> Annotation:
        agent = row.get("annotatedBy")
        return Annotation(
            concept_ref=thing_url(row["id"], self.public_api_url),
            predicate=row.get("predicate") or "",
            relevance_score=row.get("relevanceScore"),
            confidence_score=row.get("confidenceScore"),
            agent_ref=thing_url(agent, self.public_api_url) if agent else None,
            annotated_at=row.get("annotatedDate"),
            pref_label=row.get("prefLabel"),
            types=tuple(row.get("types") or ()),
        )
