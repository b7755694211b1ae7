"""
Cypher statements for annotation reads and writes.

Pure functions: they build ``Statement`` objects and never touch the database.
Every value travels as a parameter; the only interpolated identifiers are
schema constants and relationship types validated against the vocabulary.
"""
from typing import Any, Dict, Iterable, List

from annotations_rw.repositories.graph_schema import (
    NODE_LABELS,
    PROPERTY_KEYS,
    RELATIONSHIP_PROPERTIES,
    UNIQUE_CONSTRAINTS,
    validate_relationship_type,
)
from annotations_rw.repositories.graph_store import Statement
from annotations_rw.services.annotations.identifiers import extract_uuid
from annotations_rw.services.annotations.models import Annotation, Scope
from annotations_rw.services.annotations.predicates import PredicateMapper
from annotations_rw.utils.exceptions import UnsupportedPredicateError

THING = NODE_LABELS["THING"]
UUID = PROPERTY_KEYS["UUID"]
LIFECYCLE = RELATIONSHIP_PROPERTIES["LIFECYCLE"]
PLATFORM_VERSION = RELATIONSHIP_PROPERTIES["PLATFORM_VERSION"]


def build_delete_statement(content_id: str, lifecycle: str, include_summary: bool) -> Statement:
    """
    Delete every relationship from the content carrying the given lifecycle.

    Nodes on either end are left in place.

    Args:
        content_id: Content uuid
        lifecycle: Annotation lifecycle to clear
        include_summary: Request mutation counters (needed to report "found")
    """
    cypher = f"""
    OPTIONAL MATCH (:{THING} {{{UUID}: $contentID}})-[r {{{LIFECYCLE}: $annotationLifecycle}}]->(:{THING})
    DELETE r
    """
    return Statement(
        operation="delete_annotations",
        cypher=cypher,
        parameters={
            "contentID": content_id,
            "annotationLifecycle": lifecycle,
        },
        include_summary=include_summary,
    )


def annotation_properties(annotation: Annotation, scope: Scope) -> Dict[str, Any]:
    """
    Build the full property bag for one annotation relationship.

    Only supplied fields are included, so nothing is stored as an explicit
    null or a made-up zero.

    Raises:
        MalformedReferenceError: If the agent reference has no uuid
    """
    props: Dict[str, Any] = {
        PLATFORM_VERSION: scope.platform_version,
        LIFECYCLE: scope.lifecycle,
    }
    if annotation.agent_ref:
        props[RELATIONSHIP_PROPERTIES["ANNOTATED_BY"]] = extract_uuid(annotation.agent_ref)
    if annotation.annotated_at:
        props[RELATIONSHIP_PROPERTIES["ANNOTATED_DATE"]] = annotation.annotated_at
        epoch = annotation.annotated_at_epoch
        if epoch is not None:
            props[RELATIONSHIP_PROPERTIES["ANNOTATED_DATE_EPOCH"]] = epoch
    if annotation.relevance_score is not None:
        props[RELATIONSHIP_PROPERTIES["RELEVANCE_SCORE"]] = annotation.relevance_score
    if annotation.confidence_score is not None:
        props[RELATIONSHIP_PROPERTIES["CONFIDENCE_SCORE"]] = annotation.confidence_score
    return props


def build_annotation_statement(scope: Scope, annotation: Annotation, mapper: PredicateMapper) -> Statement:
    """
    Merge the content, the concept and one typed relationship between them.

    The relationship is merged on its lifecycle so different lifecycles keep
    separate relationships on the same pair; its property bag is then
    replaced wholesale.

    Raises:
        UnsupportedPredicateError: If the predicate is not in the vocabulary
        MalformedReferenceError: If the concept or agent reference has no uuid
    """
    concept_id = extract_uuid(annotation.concept_ref)
    relationship_type = mapper.resolve(annotation.predicate)
    if not validate_relationship_type(relationship_type):
        raise UnsupportedPredicateError(annotation.predicate)

    cypher = f"""
    MERGE (content:{THING} {{{UUID}: $contentID}})
    MERGE (concept:{THING} {{{UUID}: $conceptID}})
    MERGE (content)-[pred:{relationship_type} {{{LIFECYCLE}: $annotationLifecycle}}]->(concept)
    SET pred = $annProps
    """
    return Statement(
        operation="write_annotation",
        cypher=cypher,
        parameters={
            "contentID": scope.content_id,
            "conceptID": concept_id,
            "annotationLifecycle": scope.lifecycle,
            "annProps": annotation_properties(annotation, scope),
        },
    )


def build_write_statements(
    scope: Scope,
    annotations: Iterable[Annotation],
    mapper: PredicateMapper,
) -> List[Statement]:
    """
    Build the batch replacing every annotation in a scope.

    The scoped delete comes first, then one merge per annotation. If any
    annotation cannot be turned into a statement the error propagates and no
    partial batch is returned.
    """
    statements = [build_delete_statement(scope.content_id, scope.lifecycle, include_summary=False)]
    statements.extend(
        build_annotation_statement(scope, annotation, mapper)
        for annotation in annotations
    )
    return statements


def build_read_statement(content_id: str, lifecycle: str) -> Statement:
    """Read every annotation of a content in one lifecycle, ordered by concept uuid."""
    cypher = f"""
    MATCH (c:{THING} {{{UUID}: $contentUUID}})-[rel {{{LIFECYCLE}: $annotationLifecycle}}]->(cc:{THING})
    RETURN
        cc.{UUID} AS id,
        cc.{PROPERTY_KEYS['PREF_LABEL']} AS prefLabel,
        labels(cc) AS types,
        type(rel) AS predicate,
        rel.{RELATIONSHIP_PROPERTIES['RELEVANCE_SCORE']} AS relevanceScore,
        rel.{RELATIONSHIP_PROPERTIES['CONFIDENCE_SCORE']} AS confidenceScore,
        rel.{RELATIONSHIP_PROPERTIES['ANNOTATED_BY']} AS annotatedBy,
        rel.{RELATIONSHIP_PROPERTIES['ANNOTATED_DATE']} AS annotatedDate
    ORDER BY id
    """
    return Statement(
        operation="read_annotations",
        cypher=cypher,
        parameters={
            "contentUUID": content_id,
            "annotationLifecycle": lifecycle,
        },
    )


def build_count_statement(lifecycle: str, platform_version: str) -> Statement:
    """
    Count relationships written by a platform for a lifecycle.

    Relationships without a lifecycle predate lifecycles and are counted as
    part of whichever lifecycle is asked for.
    """
    cypher = f"""
    MATCH ()-[r {{{PLATFORM_VERSION}: $platformVersion}}]->()
    WHERE r.{LIFECYCLE} = $lifecycle
    OR r.{LIFECYCLE} IS NULL
    RETURN count(r) AS c
    """
    return Statement(
        operation="count_annotations",
        cypher=cypher,
        parameters={
            "platformVersion": platform_version,
            "lifecycle": lifecycle,
        },
    )


def build_constraint_statements() -> List[Statement]:
    """Uniqueness constraints for node identifiers; safe to run repeatedly."""
    return [
        Statement(
            operation="create_constraint",
            cypher=(
                f"CREATE CONSTRAINT {label.lower()}_{prop} IF NOT EXISTS "
                f"FOR (n:{label}) REQUIRE n.{prop} IS UNIQUE"
            ),
        )
        for label, prop in UNIQUE_CONSTRAINTS.items()
    ]
