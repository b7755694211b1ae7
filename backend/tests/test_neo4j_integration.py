"""
End-to-end tests against a real Neo4j.

Skipped unless NEO4J_TEST_URI is set, e.g.:
    NEO4J_TEST_URI=bolt://localhost:7687 NEO4J_TEST_PASSWORD=... pytest
The tests clean up every Thing they create.
"""
import os

import pytest
from neo4j import GraphDatabase

from annotations_rw.repositories.graph_store import GraphStore
from annotations_rw.services.annotations.models import Annotation
from annotations_rw.services.annotations.predicates import PredicateMapper
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.utils.exceptions import ValidationError

from conftest import AGENT_UUID, CONCEPT_UUID, CONTENT_UUID, OTHER_CONCEPT_UUID, PUBLIC_API_URL, thing

pytestmark = pytest.mark.skipif(
    not os.environ.get("NEO4J_TEST_URI"),
    reason="NEO4J_TEST_URI not set",
)

ALL_UUIDS = [CONTENT_UUID, CONCEPT_UUID, OTHER_CONCEPT_UUID]


@pytest.fixture
def driver():
    driver = GraphDatabase.driver(
        os.environ["NEO4J_TEST_URI"],
        auth=(os.environ.get("NEO4J_TEST_USER", "neo4j"), os.environ.get("NEO4J_TEST_PASSWORD", "neo4j-password")),
    )
    yield driver
    with driver.session() as session:
        session.run("MATCH (n:Thing) WHERE n.uuid IN $uuids DETACH DELETE n", uuids=ALL_UUIDS).consume()
    driver.close()


@pytest.fixture
def live_service(driver) -> AnnotationsService:
    service = AnnotationsService(GraphStore(driver), PUBLIC_API_URL, PredicateMapper())
    service.initialise()
    return service


def count_things(driver) -> int:
    with driver.session() as session:
        record = session.run("MATCH (n:Thing) WHERE n.uuid IN $uuids RETURN count(n) AS c", uuids=ALL_UUIDS).single()
        return record["c"]


def test_write_read_delete(live_service, driver):
    annotation = Annotation(
        concept_ref=thing(CONCEPT_UUID),
        predicate="mentions",
        relevance_score=0.9,
        confidence_score=0.8,
        agent_ref=thing(AGENT_UUID),
        annotated_at="2016-01-01T19:43:47.314Z",
    )
    bookmark = live_service.write(CONTENT_UUID, "L1", "v2", [annotation])

    (stored,), found = live_service.read(CONTENT_UUID, bookmark, "L1")
    assert found
    assert stored.predicate == "MENTIONS"
    assert stored.relevance_score == 0.9
    assert stored.confidence_score == 0.8
    assert stored.agent_ref == thing(AGENT_UUID)

    found, bookmark = live_service.delete(CONTENT_UUID, "L1")
    assert found
    _, found = live_service.read(CONTENT_UUID, bookmark, "L1")
    assert not found
    assert count_things(driver) == 2


def test_replace_and_isolation(live_service):
    live_service.write(CONTENT_UUID, "L2", "v2", [Annotation(concept_ref=thing(CONCEPT_UUID), predicate="about")])
    live_service.write(CONTENT_UUID, "L1", "v2", [Annotation(concept_ref=thing(CONCEPT_UUID), predicate="mentions")])
    bookmark = live_service.write(
        CONTENT_UUID, "L1", "v2", [Annotation(concept_ref=thing(OTHER_CONCEPT_UUID), predicate="mentions")]
    )

    l1, _ = live_service.read(CONTENT_UUID, bookmark, "L1")
    l2, _ = live_service.read(CONTENT_UUID, bookmark, "L2")
    assert [a.concept_ref for a in l1] == [thing(OTHER_CONCEPT_UUID)]
    assert [a.predicate for a in l2] == ["ABOUT"]


def test_rejected_set_writes_nothing(live_service, driver):
    with pytest.raises(ValidationError):
        live_service.write(
            CONTENT_UUID,
            "L1",
            "v2",
            [Annotation(concept_ref=thing(CONCEPT_UUID), predicate="mentions"), Annotation(concept_ref="")],
        )
    assert count_things(driver) == 0
