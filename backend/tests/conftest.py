"""
Shared pytest fixtures.

Provides an in-memory graph store that interprets the statements built by
the query builder, so service behaviour can be checked without a database.
"""
import copy
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytest

from annotations_rw.core.config import Settings
from annotations_rw.repositories.graph_store import Statement, StatementSummary, WriteResult
from annotations_rw.services.annotations.models import Annotation
from annotations_rw.services.annotations.predicates import PredicateMapper
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.services.messaging.transport import Message, MessageConsumer, MessageProducer
from annotations_rw.utils.exceptions import NoResultsFoundError, StoreError

PUBLIC_API_URL = "http://api.ft.com"
CONTENT_UUID = "3a4c7a9e-5c1d-4b6f-9a2e-1f0d8c7b6a51"
OTHER_CONTENT_UUID = "9d7e3f21-0a4b-4c8d-8e2f-6b5a4c3d2e10"
CONCEPT_UUID = "5b1c2d3e-4f5a-4b6c-8d7e-9f0a1b2c3d4e"
OTHER_CONCEPT_UUID = "a0b1c2d3-e4f5-4a6b-8c7d-9e0f1a2b3c4d"
AGENT_UUID = "0d1e2f3a-4b5c-4d6e-8f7a-9b0c1d2e3f4a"

RELATIONSHIP_TYPE_IN_CYPHER = re.compile(r"-\[pred:(\w+)")

# (content uuid, relationship type, lifecycle, concept uuid)
RelationshipKey = Tuple[str, str, Optional[str], str]


def thing(uuid: str) -> str:
    return f"{PUBLIC_API_URL}/things/{uuid}"


class InMemoryGraphStore:
    """
    Graph store double keeping relationships in a dict.

    Write batches are applied to a copy and swapped in on success, so a
    failing statement leaves the graph untouched, like a rolled back
    transaction.
    """

    def __init__(self):
        self.relationships: Dict[RelationshipKey, Dict[str, Any]] = {}
        self.nodes: set = set()
        self.constraints: List[str] = []
        self.commits = 0
        self.submitted: List[List[Statement]] = []
        self.operations: List[str] = []
        self.read_bookmarks: List[List[Optional[str]]] = []
        self.fail_writes = False
        self.fail_on_operation: Optional[str] = None
        self.available = True

    def seed(self, content: str, rel_type: str, concept: str, props: Dict[str, Any]) -> None:
        """Add a relationship directly, e.g. one written before lifecycles existed."""
        self.nodes.update({content, concept})
        self.relationships[(content, rel_type, props.get("lifecycle"), concept)] = dict(props)

    def write(self, statements: List[Statement], operation: str = "write") -> WriteResult:
        self.submitted.append(list(statements))
        self.operations.append(operation)
        if self.fail_writes:
            raise StoreError(operation, f"{operation} failed")

        relationships = copy.deepcopy(self.relationships)
        nodes = set(self.nodes)
        summaries: List[Optional[StatementSummary]] = []
        for statement in statements:
            if statement.operation == self.fail_on_operation:
                raise StoreError(operation, f"{operation} failed", {"statement": statement.operation})
            deleted = self._apply(statement, relationships, nodes)
            summaries.append(
                StatementSummary(relationships_deleted=deleted) if statement.include_summary else None
            )

        self.relationships = relationships
        self.nodes = nodes
        self.commits += 1
        return WriteResult(bookmark=f"bm:{self.commits}", summaries=summaries)

    def _apply(self, statement: Statement, relationships: Dict, nodes: set) -> int:
        params = statement.parameters
        if statement.operation == "delete_annotations":
            doomed = [
                key for key in relationships
                if key[0] == params["contentID"] and key[2] == params["annotationLifecycle"]
            ]
            for key in doomed:
                del relationships[key]
            return len(doomed)
        if statement.operation == "write_annotation":
            rel_type = RELATIONSHIP_TYPE_IN_CYPHER.search(statement.cypher).group(1)
            nodes.update({params["contentID"], params["conceptID"]})
            key = (params["contentID"], rel_type, params["annotationLifecycle"], params["conceptID"])
            relationships[key] = dict(params["annProps"])
            return 0
        if statement.operation == "create_constraint":
            if statement.cypher not in self.constraints:
                self.constraints.append(statement.cypher)
            return 0
        raise AssertionError(f"unexpected write operation {statement.operation}")

    def read(self, statement: Statement, bookmarks: Iterable[Optional[str]] = ()) -> List[Dict[str, Any]]:
        self.read_bookmarks.append(list(bookmarks))
        params = statement.parameters
        if statement.operation == "read_annotations":
            rows = [
                {
                    "id": concept,
                    "prefLabel": None,
                    "types": ["Thing"],
                    "predicate": rel_type,
                    "relevanceScore": props.get("relevanceScore"),
                    "confidenceScore": props.get("confidenceScore"),
                    "annotatedBy": props.get("annotatedBy"),
                    "annotatedDate": props.get("annotatedDate"),
                }
                for (content, rel_type, lifecycle, concept), props in self.relationships.items()
                if content == params["contentUUID"] and lifecycle == params["annotationLifecycle"]
            ]
            rows.sort(key=lambda row: row["id"])
        elif statement.operation == "count_annotations":
            count = sum(
                1
                for props in self.relationships.values()
                if props.get("platformVersion") == params["platformVersion"]
                and props.get("lifecycle") in (params["lifecycle"], None)
            )
            rows = [{"c": count}]
        else:
            raise AssertionError(f"unexpected read operation {statement.operation}")

        if not rows:
            raise NoResultsFoundError("No results found", {"operation": statement.operation})
        return rows

    def verify_connectivity(self) -> None:
        if not self.available:
            raise StoreError("check", "Error connecting to neo4j: ServiceUnavailable")

    def relationships_for(self, content: str, lifecycle: Optional[str]) -> Dict[RelationshipKey, Dict[str, Any]]:
        return {
            key: props for key, props in self.relationships.items()
            if key[0] == content and key[2] == lifecycle
        }


class RecordingProducer(MessageProducer):
    def __init__(self, fail: bool = False):
        self.messages: List[Message] = []
        self.fail = fail

    def send_message(self, message: Message) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.messages.append(message)


class StubConsumer(MessageConsumer):
    def __init__(self):
        self.handler = None
        self.closed = False
        self.connectivity_error: Optional[Exception] = None
        self.monitor_error: Optional[Exception] = None

    def start(self, handler) -> None:
        self.handler = handler

    def close(self) -> None:
        self.closed = True

    def connectivity_check(self) -> None:
        if self.connectivity_error is not None:
            raise self.connectivity_error

    def monitor_check(self) -> None:
        if self.monitor_error is not None:
            raise self.monitor_error


@pytest.fixture
def graph_store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def service(graph_store: InMemoryGraphStore) -> AnnotationsService:
    return AnnotationsService(graph_store, PUBLIC_API_URL, PredicateMapper())


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fixed lifecycle configuration."""
    return Settings(
        public_api_url=PUBLIC_API_URL,
        origin_map={
            "http://cmdb.ft.com/systems/pac": "annotations-pac",
            "http://cmdb.ft.com/systems/methode-web-pub": "annotations-v1",
        },
        lifecycle_map={
            "annotations-pac": "pac",
            "annotations-v1": "v1",
            "annotations-v2": "v2",
        },
        message_type="Annotations",
        payload_version="flat",
        allow_default_predicate=False,
    )


@pytest.fixture
def producer() -> RecordingProducer:
    return RecordingProducer()


@pytest.fixture
def consumer() -> StubConsumer:
    return StubConsumer()


@pytest.fixture
def sample_annotation() -> Annotation:
    return Annotation(
        concept_ref=thing(CONCEPT_UUID),
        predicate="mentions",
        relevance_score=0.9,
        confidence_score=0.8,
        agent_ref=thing(AGENT_UUID),
        annotated_at="2016-01-01T19:43:47.314Z",
    )
