"""Tests for the Neo4j store adapter with a mocked driver."""
from unittest.mock import MagicMock, Mock

import pytest
from neo4j import Bookmarks, READ_ACCESS, WRITE_ACCESS
from neo4j.exceptions import ServiceUnavailable

from annotations_rw.repositories.graph_store import (
    GraphStore,
    Statement,
    decode_bookmarks,
    encode_bookmarks,
)
from annotations_rw.services.annotations.models import Annotation
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.utils.exceptions import NoResultsFoundError, StoreError


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.last_bookmarks.return_value = Bookmarks.from_raw_values(["bm-2", "bm-1"])
    return session


@pytest.fixture
def tx(session: MagicMock) -> MagicMock:
    tx = MagicMock()
    session.begin_transaction.return_value.__enter__.return_value = tx
    session.begin_transaction.return_value.__exit__.return_value = False
    return tx


@pytest.fixture
def driver(session: MagicMock) -> Mock:
    driver = Mock()
    driver.session.return_value = session
    return driver


def summary_with(deleted: int) -> Mock:
    summary = Mock()
    summary.counters.relationships_deleted = deleted
    summary.counters.relationships_created = 0
    summary.counters.properties_set = 0
    summary.counters.nodes_created = 0
    return summary


def test_write_runs_batch_in_one_transaction(driver, session, tx):
    tx.run.return_value.consume.side_effect = [summary_with(2), summary_with(0)]
    statements = [
        Statement("delete_annotations", "DELETE r", {"contentID": "c"}, include_summary=True),
        Statement("write_annotation", "MERGE ...", {"contentID": "c"}),
    ]

    result = GraphStore(driver, database="neo4j").write(statements)

    driver.session.assert_called_once_with(database="neo4j", default_access_mode=WRITE_ACCESS)
    assert session.begin_transaction.call_count == 1
    assert [c.args for c in tx.run.call_args_list] == [
        ("DELETE r", {"contentID": "c"}),
        ("MERGE ...", {"contentID": "c"}),
    ]
    tx.commit.assert_called_once()
    session.close.assert_called_once()
    assert result.bookmark == "bm-1,bm-2"
    assert result.summaries[0].relationships_deleted == 2
    assert result.summaries[1] is None


def test_write_failure_is_wrapped(driver, session, tx):
    tx.run.side_effect = ServiceUnavailable("connection refused")

    with pytest.raises(StoreError) as exc_info:
        GraphStore(driver).write([Statement("write_annotation", "MERGE ...")])

    assert exc_info.value.operation == "write"
    assert exc_info.value.details["statement"] == "write_annotation"
    assert "MERGE" not in exc_info.value.message
    tx.commit.assert_not_called()
    session.close.assert_called_once()


def test_read_passes_bookmarks(driver, session):
    record = Mock()
    record.data.return_value = {"c": 4}
    session.run.return_value = [record]

    rows = GraphStore(driver).read(Statement("count_annotations", "RETURN 4 AS c"), ["bm-1,bm-2", "", None])

    assert rows == [{"c": 4}]
    kwargs = driver.session.call_args.kwargs
    assert kwargs["default_access_mode"] == READ_ACCESS
    assert kwargs["bookmarks"].raw_values == frozenset({"bm-1", "bm-2"})


def test_read_without_rows_raises(driver, session):
    session.run.return_value = []
    with pytest.raises(NoResultsFoundError):
        GraphStore(driver).read(Statement("read_annotations", "MATCH ..."))
    assert driver.session.call_args.kwargs["bookmarks"] is None


def test_read_failure_is_wrapped(driver, session):
    session.run.side_effect = ServiceUnavailable("connection refused")
    with pytest.raises(StoreError) as exc_info:
        GraphStore(driver).read(Statement("read_annotations", "MATCH ..."))
    assert exc_info.value.operation == "read_annotations"


def test_verify_connectivity(driver):
    driver.verify_connectivity.side_effect = ServiceUnavailable("down")
    with pytest.raises(StoreError) as exc_info:
        GraphStore(driver).verify_connectivity()
    assert exc_info.value.operation == "check"


def test_bookmark_encoding_round_trip():
    token = encode_bookmarks(Bookmarks.from_raw_values(["b", "a"]))
    assert token == "a,b"
    assert decode_bookmarks([token]).raw_values == frozenset({"a", "b"})
    assert decode_bookmarks(["", None]) is None


def test_write_failure_names_batch_and_failing_statement(driver, session, tx):
    tx.run.return_value.consume.return_value = summary_with(0)
    tx.run.side_effect = [tx.run.return_value, ServiceUnavailable("connection refused by 10.0.0.5:7687")]
    statements = [
        Statement("delete_annotations", "DELETE r", {"contentID": "c"}, include_summary=True),
        Statement("write_annotation", "MERGE ...", {"contentID": "c"}),
    ]

    with pytest.raises(StoreError) as exc_info:
        GraphStore(driver).write(statements, operation="write")

    assert exc_info.value.operation == "write"
    assert exc_info.value.details["statement"] == "write_annotation"
    assert exc_info.value.message == "write failed"
    tx.commit.assert_not_called()


def test_service_write_failure_reported_as_write(driver, tx):
    tx.run.return_value.consume.return_value = summary_with(0)
    tx.run.side_effect = [tx.run.return_value, ServiceUnavailable("connection refused")]
    service = AnnotationsService(GraphStore(driver), "http://api.ft.com")
    annotation = Annotation(
        concept_ref="http://api.ft.com/things/5b1c2d3e-4f5a-4b6c-8d7e-9f0a1b2c3d4e",
        predicate="mentions",
    )

    with pytest.raises(StoreError) as exc_info:
        service.write("3a4c7a9e-5c1d-4b6f-9a2e-1f0d8c7b6a51", "annotations-pac", "pac", [annotation])

    assert exc_info.value.operation == "write"


def test_driver_text_kept_out_of_error_message(driver, session):
    session.run.side_effect = ServiceUnavailable("Failed to read from defunct connection 10.0.0.5:7687")
    with pytest.raises(StoreError) as exc_info:
        GraphStore(driver).read(Statement("read_annotations", "MATCH ..."))
    assert "10.0.0.5" not in exc_info.value.message
