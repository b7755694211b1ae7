"""Tests for the versioned payload decoders."""
import pytest

from annotations_rw.services.annotations.decoders import (
    CONFIDENCE_SCORING_SYSTEM,
    RELEVANCE_SCORING_SYSTEM,
    FlatAnnotationDecoder,
    NestedAnnotationDecoder,
    get_decoder,
)
from annotations_rw.utils.exceptions import ValidationError

from conftest import AGENT_UUID, CONCEPT_UUID, thing


def test_flat_decoder_maps_every_field():
    payload = [{
        "id": thing(CONCEPT_UUID),
        "prefLabel": "Apple",
        "types": ["http://www.ft.com/ontology/organisation/Organisation"],
        "predicate": "http://www.ft.com/ontology/annotation/mentions",
        "relevanceScore": 0.9,
        "confidenceScore": 0.8,
        "annotatedBy": thing(AGENT_UUID),
        "annotatedDate": "2016-01-01T19:43:47.314Z",
    }]
    (annotation,) = FlatAnnotationDecoder().decode(payload)

    assert annotation.concept_ref == thing(CONCEPT_UUID)
    assert annotation.predicate == "mentions"
    assert annotation.relevance_score == 0.9
    assert annotation.confidence_score == 0.8
    assert annotation.agent_ref == thing(AGENT_UUID)
    assert annotation.annotated_at == "2016-01-01T19:43:47.314Z"
    assert annotation.pref_label == "Apple"
    assert annotation.types == ("http://www.ft.com/ontology/organisation/Organisation",)


def test_flat_decoder_leaves_absent_scores_unset():
    (annotation,) = FlatAnnotationDecoder().decode([{"id": thing(CONCEPT_UUID), "predicate": "about"}])
    assert annotation.relevance_score is None
    assert annotation.confidence_score is None
    assert annotation.agent_ref is None


def test_flat_decoder_keeps_missing_id_for_service_validation():
    (annotation,) = FlatAnnotationDecoder().decode([{"predicate": "about"}])
    assert annotation.concept_ref == ""


def test_decoder_preserves_order():
    payload = [
        {"id": thing(CONCEPT_UUID), "predicate": "about"},
        {"id": thing(AGENT_UUID), "predicate": "mentions"},
    ]
    annotations = FlatAnnotationDecoder().decode(payload)
    assert [a.concept_ref for a in annotations] == [thing(CONCEPT_UUID), thing(AGENT_UUID)]


@pytest.mark.parametrize(
    "payload",
    [
        {"id": "x"},
        "annotations",
        None,
    ],
)
def test_decoder_requires_array(payload):
    with pytest.raises(ValidationError):
        FlatAnnotationDecoder().decode(payload)


@pytest.mark.parametrize(
    "item",
    [
        {"id": "x", "relevanceScore": 1.5},
        {"id": "x", "confidenceScore": -0.1},
        {"id": "x", "relevanceScore": "high"},
        {"id": "x", "annotatedDate": "yesterday"},
        "not-an-object",
    ],
)
def test_flat_decoder_rejects_invalid_items(item):
    with pytest.raises(ValidationError) as exc_info:
        FlatAnnotationDecoder().decode([{"id": "ok"}, item])
    assert exc_info.value.details["index"] == 1


def test_nested_decoder_picks_scores_by_system():
    payload = [{
        "thing": {
            "id": thing(CONCEPT_UUID),
            "prefLabel": "Apple",
            "predicate": "http://www.ft.com/ontology/annotation/about",
        },
        "provenances": [{
            "scores": [
                {"scoringSystem": CONFIDENCE_SCORING_SYSTEM, "value": 0.4},
                {"scoringSystem": RELEVANCE_SCORING_SYSTEM, "value": 0.7},
            ],
            "agentRole": thing(AGENT_UUID),
            "atTime": "2016-01-01T19:43:47.314Z",
        }],
    }]
    (annotation,) = NestedAnnotationDecoder().decode(payload)

    assert annotation.concept_ref == thing(CONCEPT_UUID)
    assert annotation.predicate == "about"
    assert annotation.relevance_score == 0.7
    assert annotation.confidence_score == 0.4
    assert annotation.agent_ref == thing(AGENT_UUID)
    assert annotation.annotated_at == "2016-01-01T19:43:47.314Z"


def test_nested_decoder_without_provenance():
    (annotation,) = NestedAnnotationDecoder().decode([{"thing": {"id": thing(CONCEPT_UUID), "predicate": "about"}}])
    assert annotation.relevance_score is None
    assert annotation.agent_ref is None


def test_get_decoder():
    assert isinstance(get_decoder("flat"), FlatAnnotationDecoder)
    assert isinstance(get_decoder("nested"), NestedAnnotationDecoder)
    with pytest.raises(ValueError):
        get_decoder("v3")


@pytest.mark.parametrize("timestamp", ["2016-01-01T19:43:47.31Z", "2016-01-01T19:43:47+0000"])
def test_flat_decoder_accepts_rfc3339_variants(timestamp):
    (annotation,) = FlatAnnotationDecoder().decode([{
        "id": thing(CONCEPT_UUID),
        "predicate": "mentions",
        "annotatedDate": timestamp,
    }])
    assert annotation.annotated_at == timestamp
    assert annotation.annotated_at_epoch == 1451677427
