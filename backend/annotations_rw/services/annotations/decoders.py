"""
Payload decoders.

Annotation payloads have changed shape over time. Each version gets a
decoder producing the same ``Annotation`` records, so the service never sees
the external format.

Supported versions:
- "flat": ``{id, predicate, relevanceScore, confidenceScore, annotatedBy, annotatedDate}``
- "nested": ``{thing: {id, predicate}, provenances: [{scores, agentRole, atTime}]}``
"""
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from annotations_rw.services.annotations.models import Annotation, AnnotationSet, parse_epoch_seconds
from annotations_rw.services.annotations.predicates import strip_predicate_uri
from annotations_rw.utils.exceptions import ValidationError

RELEVANCE_SCORING_SYSTEM = "http://api.ft.com/scoringsystem/FT-RELEVANCE-SYSTEM"
CONFIDENCE_SCORING_SYSTEM = "http://api.ft.com/scoringsystem/FT-CONFIDENCE-SYSTEM"


def check_timestamp(value: Optional[str]) -> Optional[str]:
    """Reject timestamps that cannot be read as ISO-8601."""
    if value and parse_epoch_seconds(value) is None:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}")
    return value or None


class FlatAnnotationPayload(BaseModel):
    """One annotation in the flat payload shape."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    prefLabel: Optional[str] = None
    types: List[str] = []
    predicate: str = ""
    relevanceScore: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    confidenceScore: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    annotatedBy: Optional[str] = None
    annotatedDate: Optional[str] = None

    @field_validator("annotatedDate")
    @classmethod
    def annotated_date_is_iso(cls, value: Optional[str]) -> Optional[str]:
        return check_timestamp(value)


class ThingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    prefLabel: Optional[str] = None
    types: List[str] = []
    predicate: str = ""


class ScorePayload(BaseModel):
    scoringSystem: str
    value: float = Field(ge=0.0, le=1.0)


class ProvenancePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    scores: List[ScorePayload] = []
    agentRole: Optional[str] = None
    atTime: Optional[str] = None

    @field_validator("atTime")
    @classmethod
    def at_time_is_iso(cls, value: Optional[str]) -> Optional[str]:
        return check_timestamp(value)


class NestedAnnotationPayload(BaseModel):
    """One annotation in the nested thing/provenances payload shape."""

    model_config = ConfigDict(extra="ignore")

    thing: ThingPayload = Field(default_factory=ThingPayload)
    provenances: List[ProvenancePayload] = []


class AnnotationDecoder(ABC):
    """
    Base class for payload decoders.

    Subclasses validate one raw element and turn it into an ``Annotation``.
    """

    version: str

    def decode(self, payload: Any) -> AnnotationSet:
        """
        Decode a JSON array of annotations.

        Args:
            payload: Parsed JSON (expected to be a list of objects)

        Returns:
            Annotations in payload order

        Raises:
            ValidationError: If the payload is not a list or an element is invalid
        """
        if not isinstance(payload, list):
            raise ValidationError(
                "Annotations payload must be a JSON array",
                {"payload_type": type(payload).__name__},
            )
        annotations = []
        for index, item in enumerate(payload):
            try:
                annotations.append(self.decode_one(item))
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid annotation at index {index}",
                    {"index": index, "errors": e.errors(include_url=False, include_context=False)},
                ) from e
        return tuple(annotations)

    @abstractmethod
    def decode_one(self, item: Any) -> Annotation:
        """Decode one element; raises pydantic's ValidationError when invalid."""
        pass


class FlatAnnotationDecoder(AnnotationDecoder):
    version = "flat"

    def decode_one(self, item: Any) -> Annotation:
        data = FlatAnnotationPayload.model_validate(item)
        return Annotation(
            concept_ref=data.id,
            predicate=strip_predicate_uri(data.predicate),
            relevance_score=data.relevanceScore,
            confidence_score=data.confidenceScore,
            agent_ref=data.annotatedBy or None,
            annotated_at=data.annotatedDate,
            pref_label=data.prefLabel,
            types=tuple(data.types),
        )


class NestedAnnotationDecoder(AnnotationDecoder):
    """
    Decoder for the thing/provenances shape.

    Scores are picked by scoring system; only the first provenance is used,
    matching what the nested writers ever sent.
    """

    version = "nested"

    def decode_one(self, item: Any) -> Annotation:
        data = NestedAnnotationPayload.model_validate(item)
        relevance = confidence = None
        agent = at_time = None
        if data.provenances:
            provenance = data.provenances[0]
            agent = provenance.agentRole or None
            at_time = provenance.atTime
            for score in provenance.scores:
                if score.scoringSystem == RELEVANCE_SCORING_SYSTEM:
                    relevance = score.value
                elif score.scoringSystem == CONFIDENCE_SCORING_SYSTEM:
                    confidence = score.value
        return Annotation(
            concept_ref=data.thing.id,
            predicate=strip_predicate_uri(data.thing.predicate),
            relevance_score=relevance,
            confidence_score=confidence,
            agent_ref=agent,
            annotated_at=at_time,
            pref_label=data.thing.prefLabel,
            types=tuple(data.thing.types),
        )


_DECODERS = {
    FlatAnnotationDecoder.version: FlatAnnotationDecoder,
    NestedAnnotationDecoder.version: NestedAnnotationDecoder,
}


def get_decoder(version: str) -> AnnotationDecoder:
    """
    Create the decoder for a payload version.

    Raises:
        ValueError: If the version is unknown
    """
    try:
        return _DECODERS[version]()
    except KeyError:
        raise ValueError(
            f"Unknown payload version: {version}. "
            f"Supported versions: {', '.join(sorted(_DECODERS))}"
        ) from None
