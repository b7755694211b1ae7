"""
Annotation records.

The in-memory shape shared by every payload version, the query builder and
the service. Records are immutable once decoded.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
import re

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

# RFC 3339 / ISO-8601 parsing with any fraction length and offset form
timestamp_adapter = TypeAdapter(datetime)

# Bare numbers would otherwise be read as unix timestamps
ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class Annotation:
    """
    One link from a content item to a concept.

    Attributes:
        concept_ref: URI (or bare id on reads) of the annotated concept
        predicate: Predicate key (e.g. "mentions"); relationship type on reads
        relevance_score: Relevance in [0.0, 1.0], None when not supplied
        confidence_score: Confidence in [0.0, 1.0], None when not supplied
        agent_ref: URI of the annotating agent, if any
        annotated_at: ISO-8601 timestamp, if any
        pref_label: Display name hint, never required
        types: Label/type hints, never required
    """
    concept_ref: str
    predicate: str = ""
    relevance_score: Optional[float] = None
    confidence_score: Optional[float] = None
    agent_ref: Optional[str] = None
    annotated_at: Optional[str] = None
    pref_label: Optional[str] = None
    types: Tuple[str, ...] = ()

    @property
    def annotated_at_epoch(self) -> Optional[int]:
        """Seconds since the epoch for ``annotated_at``, or None if absent/unparseable."""
        return parse_epoch_seconds(self.annotated_at)


# Annotations for one (content, lifecycle) scope, in payload order
AnnotationSet = Tuple[Annotation, ...]


@dataclass(frozen=True)
class Scope:
    """
    The relationships a write may replace.

    ``content_id`` and ``lifecycle`` bound the replacement; ``platform_version``
    is only recorded on the relationships written.
    """
    content_id: str
    lifecycle: str
    platform_version: str


def parse_epoch_seconds(timestamp: Optional[str]) -> Optional[int]:
    """Convert an ISO-8601 timestamp to whole epoch seconds."""
    if not timestamp:
        return None
    value = timestamp.strip()
    if not ISO_DATE_PREFIX.match(value):
        return None
    try:
        parsed = timestamp_adapter.validate_python(value)
    except PydanticValidationError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
