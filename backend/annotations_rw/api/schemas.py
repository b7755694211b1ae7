"""
Pydantic schemas for request/response models.

Field names follow the JSON accepted on PUT so a GET response can be fed
back unchanged.
"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from annotations_rw.services.annotations.models import Annotation


class AnnotationOut(BaseModel):
    """One stored annotation as returned by GET."""

    id: str
    prefLabel: Optional[str] = None
    types: List[str] = []
    predicate: str
    relevanceScore: Optional[float] = None
    confidenceScore: Optional[float] = None
    annotatedBy: Optional[str] = None
    annotatedDate: Optional[str] = None

    @classmethod
    def from_annotation(cls, annotation: Annotation) -> "AnnotationOut":
        return cls(
            id=annotation.concept_ref,
            prefLabel=annotation.pref_label,
            types=list(annotation.types),
            predicate=annotation.predicate,
            relevanceScore=annotation.relevance_score,
            confidenceScore=annotation.confidence_score,
            annotatedBy=annotation.agent_ref,
            annotatedDate=annotation.annotated_at,
        )


class MessageResponse(BaseModel):
    """Plain message response."""

    message: str


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str


class HealthCheckResult(BaseModel):
    """Outcome of one health check."""

    id: str
    name: str
    ok: bool
    severity: int
    businessImpact: str
    technicalSummary: str
    panicGuide: str
    checkOutput: str
    lastUpdated: str


class HealthResponse(BaseModel):
    """Aggregated health report."""

    schemaVersion: int = 1
    systemCode: str
    name: str
    description: str
    checks: List[HealthCheckResult]
    ok: bool


class BuildInfoResponse(BaseModel):
    """Build information."""

    name: str
    systemCode: str
    version: str
    environment: str
    details: Optional[Dict[str, Any]] = None
