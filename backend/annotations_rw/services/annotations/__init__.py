"""Annotation records, validation, statement building and the service."""

from annotations_rw.services.annotations.models import Annotation, AnnotationSet, Scope
from annotations_rw.services.annotations.predicates import PredicateMapper
from annotations_rw.services.annotations.decoders import AnnotationDecoder, get_decoder
from annotations_rw.services.annotations.service import AnnotationsService

__all__ = [
    "Annotation",
    "AnnotationSet",
    "Scope",
    "PredicateMapper",
    "AnnotationDecoder",
    "get_decoder",
    "AnnotationsService",
]
