"""Utility functions and helpers."""

from annotations_rw.utils.exceptions import (
    BaseAppException,
    AnnotationInputError,
    ValidationError,
    UnsupportedPredicateError,
    MalformedReferenceError,
    NoResultsFoundError,
    StoreError,
    ForwardingError,
    ConfigurationError,
)

__all__ = [
    "BaseAppException",
    "AnnotationInputError",
    "ValidationError",
    "UnsupportedPredicateError",
    "MalformedReferenceError",
    "NoResultsFoundError",
    "StoreError",
    "ForwardingError",
    "ConfigurationError",
]
