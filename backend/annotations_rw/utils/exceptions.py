"""
Custom exceptions.

Application-specific exception classes.
"""


class BaseAppException(Exception):
    """Base exception for all application-specific exceptions."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AnnotationInputError(BaseAppException):
    """Raised when caller-supplied annotations cannot be written."""
    pass


class ValidationError(AnnotationInputError):
    """Raised when annotations miss mandatory information."""
    pass


class UnsupportedPredicateError(AnnotationInputError):
    """Raised when a predicate is not part of the relationship vocabulary."""

    def __init__(self, predicate: str):
        self.predicate = predicate
        super().__init__(
            f"Unsupported predicate: {predicate!r}",
            {"predicate": predicate},
        )


class MalformedReferenceError(AnnotationInputError):
    """Raised when a concept or agent reference does not end in a UUID."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(
            f"Couldn't extract uuid from uri {reference}",
            {"reference": reference},
        )


class NoResultsFoundError(BaseAppException):
    """Raised by the graph store when a read returns no rows."""
    pass


class StoreError(BaseAppException):
    """Raised when a graph store operation fails."""

    def __init__(self, operation: str, message: str, details: dict | None = None):
        self.operation = operation
        super().__init__(message, {"operation": operation, **(details or {})})


class ForwardingError(BaseAppException):
    """Raised when a message cannot be forwarded to the next queue."""
    pass


class ConfigurationError(BaseAppException):
    """Raised when the service configuration is invalid."""
    pass
