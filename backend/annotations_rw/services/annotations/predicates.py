"""
Predicate to relationship-type mapping.

The vocabulary is a closed, immutable mapping built once and injected where
statements are built, so the query builder can be tested with any table.
"""
from typing import Mapping
from types import MappingProxyType

from annotations_rw.repositories.graph_schema import DEFAULT_PREDICATE, PREDICATE_RELATIONSHIPS
from annotations_rw.utils.exceptions import UnsupportedPredicateError


class PredicateMapper:
    """
    Resolves predicate keys (e.g. "mentions") to relationship types (e.g. "MENTIONS").

    Matching is exact and case-sensitive. An empty predicate is either mapped
    to the default predicate or rejected, depending on
    ``allow_default_predicate``.
    """

    def __init__(
        self,
        relations: Mapping[str, str] = PREDICATE_RELATIONSHIPS,
        allow_default_predicate: bool = False,
        default_predicate: str = DEFAULT_PREDICATE,
    ):
        self.relations = MappingProxyType(dict(relations))
        self.allow_default_predicate = allow_default_predicate
        self.default_predicate = default_predicate
        if allow_default_predicate and default_predicate not in self.relations:
            raise ValueError(f"Default predicate {default_predicate!r} is not in the vocabulary")

    def resolve(self, predicate: str) -> str:
        """
        Return the relationship type for a predicate key.

        Raises:
            UnsupportedPredicateError: If the predicate is unknown, or empty
                while defaults are disabled
        """
        if not predicate and self.allow_default_predicate:
            predicate = self.default_predicate
        try:
            return self.relations[predicate]
        except KeyError:
            raise UnsupportedPredicateError(predicate) from None


def strip_predicate_uri(value: str) -> str:
    """Return the final path segment of a predicate URI (or the value itself)."""
    return value.rsplit("/", 1)[-1] if value else value
