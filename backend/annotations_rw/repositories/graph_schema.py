"""
Neo4j graph schema definitions for annotations.

Content and concepts are both generic ``Thing`` nodes identified only by
``uuid``. An annotation is a typed relationship from a content Thing to a
concept Thing:

    (:Thing {uuid})-[:MENTIONS {lifecycle, platformVersion, ...}]->(:Thing {uuid})

The relationship type comes from a closed predicate vocabulary. The
``lifecycle`` property partitions annotations written by different sources so
they can coexist on the same content/concept pair.
"""
import re
from types import MappingProxyType

# Node labels
NODE_LABELS = {
    "THING": "Thing",
}

# Node property keys
PROPERTY_KEYS = {
    "UUID": "uuid",
    "PREF_LABEL": "preflabel",
}

# Relationship property keys (camelCase, as stored by every writer of this graph)
RELATIONSHIP_PROPERTIES = {
    "LIFECYCLE": "lifecycle",
    "PLATFORM_VERSION": "platformVersion",
    "RELEVANCE_SCORE": "relevanceScore",
    "CONFIDENCE_SCORE": "confidenceScore",
    "ANNOTATED_BY": "annotatedBy",
    "ANNOTATED_DATE": "annotatedDate",
    "ANNOTATED_DATE_EPOCH": "annotatedDateEpoch",
}

# Predicate -> relationship type. Extend here; callers resolve through
# PredicateMapper and never reference relationship types directly.
PREDICATE_RELATIONSHIPS = MappingProxyType({
    "mentions": "MENTIONS",
    "isClassifiedBy": "IS_CLASSIFIED_BY",
    "implicitlyClassifiedBy": "IMPLICITLY_CLASSIFIED_BY",
    "about": "ABOUT",
    "isPrimarilyClassifiedBy": "IS_PRIMARILY_CLASSIFIED_BY",
    "majorMentions": "MAJOR_MENTIONS",
    "hasAuthor": "HAS_AUTHOR",
    "hasContributor": "HAS_CONTRIBUTOR",
    "hasDisplayTag": "HAS_DISPLAY_TAG",
    "hasBrand": "HAS_BRAND",
})

DEFAULT_PREDICATE = "mentions"

# Uniqueness constraints, keyed by label -> property
UNIQUE_CONSTRAINTS = {
    NODE_LABELS["THING"]: PROPERTY_KEYS["UUID"],
}


RELATIONSHIP_TYPE_PATTERN = re.compile(r"[A-Z][A-Z_]*")


def validate_relationship_type(rel_type: str) -> bool:
    """Validate that a relationship type is safe to interpolate into Cypher."""
    return bool(rel_type) and RELATIONSHIP_TYPE_PATTERN.fullmatch(rel_type) is not None
