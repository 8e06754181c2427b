"""Relationship normalization and validation."""

from .normalizer import (
    NormalizedRelationship,
    VALID_VERBS,
    is_valid_verb,
    kinship_from_verb,
    normalize,
    verb_for_kinship,
)
from .validator import RelationshipValidator

__all__ = [
    # Normalization
    'NormalizedRelationship',
    'VALID_VERBS',
    'is_valid_verb',
    'kinship_from_verb',
    'normalize',
    'verb_for_kinship',
    # Validation
    'RelationshipValidator',
]
