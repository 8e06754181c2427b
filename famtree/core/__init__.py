"""Core record types: persons and kinship relationships."""

from .person import Person
from .relationship import (
    Relationship,
    Kinship,
    KinshipType,
    ParentOf,
    ParentRole,
    Spouse,
    kinship_from_storage,
)

__all__ = [
    'Person',
    'Relationship',
    'Kinship',
    'KinshipType',
    'ParentOf',
    'ParentRole',
    'Spouse',
    'kinship_from_storage',
]
