"""
famtree - relationship integrity and duplicate resolution for family trees.

Keeps a multi-owner family graph consistent, finds likely duplicate people
and previews merging them.
"""

__version__ = "0.1.0"

from .config import FamTreeConfig, MatchingConfig, default_config, load_config
from .core import Person, Relationship, KinshipType, ParentOf, ParentRole, Spouse
from .errors import (
    FamTreeError,
    RelationshipRejected,
    InvalidKinshipType,
    SelfRelationNotAllowed,
    OwnershipViolation,
    DuplicateParentRole,
    DuplicateRelationship,
    InvalidParameter,
    SnapshotError,
)
from .matching import DuplicateCandidate, find_all_duplicates, find_duplicates_for_person
from .merge import MergePreview, preview_merge
from .relationships import RelationshipValidator, normalize
from .service import FamilyTreeService
from .storage import InMemoryStore, RelationshipStore, SQLiteStore

__all__ = [
    # Configuration
    'FamTreeConfig',
    'MatchingConfig',
    'default_config',
    'load_config',
    # Records
    'Person',
    'Relationship',
    'KinshipType',
    'ParentOf',
    'ParentRole',
    'Spouse',
    # Errors
    'FamTreeError',
    'RelationshipRejected',
    'InvalidKinshipType',
    'SelfRelationNotAllowed',
    'OwnershipViolation',
    'DuplicateParentRole',
    'DuplicateRelationship',
    'InvalidParameter',
    'SnapshotError',
    # Operations
    'DuplicateCandidate',
    'find_all_duplicates',
    'find_duplicates_for_person',
    'MergePreview',
    'preview_merge',
    'RelationshipValidator',
    'normalize',
    'FamilyTreeService',
    # Storage
    'InMemoryStore',
    'RelationshipStore',
    'SQLiteStore',
]
