"""Merge preview for duplicate persons."""

from .conflict_resolver import (
    ConflictResolver,
    FieldResolution,
    MergeDecision,
    MERGEABLE_FIELDS,
)
from .preview import (
    FieldComparison,
    MergePreview,
    TransferredRelationship,
    preview_merge,
)

__all__ = [
    # Conflict resolution
    'ConflictResolver',
    'FieldResolution',
    'MergeDecision',
    'MERGEABLE_FIELDS',
    # Preview
    'FieldComparison',
    'MergePreview',
    'TransferredRelationship',
    'preview_merge',
]
