"""
Merge preview for two believed-duplicate persons.

The preview is read-only: it reports what merging source into target would
do to the person fields and the relationships, and whether the merge is
allowed. Executing the merge is left to the caller.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..core.person import Person
from ..core.relationship import KinshipType, Relationship
from ..errors import InvalidParameter
from .conflict_resolver import FIELD_KEYS, MERGEABLE_FIELDS, ConflictResolver, MergeDecision

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FieldComparison:
    """Source, target and proposed merged value for one field."""
    source: Any
    target: Any
    merged: Any
    conflict: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'target': self.target,
            'merged': self.merged,
            'conflict': self.conflict,
        }


@dataclass(slots=True)
class TransferredRelationship:
    """A source relationship as it would look after the merge."""
    original: Relationship
    transferred: Relationship
    collides_with: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original': self.original.to_dict(),
            'transferred': self.transferred.to_dict(),
            'collidesWith': self.collides_with,
        }


@dataclass
class MergePreview:
    """Outcome of previewing a merge of source into target."""
    source: Person
    target: Person
    merged_record: Person
    per_field_comparison: Dict[str, FieldComparison]
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    conflict_fields: List[str] = field(default_factory=list)
    relationship_conflicts: List[str] = field(default_factory=list)
    relationships_to_transfer: List[TransferredRelationship] = field(default_factory=list)
    existing_relationships_on_target: List[Relationship] = field(default_factory=list)

    @property
    def can_merge(self) -> bool:
        """True when nothing blocks the merge."""
        return not self.validation_errors

    def merged_with_overrides(self, overrides: Mapping[str, str]) -> Person:
        """
        Build the merged record with manual choices applied.

        Args:
            overrides: Maps a field name to 'source' or 'target'

        Returns:
            A new Person; the preview itself is unchanged

        Raises:
            InvalidParameter: unknown field or choice
        """
        changes = {}
        for field_name, choice in overrides.items():
            if field_name not in MERGEABLE_FIELDS:
                raise InvalidParameter('field', field_name, 'one of ' + ', '.join(MERGEABLE_FIELDS))
            if choice not in ('source', 'target'):
                raise InvalidParameter('choice', choice, "'source' or 'target'")
            comparison = self.per_field_comparison[field_name]
            changes[field_name] = comparison.source if choice == 'source' else comparison.target
        return replace(self.merged_record, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API dictionary (camelCase keys)."""
        return {
            'canMerge': self.can_merge,
            'validationErrors': list(self.validation_errors),
            'validationWarnings': list(self.validation_warnings),
            'conflictFields': [FIELD_KEYS[f] for f in self.conflict_fields],
            'relationshipConflicts': list(self.relationship_conflicts),
            'source': self.source.to_dict(),
            'target': self.target.to_dict(),
            'mergedRecord': self.merged_record.to_dict(),
            'perFieldComparison': {
                FIELD_KEYS[name]: comparison.to_dict()
                for name, comparison in self.per_field_comparison.items()
            },
            'relationshipsToTransfer': [t.to_dict() for t in self.relationships_to_transfer],
            'existingRelationshipsOnTarget': [
                r.to_dict() for r in self.existing_relationships_on_target
            ],
        }


def _validate(source: Person, target: Person, protected_person_ids) -> List[str]:
    errors = []

    if source.id == target.id:
        errors.append("Cannot merge a person into themselves")

    if source.owner_id != target.owner_id:
        errors.append("Cannot merge records across different owners")

    source_gender = (source.gender or '').strip().lower()
    target_gender = (target.gender or '').strip().lower()
    if (source_gender and target_gender
            and 'unspecified' not in (source_gender, target_gender)
            and source_gender != target_gender):
        errors.append(f"Gender mismatch: Cannot merge {source_gender} into {target_gender}")

    if source.id in protected_person_ids:
        errors.append("Cannot merge your profile person into another person")
    if target.id in protected_person_ids:
        errors.append("Cannot merge into your profile person")

    return errors


def _retarget(rel: Relationship, source_id: int, target_id: int) -> Relationship:
    if rel.person1_id == source_id:
        return replace(rel, person1_id=target_id)
    return replace(rel, person2_id=target_id)


def _find_collision(
    moved: Relationship,
    target_id: int,
    target_relationships: List[Relationship]
) -> Optional[Relationship]:
    """Find the target relationship a transferred one would clash with."""
    for existing in target_relationships:
        if existing.kinship_type is moved.kinship_type and existing.pair_key() == moved.pair_key():
            return existing
    if moved.kinship_type is KinshipType.PARENT_OF and moved.person2_id == target_id:
        # A second parent in the same role for the merged person
        for existing in target_relationships:
            if (existing.kinship_type is KinshipType.PARENT_OF
                    and existing.person2_id == target_id and existing.role is moved.role):
                return existing
    return None


def _parent_ids(person_id: int, relationships: List[Relationship]) -> Dict[str, int]:
    parents = {}
    for rel in relationships:
        if rel.kinship_type is KinshipType.PARENT_OF and rel.person2_id == person_id:
            parents.setdefault(rel.role.value, rel.person1_id)
    return parents


def preview_merge(
    source: Person,
    target: Person,
    source_relationships: Iterable[Relationship],
    target_relationships: Iterable[Relationship],
    protected_person_ids: Iterable[int] = ()
) -> MergePreview:
    """
    Preview merging source into target.

    Args:
        source: Person that would be removed
        target: Person that would receive the merged data
        source_relationships: Relationships involving source
        target_relationships: Relationships involving target
        protected_person_ids: Persons that must never be merged (e.g. the
            owner's own profile person)

    Returns:
        MergePreview; inputs are never modified
    """
    source_rels = [r for r in source_relationships if r.involves(source.id)]
    target_rels = [r for r in target_relationships if r.involves(target.id)]
    protected = set(protected_person_ids)

    resolver = ConflictResolver()
    resolutions = resolver.resolve_person(source, target)

    comparison = {
        name: FieldComparison(
            source=res.source_value,
            target=res.target_value,
            merged=res.chosen,
            conflict=res.decision is MergeDecision.MANUAL_REVIEW,
        )
        for name, res in resolutions.items()
    }
    merged_record = replace(target, **{name: res.chosen for name, res in resolutions.items()})

    preview = MergePreview(
        source=source,
        target=target,
        merged_record=merged_record,
        per_field_comparison=comparison,
        validation_errors=_validate(source, target, protected),
        conflict_fields=[name for name, c in comparison.items() if c.conflict],
    )

    if source.id == target.id:
        # Nothing to transfer when merging a record into itself
        return preview

    warnings = preview.validation_warnings
    collided_ids = []

    for rel in source_rels:
        if rel.involves(target.id):
            warnings.append(
                f"Relationship {rel.id} ({rel.verb}) between the two people will be removed"
            )
            continue

        moved = _retarget(rel, source.id, target.id)
        collision = _find_collision(moved, target.id, target_rels)
        entry = TransferredRelationship(original=rel, transferred=moved)
        if collision is not None:
            entry.collides_with = collision.id
            if collision.id not in collided_ids:
                collided_ids.append(collision.id)
            if collision.pair_key() == moved.pair_key():
                warnings.append(
                    f"Relationship {rel.id} ({rel.verb}) duplicates relationship "
                    f"{collision.id} already on the target"
                )
        preview.relationships_to_transfer.append(entry)

    if preview.relationships_to_transfer:
        count = len(preview.relationships_to_transfer)
        warnings.insert(0, f"{count} relationship(s) will be transferred to the target")

    source_parents = _parent_ids(source.id, source_rels)
    target_parents = _parent_ids(target.id, target_rels)
    for role in ('mother', 'father'):
        if role in source_parents and role in target_parents \
                and source_parents[role] != target_parents[role]:
            preview.relationship_conflicts.append(role)
            warnings.append(f"Both people have different {role}s")

    preview.existing_relationships_on_target = [
        r for r in target_rels if r.id in collided_ids
    ]

    logger.debug(
        f"Merge preview {source.id} -> {target.id}: "
        f"{len(preview.validation_errors)} errors, {len(warnings)} warnings"
    )
    return preview
