"""
Field-level conflict resolution for merging duplicate persons.

The target record survives a merge. Its values win unless they are missing,
in which case the source fills the gap. Two different non-empty values are
a conflict that needs a manual choice.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..core.person import Person

# Person fields carried over by a merge, in display order
MERGEABLE_FIELDS = (
    'first_name',
    'last_name',
    'birth_date',
    'death_date',
    'gender',
    'photo_url',
    'birth_surname',
    'nickname',
)

# API (camelCase) name of each mergeable field
FIELD_KEYS = {
    'first_name': 'firstName',
    'last_name': 'lastName',
    'birth_date': 'birthDate',
    'death_date': 'deathDate',
    'gender': 'gender',
    'photo_url': 'photoUrl',
    'birth_surname': 'birthSurname',
    'nickname': 'nickname',
}


class MergeDecision(Enum):
    """Decision on which value the merged record takes."""
    KEEP_TARGET = "keep_target"
    USE_SOURCE = "use_source"
    MANUAL_REVIEW = "manual_review"


@dataclass
class FieldResolution:
    """Resolution of one field between source and target."""
    field: str
    source_value: Any
    target_value: Any
    chosen: Any
    reason: str
    decision: MergeDecision = MergeDecision.KEEP_TARGET

    @property
    def conflict(self) -> bool:
        """True if both records hold different values."""
        return self.decision is MergeDecision.MANUAL_REVIEW

    def __str__(self) -> str:
        """Human-readable description."""
        return (
            f"Field: {self.field}\n"
            f"  Source: {self.source_value}\n"
            f"  Target: {self.target_value}\n"
            f"  Chosen: {self.chosen}\n"
            f"  Reason: {self.reason}\n"
            f"  Decision: {self.decision.value}"
        )


def _present(field: str, value: Any) -> Optional[Any]:
    """Return the comparable value, or None if the field counts as empty."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if field == 'gender' and value.lower() == 'unspecified':
            return None
    return value


class ConflictResolver:
    """
    Resolves field values between a merge source and target.

    Resolution rules:
    1. Both empty - merged value is empty
    2. Target empty, source set - use the source value
    3. Source empty or both equal - keep the target value
    4. Both set and different - keep the target value, flag for review
    """

    def resolve_field(self, field: str, source_value: Any, target_value: Any) -> FieldResolution:
        """
        Resolve a single field.

        Empty strings count as missing, and so does gender 'unspecified'.
        The chosen value is always one of the stored values, unchanged.
        """
        source = _present(field, source_value)
        target = _present(field, target_value)

        if source is None and target is None:
            return FieldResolution(field, source_value, target_value, target_value,
                                   'Both values empty', MergeDecision.KEEP_TARGET)

        if target is None:
            return FieldResolution(field, source_value, target_value, source_value,
                                   'Target value empty', MergeDecision.USE_SOURCE)

        if source is None:
            return FieldResolution(field, source_value, target_value, target_value,
                                   'Source value empty', MergeDecision.KEEP_TARGET)

        if source == target:
            return FieldResolution(field, source_value, target_value, target_value,
                                   'Values match', MergeDecision.KEEP_TARGET)

        return FieldResolution(field, source_value, target_value, target_value,
                               'Values differ, keeping target until reviewed',
                               MergeDecision.MANUAL_REVIEW)

    def resolve_person(self, source: Person, target: Person) -> Dict[str, FieldResolution]:
        """Resolve every mergeable field of two persons."""
        return {
            field: self.resolve_field(field, getattr(source, field), getattr(target, field))
            for field in MERGEABLE_FIELDS
        }
