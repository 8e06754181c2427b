"""
Rejection taxonomy for family graph operations.

Every failure raised by the core is a FamTreeError. Relationship writes fail
with a RelationshipRejected subclass carrying a stable ``kind`` string so a
transport layer can map it without inspecting messages.
"""

from typing import Optional


class FamTreeError(Exception):
    """Base class for all famtree errors."""

    kind = "famtree_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Serialize for an API error body."""
        return {'error': self.kind, 'message': self.message}


class RelationshipRejected(FamTreeError):
    """A relationship write was refused."""

    kind = "relationship_rejected"


class InvalidKinshipType(RelationshipRejected, ValueError):
    """The kinship verb is not one of mother, father or spouse."""

    kind = "invalid_kinship_type"

    def __init__(self, verb):
        super().__init__(
            f"Invalid relationship type {verb!r}. Must be: mother, father, or spouse"
        )
        self.verb = verb


class SelfRelationNotAllowed(RelationshipRejected):
    """Both endpoints name the same person."""

    kind = "self_relation_not_allowed"

    def __init__(self, person_id):
        super().__init__(f"A person cannot be related to themselves (person {person_id})")
        self.person_id = person_id


class OwnershipViolation(RelationshipRejected):
    """A referenced record is missing or belongs to another owner.

    The two cases are reported identically so callers cannot probe for
    records held by other tenants.
    """

    kind = "ownership_violation"

    def __init__(self, message: str = "One or both persons do not exist or do not belong to you"):
        super().__init__(message)


class DuplicateParentRole(RelationshipRejected):
    """The child already has a parent recorded in this role."""

    kind = "duplicate_parent_role"

    def __init__(self, role: str, child_id, existing_parent_id=None):
        super().__init__(f"Child {child_id} already has a {role}")
        self.role = role
        self.child_id = child_id
        self.existing_parent_id = existing_parent_id


class DuplicateRelationship(RelationshipRejected):
    """An equivalent relationship is already stored."""

    kind = "duplicate_relationship"

    def __init__(self, person1_id, person2_id, existing_relationship_id: Optional[int] = None):
        super().__init__(
            f"This relationship already exists between person {person1_id} "
            f"and person {person2_id}"
        )
        self.person1_id = person1_id
        self.person2_id = person2_id
        self.existing_relationship_id = existing_relationship_id


class InvalidParameter(FamTreeError, ValueError):
    """A scan or preview parameter is malformed or out of range."""

    kind = "invalid_parameter"

    def __init__(self, name: str, value, expected: str):
        super().__init__(f"Invalid {name} parameter {value!r} (must be {expected})")
        self.name = name
        self.value = value


class SnapshotError(FamTreeError):
    """A snapshot file could not be read or parsed."""

    kind = "snapshot_error"
