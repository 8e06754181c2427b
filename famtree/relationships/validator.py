"""
Relationship write validation.

Checks a requested (endpoint1, endpoint2, verb) against the store before it
is persisted. Checks run in a fixed order and the first failure wins:

1. Kinship verb is mother, father or spouse
2. Endpoints are different persons
3. Both persons exist and belong to the caller
4. The request is normalized to stored form
5. The child has no other parent in the same role
6. No equivalent relationship is already stored
"""

import logging
from typing import Optional

from ..core.person import utcnow
from ..core.relationship import KinshipType, Relationship
from ..errors import (
    DuplicateParentRole,
    DuplicateRelationship,
    InvalidKinshipType,
    OwnershipViolation,
    RelationshipRejected,
    SelfRelationNotAllowed,
)
from ..storage.base import RelationshipStore
from .normalizer import NormalizedRelationship, is_valid_verb, normalize

logger = logging.getLogger(__name__)


class RelationshipValidator:
    """
    Validates relationship writes against the family graph invariants.

    The validator holds no state of its own between calls. Run it inside
    store.transaction() together with the write so the checks and the
    insert see the same graph.
    """

    def __init__(self, store: RelationshipStore):
        """
        Initialize the validator.

        Args:
            store: Store used to look up persons and existing relationships
        """
        self.store = store

    def validate_and_prepare(
        self,
        owner_id: int,
        endpoint1: int,
        endpoint2: int,
        verb: str,
        exclude_relationship_id: Optional[int] = None
    ) -> Relationship:
        """
        Validate a relationship request and build the record to persist.

        Args:
            owner_id: Account making the request
            endpoint1: Parent (mother/father) or first spouse
            endpoint2: Child (mother/father) or second spouse
            verb: 'mother', 'father' or 'spouse'
            exclude_relationship_id: Relationship being updated, ignored by
                the cardinality and duplicate checks

        Returns:
            Relationship with owner and created_at set and no id

        Raises:
            RelationshipRejected: the matching subclass for the first failed check
        """
        try:
            normalized = self._check(owner_id, endpoint1, endpoint2, verb, exclude_relationship_id)
        except RelationshipRejected as e:
            logger.info(
                f"Rejected {verb!r} relationship {endpoint1!r} -> {endpoint2!r} "
                f"for owner {owner_id}: {e.kind}"
            )
            raise

        return Relationship(
            person1_id=normalized.endpoint1,
            person2_id=normalized.endpoint2,
            kinship=normalized.kinship,
            owner_id=owner_id,
            created_at=utcnow(),
        )

    def _check(
        self,
        owner_id: int,
        endpoint1: int,
        endpoint2: int,
        verb: str,
        exclude_id: Optional[int]
    ) -> NormalizedRelationship:
        if not is_valid_verb(verb):
            raise InvalidKinshipType(verb)

        if endpoint1 == endpoint2:
            raise SelfRelationNotAllowed(endpoint1)

        self._check_ownership(owner_id, endpoint1, endpoint2)

        normalized = normalize(endpoint1, endpoint2, verb)

        if normalized.kinship_type is KinshipType.PARENT_OF:
            existing = self.store.find_parent(normalized.child_id, normalized.role,
                                              exclude_id=exclude_id)
            if existing is not None:
                raise DuplicateParentRole(normalized.role.value, normalized.child_id,
                                          existing.person1_id)

        existing = self.store.find_between(endpoint1, endpoint2, normalized.kinship_type,
                                           exclude_id=exclude_id)
        if existing is not None:
            raise DuplicateRelationship(endpoint1, endpoint2, existing.id)

        return normalized

    def _check_ownership(self, owner_id: int, endpoint1: int, endpoint2: int):
        # Missing and foreign records get the same error
        for person_id in (endpoint1, endpoint2):
            person = self.store.get_person(person_id)
            if person is None or person.owner_id != owner_id:
                raise OwnershipViolation()
