"""
Entry points for the relationship and duplicate workflows.

FamilyTreeService wires the validator, the matcher and the merge preview to
an injected store. Every mutating call validates and writes inside one
store transaction.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from .config import FamTreeConfig, default_config
from .core.person import parse_timestamp
from .core.relationship import Relationship
from .data.snapshot import RelationshipRecord, TreeSnapshot
from .errors import OwnershipViolation, RelationshipRejected
from .matching.matcher import DuplicateCandidate, PersonMatcher
from .merge.preview import MergePreview, preview_merge
from .relationships.validator import RelationshipValidator
from .storage.base import RelationshipStore

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """Result of loading a snapshot into a store."""
    people_added: int = 0
    relationships_added: int = 0
    rejected: List[tuple] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Imported {self.people_added} people and {self.relationships_added} relationships"
            f" ({len(self.rejected)} rejected)"
        )


class FamilyTreeService:
    """
    Relationship writes, duplicate scans and merge previews for one store.

    Example:
        >>> service = FamilyTreeService(InMemoryStore())
        >>> service.create_relationship(owner_id, mother_id, child_id, 'mother')
    """

    def __init__(self, store: RelationshipStore, config: Optional[FamTreeConfig] = None):
        """
        Initialize the service.

        Args:
            store: Person and relationship store
            config: Configuration (defaults to default_config)
        """
        self.store = store
        self.config = config or default_config
        self.validator = RelationshipValidator(store)
        self.matcher = PersonMatcher(self.config.matching)

    # ========== Relationship Methods ==========

    def create_relationship(
        self,
        owner_id: int,
        endpoint1: int,
        endpoint2: int,
        verb: str
    ) -> Relationship:
        """
        Validate and store a new relationship.

        Raises:
            RelationshipRejected: the first check the request fails
        """
        with self.store.transaction():
            relationship = self.validator.validate_and_prepare(owner_id, endpoint1, endpoint2, verb)
            stored = self.store.add_relationship(relationship)
        logger.info(f"Created {stored!r}")
        return stored

    def update_relationship(
        self,
        owner_id: int,
        relationship_id: int,
        endpoint1: int,
        endpoint2: int,
        verb: str
    ) -> Relationship:
        """
        Replace the endpoints and kinship of an existing relationship.

        The relationship keeps its id and creation time, and is left out of
        its own cardinality and duplicate checks.

        Raises:
            OwnershipViolation: the relationship is missing or owned by someone else
            RelationshipRejected: the first check the new values fail
        """
        with self.store.transaction():
            existing = self.store.get_relationship(relationship_id)
            if existing is None or existing.owner_id != owner_id:
                logger.info(f"Rejected update of relationship {relationship_id} for owner {owner_id}")
                raise OwnershipViolation("Relationship not found")

            prepared = self.validator.validate_and_prepare(
                owner_id, endpoint1, endpoint2, verb,
                exclude_relationship_id=relationship_id
            )
            updated = self.store.update_relationship(
                replace(prepared, id=existing.id, created_at=existing.created_at)
            )
        logger.info(f"Updated {updated!r}")
        return updated

    def delete_relationship(self, owner_id: int, relationship_id: int) -> None:
        """
        Delete a relationship owned by owner_id.

        Raises:
            OwnershipViolation: the relationship is missing or owned by someone else
        """
        with self.store.transaction():
            existing = self.store.get_relationship(relationship_id)
            if existing is None or existing.owner_id != owner_id:
                raise OwnershipViolation("Relationship not found")
            self.store.delete_relationship(relationship_id)
        logger.info(f"Deleted relationship {relationship_id}")

    # ========== Duplicate Methods ==========

    def list_duplicates(
        self,
        owner_id: int,
        threshold: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[DuplicateCandidate]:
        """All likely duplicate pairs among owner_id's persons."""
        return self.matcher.find_duplicates(
            self.store.list_people(owner_id), threshold, limit,
            relationships=self.store.list_relationships(owner_id)
        )

    def list_duplicates_for_person(
        self,
        owner_id: int,
        person_id: int,
        threshold: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[DuplicateCandidate]:
        """
        Likely duplicates of one person among owner_id's persons.

        Raises:
            OwnershipViolation: the person is missing or owned by someone else
        """
        target = self.store.get_person(person_id)
        if target is None or target.owner_id != owner_id:
            raise OwnershipViolation("Person not found")
        return self.matcher.find_duplicates_for_person(
            target, self.store.list_people(owner_id), threshold, limit,
            relationships=self.store.list_relationships(owner_id)
        )

    # ========== Merge Methods ==========

    def preview_merge(
        self,
        owner_id: int,
        source_id: int,
        target_id: int,
        protected_person_ids: Iterable[int] = ()
    ) -> MergePreview:
        """
        Preview merging source_id into target_id.

        Raises:
            OwnershipViolation: either person is missing or owned by someone else
        """
        source = self.store.get_person(source_id)
        target = self.store.get_person(target_id)
        for person in (source, target):
            if person is None or person.owner_id != owner_id:
                raise OwnershipViolation("Person not found")

        return preview_merge(
            source, target,
            self.store.relationships_for_person(source_id),
            self.store.relationships_for_person(target_id),
            protected_person_ids=protected_person_ids,
        )

    # ========== Import Methods ==========

    def import_snapshot(self, snapshot: TreeSnapshot) -> ImportReport:
        """
        Load a snapshot's persons, then replay its relationships through validation.

        Rejected relationships are collected in the report, not raised.
        """
        report = ImportReport()
        with self.store.transaction():
            for record in snapshot.people:
                self.store.add_person(record.to_person())
                report.people_added += 1

        for record in snapshot.relationships:
            try:
                self._replay(record)
            except RelationshipRejected as e:
                report.rejected.append((record, e))
            else:
                report.relationships_added += 1

        logger.info(str(report))
        return report

    def _replay(self, record: RelationshipRecord) -> Relationship:
        with self.store.transaction():
            relationship = self.validator.validate_and_prepare(
                record.owner_id, record.person1_id, record.person2_id, record.verb
            )
            if record.created_at is not None:
                relationship = replace(relationship, created_at=parse_timestamp(record.created_at))
            return self.store.add_relationship(relationship)
