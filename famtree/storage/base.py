"""
Storage interface for persons and relationships.

The relationship engine never talks to a database directly; it receives a
RelationshipStore. Implementations must enforce the graph invariants as
constraints of their own so they hold even for writers that bypass the
validator.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from ..core.person import Person
from ..core.relationship import KinshipType, ParentRole, Relationship


class RelationshipStore(ABC):
    """Abstract store for Person and Relationship records."""

    # ========== Person Methods ==========

    @abstractmethod
    def add_person(self, person: Person) -> Person:
        """Insert a person and return it with id and created_at set."""

    @abstractmethod
    def get_person(self, person_id: int) -> Optional[Person]:
        """Get a person by id, or None."""

    @abstractmethod
    def update_person(self, person: Person) -> Person:
        """Replace the stored fields of an existing person."""

    @abstractmethod
    def delete_person(self, person_id: int) -> bool:
        """Delete a person and every relationship that touches it."""

    @abstractmethod
    def list_people(self, owner_id: int) -> List[Person]:
        """All persons owned by owner_id, in id order."""

    # ========== Relationship Methods ==========

    @abstractmethod
    def add_relationship(self, relationship: Relationship) -> Relationship:
        """Insert a relationship and return it with id and created_at set."""

    @abstractmethod
    def update_relationship(self, relationship: Relationship) -> Relationship:
        """Replace endpoints and kinship of an existing relationship."""

    @abstractmethod
    def get_relationship(self, relationship_id: int) -> Optional[Relationship]:
        """Get a relationship by id, or None."""

    @abstractmethod
    def delete_relationship(self, relationship_id: int) -> bool:
        """Delete one relationship."""

    @abstractmethod
    def relationships_for_person(self, person_id: int) -> List[Relationship]:
        """Every relationship with person_id as either endpoint."""

    @abstractmethod
    def list_relationships(self, owner_id: int) -> List[Relationship]:
        """All relationships owned by owner_id, in id order."""

    @contextmanager
    def transaction(self) -> Iterator['RelationshipStore']:
        """Run a read-then-write sequence as one serialized unit.

        The default does nothing; stores with concurrent writers override it.
        """
        yield self

    # ========== Integrity Queries ==========

    def find_parent(
        self,
        child_id: int,
        role: ParentRole,
        exclude_id: Optional[int] = None
    ) -> Optional[Relationship]:
        """Find the parentOf relationship giving child_id a parent in this role."""
        for rel in self.relationships_for_person(child_id):
            if rel.id == exclude_id:
                continue
            if (rel.kinship_type is KinshipType.PARENT_OF and rel.role is role
                    and rel.person2_id == child_id):
                return rel
        return None

    def find_between(
        self,
        person1_id: int,
        person2_id: int,
        kinship_type: KinshipType,
        exclude_id: Optional[int] = None
    ) -> Optional[Relationship]:
        """Find a relationship of this type between the two persons, in either direction."""
        pair = frozenset((person1_id, person2_id))
        for rel in self.relationships_for_person(person1_id):
            if rel.id == exclude_id:
                continue
            if rel.kinship_type is kinship_type and rel.pair_key() == pair:
                return rel
        return None

    def parents_of(self, child_id: int) -> List[Relationship]:
        """All parentOf relationships targeting child_id."""
        return [
            rel for rel in self.relationships_for_person(child_id)
            if rel.kinship_type is KinshipType.PARENT_OF and rel.person2_id == child_id
        ]
