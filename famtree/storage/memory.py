"""In-process store, used by tests and by the CLI for snapshot replays."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, List, Optional

from ..core.person import Person, utcnow
from ..core.relationship import Relationship
from ..errors import DuplicateParentRole, DuplicateRelationship, OwnershipViolation
from .base import RelationshipStore

logger = logging.getLogger(__name__)


class InMemoryStore(RelationshipStore):
    """Dictionary-backed store.

    Records are copied on the way in and out, so callers never hold a
    reference into the store. Writes re-check the parent-role, duplicate
    and ownership constraints. transaction() holds a re-entrant lock, so
    a validate-then-write sequence inside it is serialized against other
    threads.
    """

    def __init__(self):
        self._people: Dict[int, Person] = {}
        self._relationships: Dict[int, Relationship] = {}
        self._next_person_id = 1
        self._next_relationship_id = 1
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator['InMemoryStore']:
        """Serialize a validate-then-write sequence."""
        with self._lock:
            yield self

    # ========== Person Methods ==========

    def add_person(self, person: Person) -> Person:
        with self._lock:
            person_id = person.id
            if person_id is None:
                person_id = self._next_person_id
            elif person_id in self._people:
                raise ValueError(f"Person {person_id} already exists")
            self._next_person_id = max(self._next_person_id, person_id + 1)
            stored = replace(person, id=person_id, created_at=person.created_at or utcnow())
            self._people[person_id] = stored
            return replace(stored)

    def get_person(self, person_id: int) -> Optional[Person]:
        with self._lock:
            person = self._people.get(person_id)
            return replace(person) if person else None

    def update_person(self, person: Person) -> Person:
        with self._lock:
            existing = self._people.get(person.id)
            if existing is None:
                raise KeyError(f"Person {person.id} not found")
            stored = replace(person, owner_id=existing.owner_id, created_at=existing.created_at)
            self._people[person.id] = stored
            return replace(stored)

    def delete_person(self, person_id: int) -> bool:
        with self._lock:
            if self._people.pop(person_id, None) is None:
                return False
            cascaded = [rid for rid, rel in self._relationships.items() if rel.involves(person_id)]
            for rid in cascaded:
                del self._relationships[rid]
            if cascaded:
                logger.debug(f"Deleted {len(cascaded)} relationships with person {person_id}")
            return True

    def list_people(self, owner_id: int) -> List[Person]:
        with self._lock:
            return [replace(p) for pid, p in sorted(self._people.items()) if p.owner_id == owner_id]

    # ========== Relationship Methods ==========

    def add_relationship(self, relationship: Relationship) -> Relationship:
        with self._lock:
            self._check_constraints(relationship, exclude_id=None)
            rel_id = relationship.id
            if rel_id is None:
                rel_id = self._next_relationship_id
            elif rel_id in self._relationships:
                raise ValueError(f"Relationship {rel_id} already exists")
            self._next_relationship_id = max(self._next_relationship_id, rel_id + 1)
            stored = replace(relationship, id=rel_id,
                             created_at=relationship.created_at or utcnow())
            self._relationships[rel_id] = stored
            return replace(stored)

    def update_relationship(self, relationship: Relationship) -> Relationship:
        with self._lock:
            existing = self._relationships.get(relationship.id)
            if existing is None:
                raise KeyError(f"Relationship {relationship.id} not found")
            self._check_constraints(relationship, exclude_id=relationship.id)
            stored = replace(relationship, created_at=existing.created_at)
            self._relationships[relationship.id] = stored
            return replace(stored)

    def get_relationship(self, relationship_id: int) -> Optional[Relationship]:
        with self._lock:
            rel = self._relationships.get(relationship_id)
            return replace(rel) if rel else None

    def delete_relationship(self, relationship_id: int) -> bool:
        with self._lock:
            return self._relationships.pop(relationship_id, None) is not None

    def relationships_for_person(self, person_id: int) -> List[Relationship]:
        with self._lock:
            return [replace(r) for rid, r in sorted(self._relationships.items())
                    if r.involves(person_id)]

    def list_relationships(self, owner_id: int) -> List[Relationship]:
        with self._lock:
            return [replace(r) for rid, r in sorted(self._relationships.items())
                    if r.owner_id == owner_id]

    def _check_constraints(self, rel: Relationship, exclude_id: Optional[int]) -> None:
        """Enforce the same invariants a database schema would."""
        for person_id in rel.endpoints:
            person = self._people.get(person_id)
            if person is None or person.owner_id != rel.owner_id:
                raise OwnershipViolation()

        if rel.role is not None:
            existing = self.find_parent(rel.person2_id, rel.role, exclude_id=exclude_id)
            if existing is not None:
                raise DuplicateParentRole(rel.role.value, rel.person2_id, existing.person1_id)

        existing = self.find_between(rel.person1_id, rel.person2_id, rel.kinship_type,
                                     exclude_id=exclude_id)
        if existing is not None:
            raise DuplicateRelationship(rel.person1_id, rel.person2_id, existing.id)
