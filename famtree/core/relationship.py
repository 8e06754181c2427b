"""Relationship class and the kinship tagged union."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Tuple, Union

from ..errors import SelfRelationNotAllowed
from .person import to_rfc3339


class KinshipType(Enum):
    """Stored relationship category."""
    PARENT_OF = "parentOf"
    SPOUSE = "spouse"


class ParentRole(Enum):
    """Role the first endpoint plays toward the child in a parentOf relationship."""
    MOTHER = "mother"
    FATHER = "father"


@dataclass(frozen=True, slots=True)
class ParentOf:
    """person1 is the mother or father of person2."""
    role: ParentRole

    @property
    def kinship_type(self) -> KinshipType:
        return KinshipType.PARENT_OF


@dataclass(frozen=True, slots=True)
class Spouse:
    """person1 and person2 are spouses."""

    @property
    def kinship_type(self) -> KinshipType:
        return KinshipType.SPOUSE

    @property
    def role(self) -> None:
        return None


Kinship = Union[ParentOf, Spouse]


def kinship_from_storage(kinship_type: str, role: Optional[str]) -> Kinship:
    """Rebuild a kinship value from its stored (type, role) columns.

    Raises:
        ValueError: if the pair violates parentOf <=> role in {mother, father}
    """
    if kinship_type == KinshipType.PARENT_OF.value:
        if role not in (ParentRole.MOTHER.value, ParentRole.FATHER.value):
            raise ValueError(f"parentOf relationship requires a mother/father role, got {role!r}")
        return ParentOf(ParentRole(role))
    if kinship_type == KinshipType.SPOUSE.value:
        if role is not None:
            raise ValueError(f"spouse relationship must not carry a role, got {role!r}")
        return Spouse()
    raise ValueError(f"Unknown kinship type {kinship_type!r}")


@dataclass(slots=True)
class Relationship:
    """A kinship edge between two persons of the same owner.

    Attributes:
        person1_id: Parent for parentOf, either spouse for spouse
        person2_id: Child for parentOf, the other spouse for spouse
        kinship: ParentOf(role) or Spouse()
        owner_id: Account that owns the relationship
        id: Unique identifier (None until stored)
        created_at: Creation timestamp (UTC)
    """

    person1_id: int
    person2_id: int
    kinship: Kinship
    owner_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        if self.person1_id == self.person2_id:
            raise SelfRelationNotAllowed(self.person1_id)

    def __repr__(self) -> str:
        return (f"Relationship(id={self.id!r}, {self.person1_id!r} -{self.verb}-> "
                f"{self.person2_id!r}, owner_id={self.owner_id!r})")

    @property
    def kinship_type(self) -> KinshipType:
        return self.kinship.kinship_type

    @property
    def role(self) -> Optional[ParentRole]:
        return self.kinship.role

    @property
    def verb(self) -> str:
        """Boundary verb for this relationship ('mother', 'father' or 'spouse')."""
        from ..relationships.normalizer import verb_for_kinship
        return verb_for_kinship(self.kinship)

    @property
    def endpoints(self) -> Tuple[int, int]:
        return (self.person1_id, self.person2_id)

    def pair_key(self) -> frozenset:
        """Unordered endpoint pair, used for duplicate checks."""
        return frozenset(self.endpoints)

    def involves(self, person_id: int) -> bool:
        """Check whether person_id is one of the endpoints."""
        return person_id in self.endpoints

    def other_endpoint(self, person_id: int) -> int:
        """Return the endpoint that is not person_id."""
        if person_id == self.person1_id:
            return self.person2_id
        if person_id == self.person2_id:
            return self.person1_id
        raise ValueError(f"Person {person_id} is not an endpoint of relationship {self.id}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API dictionary.

        parentOf relationships are reported with their role as the type, and
        parentRole is always present (None for spouses).
        """
        role = self.role
        return {
            'id': self.id,
            'person1Id': self.person1_id,
            'person2Id': self.person2_id,
            'type': self.verb,
            'parentRole': role.value if role else None,
            'ownerId': self.owner_id,
            'createdAt': to_rfc3339(self.created_at),
        }
