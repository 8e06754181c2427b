"""
JSON snapshot models for exported family trees.

A snapshot holds persons and relationships in the API's camelCase shape:

    {"people": [{"id": 1, "ownerId": 7, "firstName": "Jane", ...}],
     "relationships": [{"person1Id": 1, "person2Id": 2, "type": "mother", ...}]}
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..core.person import Person, parse_timestamp
from ..errors import SnapshotError

OWNER_ALIASES = AliasChoices('ownerId', 'userId', 'owner_id')


class SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class PersonRecord(SnapshotModel):
    id: int
    owner_id: int = Field(validation_alias=OWNER_ALIASES)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_surname: Optional[str] = None
    nickname: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_person(self) -> Person:
        return Person(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            birth_surname=self.birth_surname,
            nickname=self.nickname,
            birth_date=self.birth_date,
            death_date=self.death_date,
            gender=self.gender,
            photo_url=self.photo_url,
            owner_id=self.owner_id,
            created_at=parse_timestamp(self.created_at),
        )


class RelationshipRecord(SnapshotModel):
    """A relationship row, in either boundary or stored form.

    'type' is a boundary verb ('mother', 'father', 'spouse') or the stored
    'parentOf' with the role in 'parentRole'. Unknown types are kept as-is
    so a replay can report them.
    """
    id: Optional[int] = None
    owner_id: int = Field(validation_alias=OWNER_ALIASES)
    person1_id: int
    person2_id: int
    type: str
    parent_role: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def verb(self) -> Optional[str]:
        """Boundary verb for this record."""
        if self.type == 'parentOf':
            return self.parent_role
        return self.type


class TreeSnapshot(SnapshotModel):
    people: List[PersonRecord] = Field(default_factory=list)
    relationships: List[RelationshipRecord] = Field(default_factory=list)

    def owners(self) -> List[int]:
        """Every owner id present in the snapshot, ascending."""
        return sorted({p.owner_id for p in self.people} | {r.owner_id for r in self.relationships})

    def people_for(self, owner_id: int) -> List[Person]:
        return [p.to_person() for p in self.people if p.owner_id == owner_id]


def load_snapshot(path: str | Path) -> TreeSnapshot:
    """
    Load a snapshot file.

    Raises:
        SnapshotError: the file cannot be read or does not hold a valid snapshot
    """
    try:
        text = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    try:
        return TreeSnapshot.model_validate_json(text)
    except ValidationError as e:
        raise SnapshotError(
            f"Invalid snapshot {path}: {e.error_count()} error(s), first: {e.errors()[0]['msg']}"
        ) from e
