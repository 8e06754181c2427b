"""Person class for representing individuals in a family tree."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Self


@dataclass(slots=True)
class Person:
    """Represents an individual person owned by one account.

    Attributes:
        id: Unique identifier (None until stored)
        first_name: Given name
        last_name: Family name
        birth_surname: Family name at birth, if it changed
        nickname: Common or alternate name
        birth_date: ISO date, possibly partial ('1950', '1950-03', '1950-03-15')
        death_date: ISO date, possibly partial
        gender: 'male', 'female', 'other', 'unspecified' or None
        photo_url: Reference to a photo
        owner_id: Account that owns this record
        created_at: Creation timestamp (UTC)
    """

    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_surname: Optional[str] = None
    nickname: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __str__(self) -> str:
        """Return a human-readable string representation."""
        name = self.full_name() or "Unknown"
        birth_year = self.get_birth_year()
        death_year = self.get_death_year()

        if birth_year and death_year:
            return f"{name} ({birth_year}-{death_year})"
        elif birth_year:
            return f"{name} (b. {birth_year})"
        elif death_year:
            return f"{name} (d. {death_year})"
        else:
            return name

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Person(id={self.id!r}, name={self.full_name()!r}, owner_id={self.owner_id!r})"

    def full_name(self) -> str:
        """Return 'First Last', skipping missing parts."""
        parts = [p.strip() for p in (self.first_name, self.last_name) if p and p.strip()]
        return ' '.join(parts)

    def get_birth_year(self) -> Optional[int]:
        """Get the year of birth, if the birth date has one."""
        return _year_of(self.birth_date)

    def get_death_year(self) -> Optional[int]:
        """Get the year of death, if the death date has one."""
        return _year_of(self.death_date)

    def to_dict(self) -> Dict[str, Any]:
        """Convert person to its API dictionary (camelCase keys)."""
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'birthSurname': self.birth_surname,
            'nickname': self.nickname,
            'birthDate': self.birth_date,
            'deathDate': self.death_date,
            'gender': self.gender,
            'photoUrl': self.photo_url,
            'ownerId': self.owner_id,
            'createdAt': to_rfc3339(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Create a Person from an API dictionary.

        Args:
            data: Dictionary with camelCase keys; 'userId' is accepted for 'ownerId'

        Returns:
            Person instance
        """
        owner_id = data.get('ownerId', data.get('userId'))
        return cls(
            id=data.get('id'),
            first_name=data.get('firstName'),
            last_name=data.get('lastName'),
            birth_surname=data.get('birthSurname'),
            nickname=data.get('nickname'),
            birth_date=data.get('birthDate'),
            death_date=data.get('deathDate'),
            gender=data.get('gender'),
            photo_url=data.get('photoUrl'),
            owner_id=owner_id,
            created_at=parse_timestamp(data.get('createdAt')),
        )


def _year_of(date_str: Optional[str]) -> Optional[int]:
    if not date_str:
        return None
    head = date_str.strip().split('-')[0]
    if len(head) == 4 and head.isdigit():
        return int(head)
    return None


def to_rfc3339(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as RFC 3339 UTC ('YYYY-MM-DDTHH:MM:SSZ')."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None, microsecond=0).isoformat() + 'Z'


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored or API timestamp into an aware UTC datetime.

    Accepts datetimes, RFC 3339 strings and SQLite CURRENT_TIMESTAMP
    strings ('YYYY-MM-DD HH:MM:SS').
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utcnow() -> datetime:
    """Current time in UTC, truncated to seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)
