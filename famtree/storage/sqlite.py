"""SQLite-backed store with the graph invariants enforced by the schema."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from ..core.person import Person, parse_timestamp
from ..core.relationship import KinshipType, ParentRole, Relationship, kinship_from_storage
from ..errors import (
    DuplicateParentRole,
    DuplicateRelationship,
    OwnershipViolation,
    SelfRelationNotAllowed,
)
from .base import RelationshipStore

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS people (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    first_name TEXT,
    last_name TEXT,
    birth_surname TEXT,
    nickname TEXT,
    birth_date TEXT,
    death_date TEXT,
    gender TEXT,
    photo_url TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS ix_people_owner ON people(owner_id);

CREATE TABLE IF NOT EXISTS relationships (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    person1_id INTEGER NOT NULL REFERENCES people(id) ON DELETE CASCADE,
    person2_id INTEGER NOT NULL REFERENCES people(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    parent_role TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT no_self_relation CHECK (person1_id <> person2_id),
    CONSTRAINT kinship_role CHECK (
        (type = 'parentOf' AND parent_role IN ('mother', 'father'))
        OR (type = 'spouse' AND parent_role IS NULL)
    )
);

CREATE INDEX IF NOT EXISTS ix_relationships_person1 ON relationships(person1_id);
CREATE INDEX IF NOT EXISTS ix_relationships_person2 ON relationships(person2_id);

-- At most one mother and one father per child
CREATE UNIQUE INDEX IF NOT EXISTS ux_parent_role
    ON relationships(person2_id, parent_role) WHERE type = 'parentOf';

-- One parentOf edge per unordered pair, one spouse edge per unordered pair
CREATE UNIQUE INDEX IF NOT EXISTS ux_parent_pair
    ON relationships(min(person1_id, person2_id), max(person1_id, person2_id))
    WHERE type = 'parentOf';
CREATE UNIQUE INDEX IF NOT EXISTS ux_spouse_pair
    ON relationships(min(person1_id, person2_id), max(person1_id, person2_id))
    WHERE type = 'spouse';

-- Both endpoints must belong to the relationship's owner
CREATE TRIGGER IF NOT EXISTS trg_relationship_owner_insert
BEFORE INSERT ON relationships
WHEN (SELECT owner_id FROM people WHERE id = NEW.person1_id) IS NOT NEW.owner_id
  OR (SELECT owner_id FROM people WHERE id = NEW.person2_id) IS NOT NEW.owner_id
BEGIN
    SELECT RAISE(ABORT, 'ownership_violation');
END;

CREATE TRIGGER IF NOT EXISTS trg_relationship_owner_update
BEFORE UPDATE ON relationships
WHEN (SELECT owner_id FROM people WHERE id = NEW.person1_id) IS NOT NEW.owner_id
  OR (SELECT owner_id FROM people WHERE id = NEW.person2_id) IS NOT NEW.owner_id
BEGIN
    SELECT RAISE(ABORT, 'ownership_violation');
END;
"""


class SQLiteStore(RelationshipStore):
    """Store backed by a SQLite database file (or ':memory:').

    This class handles:
    - Schema creation with uniqueness, check and ownership constraints
    - Serialized write transactions (BEGIN IMMEDIATE)
    - Translation of constraint failures into famtree rejections
    """

    def __init__(self, db_path: str | Path = ':memory:'):
        """Open (and if needed create) the database.

        Args:
            db_path: Path to the database file, or ':memory:'
        """
        self.db_path = str(db_path)
        # Autocommit mode; transactions are opened explicitly
        self.conn = sqlite3.connect(self.db_path, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.conn.executescript(SCHEMA)
        self._depth = 0
        logger.debug(f"Opened famtree database at {self.db_path}")

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @contextmanager
    def transaction(self) -> Iterator['SQLiteStore']:
        """Run the enclosed reads and writes as one serialized transaction.

        BEGIN IMMEDIATE takes the write lock up front, so two writers cannot
        both validate against the same state. Nested calls join the
        outer transaction.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")
        finally:
            self._depth = 0

    # ========== Person Methods ==========

    def add_person(self, person: Person) -> Person:
        cursor = self.conn.execute(
            """
            INSERT INTO people (
                id, owner_id, first_name, last_name, birth_surname, nickname,
                birth_date, death_date, gender, photo_url, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
            """,
            (
                person.id, person.owner_id, person.first_name, person.last_name,
                person.birth_surname, person.nickname, person.birth_date,
                person.death_date, person.gender, person.photo_url,
                _to_sql_timestamp(person.created_at),
            )
        )
        return self.get_person(cursor.lastrowid)

    def get_person(self, person_id: int) -> Optional[Person]:
        row = self.conn.execute("SELECT * FROM people WHERE id = ?", (person_id,)).fetchone()
        return _row_to_person(row) if row else None

    def update_person(self, person: Person) -> Person:
        cursor = self.conn.execute(
            """
            UPDATE people
            SET first_name = ?, last_name = ?, birth_surname = ?, nickname = ?,
                birth_date = ?, death_date = ?, gender = ?, photo_url = ?
            WHERE id = ?
            """,
            (
                person.first_name, person.last_name, person.birth_surname,
                person.nickname, person.birth_date, person.death_date,
                person.gender, person.photo_url, person.id,
            )
        )
        if cursor.rowcount == 0:
            raise KeyError(f"Person {person.id} not found")
        return self.get_person(person.id)

    def delete_person(self, person_id: int) -> bool:
        # Relationships go with it through ON DELETE CASCADE
        cursor = self.conn.execute("DELETE FROM people WHERE id = ?", (person_id,))
        return cursor.rowcount > 0

    def list_people(self, owner_id: int) -> List[Person]:
        rows = self.conn.execute(
            "SELECT * FROM people WHERE owner_id = ? ORDER BY id", (owner_id,)
        ).fetchall()
        return [_row_to_person(row) for row in rows]

    # ========== Relationship Methods ==========

    def add_relationship(self, relationship: Relationship) -> Relationship:
        role = relationship.role
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO relationships (
                    id, owner_id, person1_id, person2_id, type, parent_role, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
                """,
                (
                    relationship.id, relationship.owner_id,
                    relationship.person1_id, relationship.person2_id,
                    relationship.kinship_type.value, role.value if role else None,
                    _to_sql_timestamp(relationship.created_at),
                )
            )
        except sqlite3.IntegrityError as e:
            rejection = self._translate_integrity_error(e, relationship, exclude_id=None)
            if rejection is None:
                raise
            raise rejection from e
        return self.get_relationship(cursor.lastrowid)

    def update_relationship(self, relationship: Relationship) -> Relationship:
        role = relationship.role
        try:
            cursor = self.conn.execute(
                """
                UPDATE relationships
                SET person1_id = ?, person2_id = ?, type = ?, parent_role = ?
                WHERE id = ?
                """,
                (
                    relationship.person1_id, relationship.person2_id,
                    relationship.kinship_type.value, role.value if role else None,
                    relationship.id,
                )
            )
        except sqlite3.IntegrityError as e:
            rejection = self._translate_integrity_error(e, relationship, exclude_id=relationship.id)
            if rejection is None:
                raise
            raise rejection from e
        if cursor.rowcount == 0:
            raise KeyError(f"Relationship {relationship.id} not found")
        return self.get_relationship(relationship.id)

    def get_relationship(self, relationship_id: int) -> Optional[Relationship]:
        row = self.conn.execute(
            "SELECT * FROM relationships WHERE id = ?", (relationship_id,)
        ).fetchone()
        return _row_to_relationship(row) if row else None

    def delete_relationship(self, relationship_id: int) -> bool:
        cursor = self.conn.execute("DELETE FROM relationships WHERE id = ?", (relationship_id,))
        return cursor.rowcount > 0

    def relationships_for_person(self, person_id: int) -> List[Relationship]:
        rows = self.conn.execute(
            "SELECT * FROM relationships WHERE person1_id = ? OR person2_id = ? ORDER BY id",
            (person_id, person_id)
        ).fetchall()
        return [_row_to_relationship(row) for row in rows]

    def list_relationships(self, owner_id: int) -> List[Relationship]:
        rows = self.conn.execute(
            "SELECT * FROM relationships WHERE owner_id = ? ORDER BY id", (owner_id,)
        ).fetchall()
        return [_row_to_relationship(row) for row in rows]

    # ========== Integrity Queries ==========

    def find_parent(
        self,
        child_id: int,
        role: ParentRole,
        exclude_id: Optional[int] = None
    ) -> Optional[Relationship]:
        row = self.conn.execute(
            """
            SELECT * FROM relationships
            WHERE person2_id = ? AND type = 'parentOf' AND parent_role = ?
              AND (? IS NULL OR id <> ?)
            ORDER BY id LIMIT 1
            """,
            (child_id, role.value, exclude_id, exclude_id)
        ).fetchone()
        return _row_to_relationship(row) if row else None

    def find_between(
        self,
        person1_id: int,
        person2_id: int,
        kinship_type: KinshipType,
        exclude_id: Optional[int] = None
    ) -> Optional[Relationship]:
        row = self.conn.execute(
            """
            SELECT * FROM relationships
            WHERE type = ?
              AND ((person1_id = ? AND person2_id = ?) OR (person1_id = ? AND person2_id = ?))
              AND (? IS NULL OR id <> ?)
            ORDER BY id LIMIT 1
            """,
            (kinship_type.value, person1_id, person2_id, person2_id, person1_id,
             exclude_id, exclude_id)
        ).fetchone()
        return _row_to_relationship(row) if row else None

    def _translate_integrity_error(
        self,
        error: sqlite3.IntegrityError,
        rel: Relationship,
        exclude_id: Optional[int]
    ) -> Optional[Exception]:
        """Map a constraint failure to the matching rejection, or None if there is none."""
        message = str(error)
        logger.debug(f"Constraint failure for {rel!r}: {message}")

        if 'ownership_violation' in message or 'FOREIGN KEY' in message:
            return OwnershipViolation()
        if 'no_self_relation' in message:
            return SelfRelationNotAllowed(rel.person1_id)
        if 'parent_role' in message and rel.role is not None:
            existing = self.find_parent(rel.person2_id, rel.role, exclude_id=exclude_id)
            return DuplicateParentRole(
                rel.role.value, rel.person2_id,
                existing.person1_id if existing else None
            )
        if 'pair' in message:
            existing = self.find_between(rel.person1_id, rel.person2_id, rel.kinship_type,
                                         exclude_id=exclude_id)
            return DuplicateRelationship(rel.person1_id, rel.person2_id,
                                         existing.id if existing else None)
        return None


def _to_sql_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%d %H:%M:%S')


def _row_to_person(row: sqlite3.Row) -> Person:
    return Person(
        id=row['id'],
        first_name=row['first_name'],
        last_name=row['last_name'],
        birth_surname=row['birth_surname'],
        nickname=row['nickname'],
        birth_date=row['birth_date'],
        death_date=row['death_date'],
        gender=row['gender'],
        photo_url=row['photo_url'],
        owner_id=row['owner_id'],
        created_at=parse_timestamp(row['created_at']),
    )


def _row_to_relationship(row: sqlite3.Row) -> Relationship:
    return Relationship(
        person1_id=row['person1_id'],
        person2_id=row['person2_id'],
        kinship=kinship_from_storage(row['type'], row['parent_role']),
        owner_id=row['owner_id'],
        id=row['id'],
        created_at=parse_timestamp(row['created_at']),
    )
