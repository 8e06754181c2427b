"""Tests for snapshot loading."""

import json

import pytest
from famtree.data.snapshot import RelationshipRecord, TreeSnapshot, load_snapshot
from famtree.errors import SnapshotError


@pytest.fixture
def snapshot_file(tmp_path):
    """A snapshot with two owners."""
    data = {
        'people': [
            {'id': 1, 'ownerId': 1, 'firstName': 'Mary', 'lastName': 'Smith',
             'createdAt': '2024-01-02T03:04:05Z'},
            {'id': 2, 'userId': 1, 'firstName': 'Ann', 'birthSurname': 'Jones'},
            {'id': 3, 'ownerId': 2, 'firstName': 'Zed'},
        ],
        'relationships': [
            {'id': 10, 'ownerId': 1, 'person1Id': 1, 'person2Id': 2, 'type': 'mother',
             'parentRole': 'mother'},
        ],
    }
    path = tmp_path / 'tree.json'
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


def test_load_snapshot(snapshot_file):
    """Test reading people and relationships."""
    snapshot = load_snapshot(snapshot_file)

    assert len(snapshot.people) == 3
    assert snapshot.owners() == [1, 2]
    assert snapshot.relationships[0].verb == 'mother'


def test_person_record_to_person(snapshot_file):
    """Test conversion to the core Person type."""
    people = load_snapshot(snapshot_file).people_for(1)

    assert [p.id for p in people] == [1, 2]
    assert people[1].owner_id == 1
    assert people[1].birth_surname == 'Jones'
    assert people[0].created_at.tzinfo is not None


def test_snake_case_keys_accepted():
    """Test that field names work as well as camelCase aliases."""
    snapshot = TreeSnapshot.model_validate({
        'people': [{'id': 1, 'owner_id': 4, 'first_name': 'Ann'}],
    })

    assert snapshot.people[0].first_name == 'Ann'
    assert snapshot.people[0].owner_id == 4


@pytest.mark.parametrize('type_,role,verb', [
    ('parentOf', 'father', 'father'),
    ('parentOf', None, None),
    ('spouse', None, 'spouse'),
    ('sibling', None, 'sibling'),
])
def test_relationship_record_verb(type_, role, verb):
    """Test the boundary verb of stored and boundary forms."""
    record = RelationshipRecord(owner_id=1, person1_id=1, person2_id=2, type=type_,
                                parent_role=role)

    assert record.verb == verb


def test_missing_file(tmp_path):
    """Test that an unreadable file is a SnapshotError."""
    with pytest.raises(SnapshotError):
        load_snapshot(tmp_path / 'missing.json')


def test_invalid_json(tmp_path):
    """Test that malformed JSON is a SnapshotError."""
    path = tmp_path / 'bad.json'
    path.write_text('{"people": [', encoding='utf-8')

    with pytest.raises(SnapshotError):
        load_snapshot(path)


def test_invalid_record(tmp_path):
    """Test that a record missing its owner is a SnapshotError."""
    path = tmp_path / 'bad.json'
    path.write_text(json.dumps({'people': [{'id': 1, 'firstName': 'Ann'}]}), encoding='utf-8')

    with pytest.raises(SnapshotError) as exc_info:
        load_snapshot(path)

    assert 'Invalid snapshot' in exc_info.value.message
