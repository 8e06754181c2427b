"""Tests for the FamilyTreeService entry points."""

import pytest
from famtree.config import FamTreeConfig, MatchingConfig
from famtree.core.person import Person
from famtree.core.relationship import ParentRole
from famtree.data.snapshot import TreeSnapshot
from famtree.errors import (
    DuplicateParentRole,
    DuplicateRelationship,
    InvalidParameter,
    OwnershipViolation,
)
from famtree.service import FamilyTreeService
from famtree.storage import InMemoryStore, SQLiteStore

OWNER = 1


@pytest.fixture(params=['memory', 'sqlite'])
def service(request, tmp_path):
    """Service over each store with a small family for OWNER."""
    store = InMemoryStore() if request.param == 'memory' else SQLiteStore(tmp_path / 'svc.db')
    people = [
        Person(id=1, first_name='Mary', last_name='Smith', gender='female', owner_id=OWNER),
        Person(id=2, first_name='John', last_name='Smith', gender='male', owner_id=OWNER),
        Person(id=3, first_name='Ann', last_name='Smith', birth_date='1980-04-02', owner_id=OWNER),
        Person(id=4, first_name='Ann', last_name='Smith', birth_date='1980-04-02', owner_id=OWNER),
        Person(id=5, first_name='Other', last_name='Person', owner_id=OWNER),
        Person(id=9, first_name='Ann', last_name='Smith', birth_date='1980-04-02', owner_id=2),
    ]
    for person in people:
        store.add_person(person)
    yield FamilyTreeService(store)
    if isinstance(store, SQLiteStore):
        store.close()


class TestRelationshipWrites:
    """Create, update and delete through the service."""

    def test_create_relationship(self, service):
        """Test that a valid request is stored."""
        rel = service.create_relationship(OWNER, 1, 3, 'mother')

        assert rel.id is not None
        assert rel.role is ParentRole.MOTHER
        assert service.store.get_relationship(rel.id) == rel

    def test_create_duplicate_mother(self, service):
        """Test the second-mother scenario end to end."""
        service.create_relationship(OWNER, 1, 3, 'mother')

        with pytest.raises(DuplicateParentRole) as exc_info:
            service.create_relationship(OWNER, 5, 3, 'mother')

        assert "already has a mother" in exc_info.value.message

    def test_create_rejected_writes_nothing(self, service):
        """Test that a rejected request leaves the store unchanged."""
        with pytest.raises(OwnershipViolation):
            service.create_relationship(OWNER, 1, 9, 'spouse')

        assert service.store.list_relationships(OWNER) == []

    def test_update_relationship_keeps_identity(self, service):
        """Test that an update keeps the id and creation time."""
        rel = service.create_relationship(OWNER, 1, 3, 'mother')

        updated = service.update_relationship(OWNER, rel.id, 1, 4, 'mother')

        assert updated.id == rel.id
        assert updated.created_at == rel.created_at
        assert updated.person2_id == 4

    def test_update_same_values_passes(self, service):
        """Test that re-saving a relationship does not collide with itself."""
        rel = service.create_relationship(OWNER, 1, 2, 'spouse')

        updated = service.update_relationship(OWNER, rel.id, 2, 1, 'spouse')

        assert updated.endpoints == (2, 1)

    def test_update_cannot_create_second_mother(self, service):
        """Test that updates are checked against other relationships."""
        service.create_relationship(OWNER, 1, 3, 'mother')
        other = service.create_relationship(OWNER, 5, 4, 'mother')

        with pytest.raises(DuplicateParentRole):
            service.update_relationship(OWNER, other.id, 5, 3, 'mother')

    def test_update_unknown_or_foreign_relationship(self, service):
        """Test that only the owner's relationships can be updated."""
        rel = service.create_relationship(OWNER, 1, 2, 'spouse')

        with pytest.raises(OwnershipViolation):
            service.update_relationship(2, rel.id, 1, 2, 'spouse')
        with pytest.raises(OwnershipViolation):
            service.update_relationship(OWNER, 404, 1, 2, 'spouse')

    def test_reverse_spouse_rejected(self, service):
        """Test the symmetric spouse policy through the service."""
        service.create_relationship(OWNER, 1, 2, 'spouse')

        with pytest.raises(DuplicateRelationship):
            service.create_relationship(OWNER, 2, 1, 'spouse')

    def test_delete_relationship(self, service):
        """Test deleting a relationship by its owner only."""
        rel = service.create_relationship(OWNER, 1, 2, 'spouse')

        with pytest.raises(OwnershipViolation):
            service.delete_relationship(2, rel.id)

        service.delete_relationship(OWNER, rel.id)
        assert service.store.get_relationship(rel.id) is None


class TestDuplicatesAndMerge:
    """Scans and previews through the service."""

    def test_list_duplicates_is_owner_scoped(self, service):
        """Test that another owner's identical record is never paired."""
        results = service.list_duplicates(OWNER)

        assert [(c.person_a.id, c.person_b.id) for c in results] == [(3, 4)]
        assert results[0].confidence == 80

    def test_list_duplicates_uses_shared_parents(self, service):
        """Test that stored relationships feed the shared-parent signal."""
        service.create_relationship(OWNER, 1, 3, 'mother')
        service.create_relationship(OWNER, 1, 4, 'mother')

        results = service.list_duplicates(OWNER)

        assert results[0].confidence == 100
        assert 'parents' in results[0].matching_fields

    def test_list_duplicates_for_person(self, service):
        """Test the targeted scan and its ownership check."""
        results = service.list_duplicates_for_person(OWNER, 4)

        assert [c.person_b.id for c in results] == [3]
        with pytest.raises(OwnershipViolation):
            service.list_duplicates_for_person(OWNER, 9)

    def test_invalid_scan_parameters(self, service):
        """Test that scan parameters are validated."""
        with pytest.raises(InvalidParameter):
            service.list_duplicates(OWNER, threshold=150)
        with pytest.raises(InvalidParameter):
            service.list_duplicates(OWNER, limit=0)

    def test_config_threshold_is_default(self, service):
        """Test that the configured default threshold applies."""
        strict = FamilyTreeService(service.store,
                                   FamTreeConfig(matching=MatchingConfig(default_threshold=90)))

        assert strict.list_duplicates(OWNER) == []

    def test_preview_merge(self, service):
        """Test a merge preview built from stored relationships."""
        service.create_relationship(OWNER, 1, 3, 'mother')
        service.create_relationship(OWNER, 2, 4, 'father')

        preview = service.preview_merge(OWNER, 3, 4)

        assert preview.can_merge
        transferred = preview.relationships_to_transfer
        assert [(t.transferred.person1_id, t.transferred.person2_id) for t in transferred] == [(1, 4)]

    def test_preview_merge_protected(self, service):
        """Test that a protected profile person blocks the merge."""
        preview = service.preview_merge(OWNER, 3, 4, protected_person_ids=[4])

        assert not preview.can_merge

    def test_preview_merge_foreign_person(self, service):
        """Test that previews are owner-scoped."""
        with pytest.raises(OwnershipViolation):
            service.preview_merge(OWNER, 3, 9)


def test_import_snapshot_reports_rejections():
    """Test replaying a snapshot with one invalid relationship."""
    snapshot = TreeSnapshot.model_validate({
        'people': [
            {'id': 1, 'ownerId': 1, 'firstName': 'Mary'},
            {'id': 2, 'ownerId': 1, 'firstName': 'Jane'},
            {'id': 3, 'userId': 1, 'firstName': 'Ann'},
        ],
        'relationships': [
            {'ownerId': 1, 'person1Id': 1, 'person2Id': 3, 'type': 'mother'},
            {'ownerId': 1, 'person1Id': 2, 'person2Id': 3, 'type': 'parentOf',
             'parentRole': 'mother'},
            {'ownerId': 1, 'person1Id': 1, 'person2Id': 2, 'type': 'sibling'},
        ],
    })
    service = FamilyTreeService(InMemoryStore())

    report = service.import_snapshot(snapshot)

    assert report.people_added == 3
    assert report.relationships_added == 1
    assert [error.kind for _, error in report.rejected] == [
        'duplicate_parent_role', 'invalid_kinship_type'
    ]
