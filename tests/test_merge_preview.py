"""
Tests for merge previews and field conflict resolution.
"""

from dataclasses import replace

import pytest
from famtree.core.person import Person
from famtree.core.relationship import ParentOf, ParentRole, Relationship, Spouse
from famtree.errors import InvalidParameter
from famtree.merge import ConflictResolver, MergeDecision, preview_merge

OWNER = 1


def person(pid, **kwargs):
    return Person(id=pid, owner_id=OWNER, **kwargs)


def mother(parent, child, rid):
    return Relationship(parent, child, ParentOf(ParentRole.MOTHER), owner_id=OWNER, id=rid)


def father(parent, child, rid):
    return Relationship(parent, child, ParentOf(ParentRole.FATHER), owner_id=OWNER, id=rid)


def spouse(a, b, rid):
    return Relationship(a, b, Spouse(), owner_id=OWNER, id=rid)


class TestConflictResolver:
    """Tests for ConflictResolver class."""

    def test_both_empty(self):
        """Test that two missing values stay missing."""
        resolution = ConflictResolver().resolve_field('nickname', None, '')

        assert resolution.chosen == ''
        assert resolution.decision is MergeDecision.KEEP_TARGET
        assert not resolution.conflict

    def test_target_empty_uses_source(self):
        """Test that the source fills a gap in the target."""
        resolution = ConflictResolver().resolve_field('birth_date', '1950-01-15', None)

        assert resolution.chosen == '1950-01-15'
        assert resolution.decision is MergeDecision.USE_SOURCE
        assert "empty" in resolution.reason.lower()

    def test_source_empty_keeps_target(self):
        """Test that an empty source never replaces the target."""
        resolution = ConflictResolver().resolve_field('last_name', '  ', 'Smith')

        assert resolution.chosen == 'Smith'
        assert resolution.decision is MergeDecision.KEEP_TARGET

    def test_equal_values(self):
        """Test that equal values are not a conflict."""
        resolution = ConflictResolver().resolve_field('first_name', 'Jane', 'Jane')

        assert resolution.chosen == 'Jane'
        assert not resolution.conflict

    def test_different_values_conflict(self):
        """Test that two different values need review and keep the target."""
        resolution = ConflictResolver().resolve_field('first_name', 'Janet', 'Jane')

        assert resolution.chosen == 'Jane'
        assert resolution.decision is MergeDecision.MANUAL_REVIEW
        assert resolution.conflict

    def test_unspecified_gender_counts_as_empty(self):
        """Test that gender 'unspecified' does not conflict."""
        resolution = ConflictResolver().resolve_field('gender', 'female', 'unspecified')

        assert resolution.chosen == 'female'
        assert resolution.decision is MergeDecision.USE_SOURCE

    def test_both_unspecified_keeps_target_gender(self):
        """Test that two 'unspecified' genders keep the stored target value."""
        resolution = ConflictResolver().resolve_field('gender', 'unspecified', 'unspecified')

        assert resolution.chosen == 'unspecified'
        assert resolution.decision is MergeDecision.KEEP_TARGET

    def test_chosen_value_is_not_trimmed(self):
        """Test that the target value is kept exactly as stored."""
        resolution = ConflictResolver().resolve_field('last_name', 'Smith', ' Smith ')

        assert resolution.chosen == ' Smith '
        assert not resolution.conflict


class TestPreviewMerge:
    """Tests for preview_merge."""

    def test_unspecified_genders_survive_merge(self):
        """Test that the merged record keeps gender 'unspecified'."""
        source = person(1, first_name='Jane', gender='unspecified')
        target = person(2, first_name='Jane', gender='unspecified')

        preview = preview_merge(source, target, [], [])

        assert preview.merged_record.gender == 'unspecified'
        assert preview.can_merge

    def test_jane_smith_scenario(self):
        """Test that a missing source last name keeps the target's without conflict."""
        source = person(1, first_name='Jane')
        target = person(2, first_name='Jane', last_name='Smith')

        preview = preview_merge(source, target, [], [])

        assert preview.merged_record.last_name == 'Smith'
        assert 'last_name' not in preview.conflict_fields
        assert preview.can_merge

    def test_merged_record_keeps_target_identity(self):
        """Test that the merged record is the target's record."""
        source = person(1, first_name='Jane', birth_date='1950-01-15')
        target = person(2, first_name='Jane')

        preview = preview_merge(source, target, [], [])

        assert preview.merged_record.id == 2
        assert preview.merged_record.owner_id == OWNER
        assert preview.merged_record.birth_date == '1950-01-15'

    def test_conflicting_fields(self):
        """Test that differing values are listed and the target value is proposed."""
        source = person(1, first_name='Janet', last_name='Smith', photo_url='/a.jpg')
        target = person(2, first_name='Jane', last_name='Smith', photo_url='/b.jpg')

        preview = preview_merge(source, target, [], [])

        assert preview.conflict_fields == ['first_name', 'photo_url']
        assert preview.merged_record.first_name == 'Jane'
        comparison = preview.per_field_comparison['first_name']
        assert comparison.source == 'Janet'
        assert comparison.target == 'Jane'
        assert comparison.conflict

    def test_merge_into_self_is_an_error(self):
        """Test that merging a record into itself is blocked."""
        jane = person(1, first_name='Jane')

        preview = preview_merge(jane, jane, [], [])

        assert not preview.can_merge
        assert any('themselves' in e for e in preview.validation_errors)

    def test_different_owners_is_an_error(self):
        """Test that records of two owners cannot be merged."""
        source = Person(id=1, first_name='Jane', owner_id=1)
        target = Person(id=2, first_name='Jane', owner_id=2)

        preview = preview_merge(source, target, [], [])

        assert not preview.can_merge
        assert any('owners' in e for e in preview.validation_errors)

    def test_gender_mismatch_is_an_error(self):
        """Test that male and female records cannot be merged."""
        preview = preview_merge(person(1, gender='male'), person(2, gender='female'), [], [])

        assert "Gender mismatch: Cannot merge male into female" in preview.validation_errors

    def test_unspecified_gender_is_allowed(self):
        """Test that an unspecified gender never blocks a merge."""
        preview = preview_merge(person(1, gender='unspecified'), person(2, gender='female'), [], [])

        assert preview.can_merge

    def test_protected_person(self):
        """Test that the owner's profile person is never merged."""
        source, target = person(1), person(2)

        assert not preview_merge(source, target, [], [], protected_person_ids=[1]).can_merge
        assert not preview_merge(source, target, [], [], protected_person_ids={2}).can_merge
        assert preview_merge(source, target, [], [], protected_person_ids=[3]).can_merge

    def test_relationships_are_retargeted(self):
        """Test that source relationships are re-expressed on the target."""
        source, target = person(1), person(2)
        source_rels = [mother(10, 1, rid=100), spouse(1, 11, rid=101), father(1, 12, rid=102)]

        preview = preview_merge(source, target, source_rels, [])

        transferred = [t.transferred for t in preview.relationships_to_transfer]
        assert [(r.person1_id, r.person2_id) for r in transferred] == [(10, 2), (2, 11), (2, 12)]
        assert all(t.collides_with is None for t in preview.relationships_to_transfer)
        assert any('3 relationship' in w for w in preview.validation_warnings)
        assert preview.can_merge

    def test_inputs_are_not_mutated(self):
        """Test that the preview leaves the input relationships alone."""
        source_rels = [mother(10, 1, rid=100)]
        before = [replace(r) for r in source_rels]

        preview_merge(person(1), person(2), source_rels, [])

        assert source_rels == before
        assert source_rels[0].person2_id == 1

    def test_direct_relationship_is_dropped(self):
        """Test that a source-target relationship is not transferred."""
        source, target = person(1), person(2)
        direct = spouse(1, 2, rid=100)

        preview = preview_merge(source, target, [direct], [direct])

        assert preview.relationships_to_transfer == []
        assert any('removed' in w for w in preview.validation_warnings)

    def test_shared_spouse_collides(self):
        """Test that a spouse both records already have is flagged."""
        source, target = person(1), person(2)
        source_spouse = spouse(1, 11, rid=100)
        target_spouse = spouse(11, 2, rid=200)
        unrelated = spouse(2, 12, rid=201)

        preview = preview_merge(source, target, [source_spouse], [target_spouse, unrelated])

        assert preview.relationships_to_transfer[0].collides_with == 200
        assert preview.existing_relationships_on_target == [target_spouse]
        assert any('duplicates relationship 200' in w for w in preview.validation_warnings)

    def test_different_mothers(self):
        """Test that competing parents in the same role are reported."""
        source, target = person(1), person(2)

        preview = preview_merge(source, target, [mother(10, 1, rid=100)], [mother(11, 2, rid=200)])

        assert preview.relationship_conflicts == ['mother']
        assert "Both people have different mothers" in preview.validation_warnings
        assert preview.relationships_to_transfer[0].collides_with == 200
        assert [r.id for r in preview.existing_relationships_on_target] == [200]

    def test_same_mother_is_a_duplicate_not_a_conflict(self):
        """Test that a shared mother collides but is no role conflict."""
        source, target = person(1), person(2)

        preview = preview_merge(source, target, [mother(10, 1, rid=100)], [mother(10, 2, rid=200)])

        assert preview.relationship_conflicts == []
        assert preview.relationships_to_transfer[0].collides_with == 200

    def test_merged_with_overrides(self):
        """Test applying manual choices to conflicting fields."""
        source = person(1, first_name='Janet', last_name='Smith')
        target = person(2, first_name='Jane', last_name='Smith')
        preview = preview_merge(source, target, [], [])

        merged = preview.merged_with_overrides({'first_name': 'source'})

        assert merged.first_name == 'Janet'
        assert merged.id == 2
        assert preview.merged_record.first_name == 'Jane'

    @pytest.mark.parametrize('overrides', [{'shoe_size': 'source'}, {'first_name': 'both'}])
    def test_merged_with_bad_overrides(self, overrides):
        """Test that unknown fields or choices are rejected."""
        preview = preview_merge(person(1), person(2), [], [])

        with pytest.raises(InvalidParameter):
            preview.merged_with_overrides(overrides)

    def test_to_dict(self):
        """Test the API form of a preview."""
        source = person(1, first_name='Janet', birth_surname='Doe')
        target = person(2, first_name='Jane')

        data = preview_merge(source, target, [mother(10, 1, rid=100)], []).to_dict()

        assert data['canMerge'] is True
        assert data['conflictFields'] == ['firstName']
        assert data['mergedRecord']['birthSurname'] == 'Doe'
        assert data['perFieldComparison']['birthSurname']['merged'] == 'Doe'
        assert data['relationshipsToTransfer'][0]['transferred']['person2Id'] == 2
        assert data['relationshipsToTransfer'][0]['transferred']['type'] == 'mother'
        assert data['existingRelationshipsOnTarget'] == []
