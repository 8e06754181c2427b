"""
Duplicate person scans over one owner's records.

Both scans are exhaustive pairwise comparisons; every person is turned
into a scoring profile once per scan.
"""

import logging
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..config import MatchingConfig
from ..core.person import Person
from ..core.relationship import Relationship
from ..errors import InvalidParameter
from .scorer import MatchScorer, PersonProfile, build_parent_index

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DuplicateCandidate:
    """A pair of persons that may be the same individual."""
    person_a: Person
    person_b: Person
    confidence: int
    matching_fields: List[str]
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_high_confidence(self) -> bool:
        """True if confidence >= 85 (likely duplicate)."""
        return self.confidence >= 85

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API dictionary."""
        return {
            'person1': self.person_a.to_dict(),
            'person2': self.person_b.to_dict(),
            'confidence': self.confidence,
            'matchingFields': list(self.matching_fields),
        }


def validate_scan_parameters(threshold, limit) -> None:
    """
    Check scan parameters before any comparison work.

    Raises:
        InvalidParameter: threshold is not a number in [0, 100], or limit
            is neither None nor a positive integer
    """
    if isinstance(threshold, bool) or not isinstance(threshold, Real) or not 0 <= threshold <= 100:
        raise InvalidParameter('threshold', threshold, '0-100')
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        raise InvalidParameter('limit', limit, 'positive integer')


class PersonMatcher:
    """
    Finds likely duplicate persons.

    Candidates are sorted by confidence, highest first; ties keep the
    order in which pairs were discovered.
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        """
        Initialize the matcher.

        Args:
            config: Scoring weights and default threshold
        """
        self.config = config or MatchingConfig()
        self.scorer = MatchScorer(self.config)

    def find_duplicates(
        self,
        people: Sequence[Person],
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        relationships: Optional[Iterable[Relationship]] = None
    ) -> List[DuplicateCandidate]:
        """
        Find every pair of persons scoring at or above threshold.

        Args:
            people: Persons to compare, all from one owner
            threshold: Minimum confidence (0-100), config default if None
            limit: Maximum number of candidates to return
            relationships: Optional relationships for the shared-parent signal

        Returns:
            List of candidates sorted by confidence (highest first)
        """
        threshold = self.config.default_threshold if threshold is None else threshold
        validate_scan_parameters(threshold, limit)

        profiles = self._build_profiles(people, relationships)
        matches = []

        # Compare each person with all others
        for i, profile1 in enumerate(profiles):
            for profile2 in profiles[i + 1:]:
                if profile1.person.id is not None and profile1.person.id == profile2.person.id:
                    continue
                candidate = self._compare(profile1, profile2, threshold)
                if candidate is not None:
                    matches.append(candidate)

        logger.debug(f"Scanned {len(profiles)} people, {len(matches)} candidates >= {threshold}")
        return _sorted(matches, limit)

    def find_duplicates_for_person(
        self,
        target: Person,
        people: Sequence[Person],
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        relationships: Optional[Iterable[Relationship]] = None
    ) -> List[DuplicateCandidate]:
        """
        Find persons that may duplicate target.

        Args:
            target: The person to find duplicates for
            people: Persons to compare against; target itself is skipped
            threshold: Minimum confidence (0-100), config default if None
            limit: Maximum number of candidates to return
            relationships: Optional relationships for the shared-parent signal

        Returns:
            List of candidates with target as person_a, sorted by confidence
        """
        threshold = self.config.default_threshold if threshold is None else threshold
        validate_scan_parameters(threshold, limit)

        parents = build_parent_index(relationships) if relationships is not None else {}
        target_profile = self.scorer.build_profile(target, parents.get(target.id))
        matches = []

        for other in people:
            if other is target or (target.id is not None and other.id == target.id):
                continue
            other_profile = self.scorer.build_profile(other, parents.get(other.id))
            candidate = self._compare(target_profile, other_profile, threshold)
            if candidate is not None:
                matches.append(candidate)

        return _sorted(matches, limit)

    def _build_profiles(
        self,
        people: Sequence[Person],
        relationships: Optional[Iterable[Relationship]]
    ) -> List[PersonProfile]:
        parents = build_parent_index(relationships) if relationships is not None else {}
        return [self.scorer.build_profile(p, parents.get(p.id)) for p in people]

    def _compare(
        self,
        profile1: PersonProfile,
        profile2: PersonProfile,
        threshold: float
    ) -> Optional[DuplicateCandidate]:
        result = self.scorer.score_profiles(profile1, profile2)
        if result.confidence < threshold:
            return None
        return DuplicateCandidate(
            person_a=profile1.person,
            person_b=profile2.person,
            confidence=result.confidence,
            matching_fields=result.matching_fields,
            details=result.details,
        )


def _sorted(matches: List[DuplicateCandidate], limit: Optional[int]) -> List[DuplicateCandidate]:
    # list.sort is stable, so equal scores keep discovery order
    matches.sort(key=lambda m: m.confidence, reverse=True)
    if limit is not None:
        matches = matches[:limit]
    return matches


def find_all_duplicates(
    people: Sequence[Person],
    threshold: float = 70,
    limit: Optional[int] = None,
    relationships: Optional[Iterable[Relationship]] = None
) -> List[DuplicateCandidate]:
    """Find all duplicate pairs among people with the default weights."""
    return PersonMatcher().find_duplicates(people, threshold, limit, relationships)


def find_duplicates_for_person(
    target: Person,
    people: Sequence[Person],
    threshold: float = 70,
    limit: Optional[int] = None,
    relationships: Optional[Iterable[Relationship]] = None
) -> List[DuplicateCandidate]:
    """Find duplicates of target among people with the default weights."""
    return PersonMatcher().find_duplicates_for_person(target, people, threshold, limit,
                                                      relationships)
