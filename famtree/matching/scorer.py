"""
Match scoring engine for duplicate person detection.

Each pair of persons earns points for matching names, birth and death dates
and shared parents. The points are summed into an integer confidence capped
at 100. Conflicting genders halve the score.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from ..config import MatchingConfig
from ..core.person import Person
from ..core.relationship import KinshipType, Relationship

# (role, parent_id) pairs for one child
ParentSet = FrozenSet[Tuple[str, int]]

NO_GENDER = {'', 'unspecified'}


@dataclass
class MatchResult:
    """Results of matching two person records."""

    # Overall confidence (0-100)
    confidence: int = 0

    # Fields that contributed points, in scoring order
    matching_fields: List[str] = field(default_factory=list)

    # Detailed breakdown
    details: Dict[str, Any] = field(default_factory=dict)

    # Flags
    is_exact_name_match: bool = False
    has_conflicting_info: bool = False

    def __str__(self) -> str:
        """Human-readable description."""
        fields_text = ', '.join(self.matching_fields) or 'none'
        return f"Match Score: {self.confidence}% (matching: {fields_text})"


@dataclass(slots=True)
class PersonProfile:
    """Normalized comparison view of a person, built once per scan."""
    person: Person
    full_name: str
    name_variants: Tuple[str, ...]
    birth_date: str
    death_date: str
    gender: str
    parents: ParentSet


def _clean(value: Optional[str]) -> str:
    """Lowercase and collapse whitespace."""
    if not value:
        return ''
    return ' '.join(value.lower().split())


def _join(*parts: Optional[str]) -> str:
    return ' '.join(p for p in (_clean(part) for part in parts) if p)


def build_parent_index(relationships: Iterable[Relationship]) -> Dict[int, ParentSet]:
    """Map each child id to the set of (role, parent_id) pairs it has."""
    index: Dict[int, set] = {}
    for rel in relationships:
        if rel.kinship_type is KinshipType.PARENT_OF:
            index.setdefault(rel.person2_id, set()).add((rel.role.value, rel.person1_id))
    return {child_id: frozenset(parents) for child_id, parents in index.items()}


class MatchScorer:
    """
    Calculates match scores between person records.

    Scoring (default points, see MatchingConfig):
    - Exact first + last name: 50
    - Near-miss name (Levenshtein similarity >= 0.8): up to 45
    - Identical birth date: 30
    - Compatible partial birth date: 15
    - Identical death date: 10
    - Shared parent in the same role: 20
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()

    def build_profile(self, person: Person, parents: Optional[ParentSet] = None) -> PersonProfile:
        """Precompute the normalized values compared for a person."""
        full_name = _join(person.first_name, person.last_name)
        variants = [full_name]
        alternates = []
        if _clean(person.birth_surname):
            alternates.append(_join(person.first_name, person.birth_surname))
        if _clean(person.nickname):
            alternates.append(_join(person.nickname, person.last_name))
        for alternate in alternates:
            if alternate not in variants:
                variants.append(alternate)

        return PersonProfile(
            person=person,
            full_name=full_name,
            name_variants=tuple(v for v in variants if v),
            birth_date=(person.birth_date or '').strip(),
            death_date=(person.death_date or '').strip(),
            gender=_clean(person.gender),
            parents=parents or frozenset(),
        )

    def calculate_match_score(
        self,
        person1: Person,
        person2: Person,
        relationships: Optional[Iterable[Relationship]] = None
    ) -> MatchResult:
        """
        Calculate the match score between two persons.

        Args:
            person1: First person
            person2: Second person
            relationships: Optional relationships used for the shared-parent signal

        Returns:
            MatchResult with confidence and details
        """
        parents = build_parent_index(relationships) if relationships is not None else {}
        return self.score_profiles(
            self.build_profile(person1, parents.get(person1.id)),
            self.build_profile(person2, parents.get(person2.id)),
        )

    def score_profiles(self, profile1: PersonProfile, profile2: PersonProfile) -> MatchResult:
        """Score two prepared profiles. The result does not depend on argument order."""
        result = MatchResult()
        total = 0.0

        total += self._score_names(profile1, profile2, result)
        total += self._score_birth(profile1, profile2, result)
        total += self._score_death(profile1, profile2, result)
        total += self._score_parents(profile1, profile2, result)

        if self._genders_conflict(profile1, profile2):
            result.has_conflicting_info = True
            total *= self.config.gender_conflict_penalty
            result.details['penalty'] = (
                f"Gender conflict ({profile1.gender} vs {profile2.gender})"
            )

        # Half-up rounding, confidence never exceeds 100
        result.confidence = min(100, int(total + 0.5))
        return result

    def _score_names(self, p1: PersonProfile, p2: PersonProfile, result: MatchResult) -> float:
        if p1.full_name and p1.full_name == p2.full_name:
            result.is_exact_name_match = True
            result.matching_fields.append('name')
            result.details['name_match'] = {'name': p1.full_name, 'similarity': 1.0}
            return float(self.config.exact_name_points)

        best = 0.0
        best_pair = None
        for name1 in p1.name_variants:
            for name2 in p2.name_variants:
                # Sorted so the pair reads the same whichever side is first
                similarity = Levenshtein.normalized_similarity(*sorted((name1, name2)))
                if similarity > best:
                    best = similarity
                    best_pair = tuple(sorted((name1, name2)))

        if best_pair is None or best < self.config.near_miss_min_similarity:
            return 0.0

        result.matching_fields.append('name')
        result.details['name_match'] = {'names': list(best_pair), 'similarity': round(best, 3)}
        return best * self.config.near_miss_name_points

    def _score_birth(self, p1: PersonProfile, p2: PersonProfile, result: MatchResult) -> float:
        if not p1.birth_date or not p2.birth_date:
            return 0.0
        if p1.birth_date == p2.birth_date:
            result.matching_fields.append('birthDate')
            return float(self.config.birth_date_points)
        if dates_compatible(p1.birth_date, p2.birth_date):
            result.matching_fields.append('birthYear')
            return float(self.config.birth_year_points)
        return 0.0

    def _score_death(self, p1: PersonProfile, p2: PersonProfile, result: MatchResult) -> float:
        if p1.death_date and p1.death_date == p2.death_date:
            result.matching_fields.append('deathDate')
            return float(self.config.death_date_points)
        return 0.0

    def _score_parents(self, p1: PersonProfile, p2: PersonProfile, result: MatchResult) -> float:
        shared = p1.parents & p2.parents
        if not shared:
            return 0.0
        result.matching_fields.append('parents')
        result.details['shared_parents'] = [
            {'role': role, 'parentId': parent_id} for role, parent_id in sorted(shared)
        ]
        return float(self.config.shared_parent_points)

    @staticmethod
    def _genders_conflict(p1: PersonProfile, p2: PersonProfile) -> bool:
        if p1.gender in NO_GENDER or p2.gender in NO_GENDER:
            return False
        return p1.gender != p2.gender


def dates_compatible(date1: str, date2: str) -> bool:
    """
    Check whether two partial ISO dates can describe the same day.

    '1950' and '1950-03-15' are compatible, as are '1950-03' and
    '1950-03-15'. Dates of equal precision must be identical.
    """
    parts1 = date1.split('-')
    parts2 = date2.split('-')
    if len(parts1) == len(parts2):
        return parts1 == parts2
    shorter, longer = sorted((parts1, parts2), key=len)
    return longer[:len(shorter)] == shorter
