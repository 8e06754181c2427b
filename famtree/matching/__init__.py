"""Duplicate person detection."""

from .scorer import MatchScorer, MatchResult, PersonProfile, build_parent_index, dates_compatible
from .matcher import (
    DuplicateCandidate,
    PersonMatcher,
    find_all_duplicates,
    find_duplicates_for_person,
    validate_scan_parameters,
)

__all__ = [
    # Scoring
    'MatchScorer',
    'MatchResult',
    'PersonProfile',
    'build_parent_index',
    'dates_compatible',
    # Scans
    'DuplicateCandidate',
    'PersonMatcher',
    'find_all_duplicates',
    'find_duplicates_for_person',
    'validate_scan_parameters',
]
