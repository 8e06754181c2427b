"""
Mapping between boundary kinship verbs and stored kinship values.

The API speaks in verbs ('mother', 'father', 'spouse'); storage keeps a
kinship type plus an optional parent role. This module holds the one table
that translates in both directions.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..core.relationship import Kinship, KinshipType, ParentOf, ParentRole, Spouse


VERB_TO_KINSHIP: Dict[str, Kinship] = {
    'mother': ParentOf(ParentRole.MOTHER),
    'father': ParentOf(ParentRole.FATHER),
    'spouse': Spouse(),
}

KINSHIP_TO_VERB: Dict[Kinship, str] = {kinship: verb for verb, kinship in VERB_TO_KINSHIP.items()}

VALID_VERBS = frozenset(VERB_TO_KINSHIP)


@dataclass(frozen=True, slots=True)
class NormalizedRelationship:
    """A relationship request in canonical stored form."""
    endpoint1: int
    endpoint2: int
    kinship: Kinship

    @property
    def kinship_type(self) -> KinshipType:
        return self.kinship.kinship_type

    @property
    def role(self) -> Optional[ParentRole]:
        return self.kinship.role

    @property
    def child_id(self) -> Optional[int]:
        return self.endpoint2 if isinstance(self.kinship, ParentOf) else None


def is_valid_verb(verb) -> bool:
    """Check whether verb names a supported kinship."""
    return isinstance(verb, str) and verb in VALID_VERBS


def kinship_from_verb(verb: str) -> Kinship:
    """Translate a boundary verb into its kinship value.

    Raises:
        ValueError: if verb is not a supported kinship verb
    """
    try:
        return VERB_TO_KINSHIP[verb]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown kinship verb: {verb!r}") from None


def verb_for_kinship(kinship: Kinship) -> str:
    """Translate a kinship value back into its boundary verb."""
    return KINSHIP_TO_VERB[kinship]


def normalize(endpoint1: int, endpoint2: int, verb: str) -> NormalizedRelationship:
    """Convert a (endpoint1, endpoint2, verb) request to canonical form.

    'mother'/'father' become ParentOf(role) with endpoint1 as the parent and
    endpoint2 as the child; 'spouse' becomes Spouse(). Endpoints are kept
    in the order given.
    """
    return NormalizedRelationship(endpoint1, endpoint2, kinship_from_verb(verb))
