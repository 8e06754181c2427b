"""Configuration for duplicate scoring and storage."""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Any, Optional


@dataclass
class MatchingConfig:
    """Scoring weights and defaults for duplicate detection.

    Points are summed per pair and capped at 100. A near-miss name can never
    earn as much as an exact name match, so an approximate pair never
    outranks an otherwise identical exact pair.
    """

    default_threshold: int = 70

    # Name contributions
    exact_name_points: int = 50
    near_miss_name_points: int = 45
    near_miss_min_similarity: float = 0.8

    # Date contributions
    birth_date_points: int = 30
    birth_year_points: int = 15
    death_date_points: int = 10

    # Family contribution (only when relationships are supplied)
    shared_parent_points: int = 20

    # Multiplier applied when genders conflict
    gender_conflict_penalty: float = 0.5

    def __post_init__(self):
        """Reject weight combinations that break scoring guarantees."""
        if not 0 <= self.default_threshold <= 100:
            raise ValueError(f"default_threshold must be 0-100, got {self.default_threshold}")
        if self.near_miss_name_points >= self.exact_name_points:
            raise ValueError("near_miss_name_points must be lower than exact_name_points")
        if not 0.0 < self.near_miss_min_similarity <= 1.0:
            raise ValueError("near_miss_min_similarity must be in (0, 1]")
        if self.birth_year_points > self.birth_date_points:
            raise ValueError("birth_year_points must not exceed birth_date_points")
        if not 0.0 <= self.gender_conflict_penalty <= 1.0:
            raise ValueError("gender_conflict_penalty must be in [0, 1]")
        for name in ('exact_name_points', 'near_miss_name_points', 'birth_date_points',
                     'birth_year_points', 'death_date_points', 'shared_parent_points'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass
class FamTreeConfig:
    """Top-level configuration."""

    matching: MatchingConfig = field(default_factory=MatchingConfig)

    # SQLite database used by the import command
    database_path: Optional[Path] = None

    log_level: str = "WARNING"

    def __post_init__(self):
        if self.log_level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log_level: {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FamTreeConfig':
        """Build a configuration from a plain dictionary.

        Unknown keys are ignored so older config files keep loading.
        """
        matching_keys = {f.name for f in fields(MatchingConfig)}
        matching = MatchingConfig(**{
            k: v for k, v in (data.get('matching') or {}).items() if k in matching_keys
        })
        database_path = data.get('database_path')
        return cls(
            matching=matching,
            database_path=Path(database_path) if database_path else None,
            log_level=str(data.get('log_level', 'WARNING')).upper(),
        )


def load_config(path: str | Path) -> FamTreeConfig:
    """Load configuration from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        return FamTreeConfig.from_dict(json.load(f))


# Global configuration instance
default_config = FamTreeConfig()
