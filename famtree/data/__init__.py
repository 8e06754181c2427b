"""Snapshot import models."""

from .snapshot import PersonRecord, RelationshipRecord, TreeSnapshot, load_snapshot

__all__ = ['PersonRecord', 'RelationshipRecord', 'TreeSnapshot', 'load_snapshot']
