"""Stores for persons and relationships."""

from .base import RelationshipStore
from .memory import InMemoryStore
from .sqlite import SQLiteStore

__all__ = ['RelationshipStore', 'InMemoryStore', 'SQLiteStore']
