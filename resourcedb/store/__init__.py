"""
Resource store abstraction for ResourceDB.

This module provides a pluggable store interface supporting:
- In-memory (reference implementation)
- SQLite (same contract carried by a database table)

Invariants:
    - Ids are assigned by the store, start at 1 and are never reused
    - Create, update and delete are atomic with respect to readers
    - Every operation honours its deadline before touching state

How to change safely:
    - New backends must implement the ResourceStore protocol
    - Add the backend to the contract test parametrization
"""

from .base import Entity, ResourceStore, create_resource_store
from .memory import InMemoryResourceStore
from .sqlite import SqliteResourceStore

__all__ = [
    # Protocol and types
    "ResourceStore",
    "Entity",
    # Factory
    "create_resource_store",
    # Implementations
    "InMemoryResourceStore",
    "SqliteResourceStore",
]
