"""
ResourceDB - Deadline-aware CRUD resource store.

This package implements a concurrency-safe store for entities identified
by integer handles:
- ResourceStore protocol with in-memory and SQLite backends
- Deadlines on every operation (fail fast, never mutate on expiry)
- Pluggable field validation
- JSON/HTTP surface and matching async client

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│  HTTP API   │────▶│  ResourceStore  │
    │ (httpx)     │     │  (FastAPI)  │     │ memory | sqlite │
    └─────────────┘     └─────────────┘     └─────────────────┘

Invariants:
    - Ids are assigned by the store, start at 1 and are never reused
    - Create, update and delete are atomic with respect to readers
    - Reads return copies; stored state is never aliased
    - Errors never take the process down; the store stays usable

How to change safely:
    - Any new backend must pass tests/integration/test_store_contract.py
    - Error codes are part of the wire contract
"""

from ._version import __version__
from .deadline import Deadline
from .errors import (
    DeadlineExceededError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    ResourceError,
)
from .store import (
    Entity,
    InMemoryResourceStore,
    ResourceStore,
    SqliteResourceStore,
    create_resource_store,
)

__all__ = [
    "__version__",
    # Store
    "ResourceStore",
    "Entity",
    "InMemoryResourceStore",
    "SqliteResourceStore",
    "create_resource_store",
    # Deadlines
    "Deadline",
    # Errors
    "ResourceError",
    "NotFoundError",
    "InvalidArgumentError",
    "DeadlineExceededError",
    "InternalError",
]
