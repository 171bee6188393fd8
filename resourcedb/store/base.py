"""
Base protocol and types for ResourceDB stores.

This module defines the ResourceStore protocol that every backend must
implement, along with the Entity record it stores.

Invariants:
    - Entity ids come from the store's sequence and are never revised
    - The sequence starts at 1 and never decreases
    - Callers only ever see copies of stored fields
    - All backends raise the same error types for the same outcomes

How to change safely:
    - Protocol changes require updating all implementations
    - Run tests/integration/test_store_contract.py against every backend
"""

from __future__ import annotations

import copy
import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from ..deadline import Deadline

if TYPE_CHECKING:
    from ..config import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class Entity:
    """A stored record identified by an integer handle.

    Attributes:
        id: Store-assigned identifier (immutable)
        fields: Attribute values, replaced wholesale on update
        created_at: Creation timestamp (Unix ms)
        updated_at: Last update timestamp (Unix ms)
    """

    id: int
    fields: Dict[str, Any] = field(default_factory=dict)
    created_at: int = 0
    updated_at: int = 0

    def copy(self) -> Entity:
        """Independent copy; mutating it never touches the original."""
        return Entity(
            id=self.id,
            fields=copy.deepcopy(self.fields),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "fields": self.fields,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Entity:
        """Create from dictionary."""
        return cls(
            id=int(data["id"]),
            fields=dict(data.get("fields") or {}),
            created_at=int(data.get("created_at", 0)),
            updated_at=int(data.get("updated_at", 0)),
        )


@runtime_checkable
class ResourceStore(Protocol):
    """Protocol for resource store backends.

    Concurrency contract:
        - All operations are linearizable with respect to each other
        - Two concurrent creates never receive the same id
        - No caller observes a partially written entity

    Deadline contract:
        - An operation whose deadline has already passed raises
          DeadlineExceededError and mutates nothing
        - A deadline that fires while waiting for exclusive access
          has the same effect

    Example:
        >>> store = InMemoryResourceStore()
        >>> alice = await store.create({"name": "Alice"})
        >>> alice.id
        1
    """

    @abstractmethod
    async def create(
        self,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Create an entity with the next id in the sequence.

        Args:
            fields: Attribute values (may be empty, must not be None)
            deadline: Optional deadline for the operation

        Returns:
            The stored entity

        Raises:
            InvalidArgumentError: If fields are missing or rejected
            DeadlineExceededError: If the deadline passes first
        """
        ...

    @abstractmethod
    async def get(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Get an entity by id.

        Raises:
            NotFoundError: If the id is not in the table
            DeadlineExceededError: If the deadline passes first
        """
        ...

    @abstractmethod
    async def list(
        self,
        *,
        deadline: Optional[Deadline] = None,
    ) -> List[Entity]:
        """List all entities. Order is unspecified.

        Raises:
            DeadlineExceededError: If the deadline passes first
        """
        ...

    @abstractmethod
    async def update(
        self,
        resource_id: int,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Replace an entity's fields wholesale.

        Raises:
            NotFoundError: If the id is not in the table
            InvalidArgumentError: If fields are rejected
            DeadlineExceededError: If the deadline passes first
        """
        ...

    @abstractmethod
    async def delete(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """Delete an entity. Its id is never handed out again.

        Raises:
            NotFoundError: If the id is not in the table
            DeadlineExceededError: If the deadline passes first
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of entities currently stored."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by the store."""
        ...


def create_resource_store(config: "StoreConfig") -> ResourceStore:
    """Factory function to create a store from configuration.

    Args:
        config: Store configuration

    Returns:
        Appropriate ResourceStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from ..validate import RequiredFields, accept_any
    from .memory import InMemoryResourceStore
    from .sqlite import SqliteResourceStore

    validator = RequiredFields(*config.required_fields) if config.required_fields else accept_any
    logger.info("Creating resource store", extra={"backend": config.backend.value})

    if config.backend == StoreBackend.MEMORY:
        return InMemoryResourceStore(
            validator=validator,
            list_check_interval=config.list_check_interval,
        )
    elif config.backend == StoreBackend.SQLITE:
        return SqliteResourceStore(
            path=config.sqlite_path,
            validator=validator,
            busy_timeout_ms=config.sqlite_busy_timeout_ms,
            wal_mode=config.sqlite_wal_mode,
        )
    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")
