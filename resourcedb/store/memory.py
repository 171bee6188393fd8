"""
In-memory resource store.

This is the reference ResourceStore: a table of entities and an id
sequence, both owned by the store instance and guarded by one lock.

Invariants:
    - All data is lost on process exit
    - The table and the sequence are only touched while holding the lock
    - Stored fields are deep copies; callers never alias stored state
    - A failed deadline or validation check never mutates the table

How to change safely:
    - Keep work done under the lock O(1), or O(n) for list()
    - Keep interface compatible with the ResourceStore protocol
    - Run the contract tests after any change
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from ..deadline import Deadline, check_deadline, locked
from ..errors import InternalError, NotFoundError
from ..validate import Validator, accept_any, ensure_mapping
from .base import Entity

logger = logging.getLogger(__name__)


class InMemoryResourceStore:
    """In-memory implementation of ResourceStore.

    Attributes:
        validator: Callable applied to fields on create and update
        list_check_interval: Entities copied between deadline checks in list()

    Thread safety:
        Uses a single asyncio lock for the table and the sequence.
        Safe to use from multiple coroutines on one event loop.

    Example:
        >>> store = InMemoryResourceStore()
        >>> alice = await store.create({"name": "Alice"})
        >>> await store.update(alice.id, {"name": "Alicia"})
        Entity(id=1, fields={'name': 'Alicia'}, ...)
    """

    def __init__(
        self,
        validator: Optional[Validator] = None,
        list_check_interval: int = 1024,
    ) -> None:
        """Initialize an empty store.

        Args:
            validator: Field validator (accepts anything if not provided)
            list_check_interval: How often list() re-checks its deadline
        """
        if list_check_interval <= 0:
            raise ValueError("list_check_interval must be positive")

        self.validator = validator or accept_any
        self.list_check_interval = list_check_interval
        self._table: Dict[int, Entity] = {}
        self._sequence = 1
        self._lock = asyncio.Lock()

    @property
    def next_id(self) -> int:
        """Id the next successful create will receive."""
        return self._sequence

    def _validate(self, fields: Any) -> Dict[str, Any]:
        fields = ensure_mapping(fields)
        self.validator(fields)
        return copy.deepcopy(fields)

    async def create(
        self,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Create an entity with the next id in the sequence."""
        check_deadline(deadline, "create")
        stored_fields = self._validate(fields)

        async with locked(self._lock, deadline, "create"):
            resource_id = self._sequence
            if resource_id in self._table:
                raise InternalError(f"Sequence produced duplicate id {resource_id}")

            now = int(time.time() * 1000)
            entity = Entity(
                id=resource_id,
                fields=stored_fields,
                created_at=now,
                updated_at=now,
            )
            self._table[resource_id] = entity
            self._sequence += 1
            result = entity.copy()

        logger.debug("Resource created", extra={"resource_id": resource_id})
        return result

    async def get(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Get an independent copy of an entity."""
        async with locked(self._lock, deadline, "get"):
            entity = self._table.get(resource_id)
            if entity is None:
                raise NotFoundError(resource_id)
            return entity.copy()

    async def list(
        self,
        *,
        deadline: Optional[Deadline] = None,
    ) -> List[Entity]:
        """Copy out every entity, re-checking the deadline as it goes."""
        result: List[Entity] = []
        async with locked(self._lock, deadline, "list"):
            for n, entity in enumerate(self._table.values(), start=1):
                result.append(entity.copy())
                if n % self.list_check_interval == 0:
                    check_deadline(deadline, "list")
        return result

    async def update(
        self,
        resource_id: int,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Replace an entity's fields wholesale."""
        check_deadline(deadline, "update")
        stored_fields = self._validate(fields)

        async with locked(self._lock, deadline, "update"):
            entity = self._table.get(resource_id)
            if entity is None:
                raise NotFoundError(resource_id)

            replacement = Entity(
                id=entity.id,
                fields=stored_fields,
                created_at=entity.created_at,
                updated_at=int(time.time() * 1000),
            )
            self._table[resource_id] = replacement
            result = replacement.copy()

        logger.debug("Resource updated", extra={"resource_id": resource_id})
        return result

    async def delete(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """Remove an entity. The sequence is not rewound."""
        async with locked(self._lock, deadline, "delete"):
            if resource_id not in self._table:
                raise NotFoundError(resource_id)
            del self._table[resource_id]

        logger.debug("Resource deleted", extra={"resource_id": resource_id})

    async def count(self) -> int:
        """Number of entities currently stored."""
        return len(self._table)

    async def close(self) -> None:
        """Drop all entities. The sequence is kept so ids stay unique."""
        async with self._lock:
            self._table.clear()
        logger.debug("InMemoryResourceStore closed")

    # Testing helpers

    def snapshot(self) -> Dict[int, Dict[str, Any]]:
        """Deep copy of the table as id -> fields (testing helper)."""
        return {rid: copy.deepcopy(e.fields) for rid, e in self._table.items()}
