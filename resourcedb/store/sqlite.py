"""
SQLite-backed resource store.

This module carries the ResourceStore contract onto a database table. It
exists so that callers can swap the in-memory store for a database without
changing what they observe: same inputs, same error types, same atomicity.

Invariants:
    - Ids come from INTEGER PRIMARY KEY AUTOINCREMENT, so they start at 1,
      increase monotonically and are never reused after deletion
    - Every write runs in a single BEGIN IMMEDIATE transaction
    - A failed deadline or validation check never opens a transaction

How to change safely:
    - Schema migrations must be backward compatible
    - Use transactions for all write operations
    - Run the contract tests against this backend after any change

Table schema:
    resources:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - fields_json TEXT
        - created_at INTEGER (Unix ms)
        - updated_at INTEGER (Unix ms)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..deadline import Deadline, check_deadline, locked
from ..errors import InternalError, InvalidArgumentError, NotFoundError
from ..validate import Validator, accept_any, ensure_mapping
from .base import Entity

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Largest value an SQLite INTEGER column can hold
MAX_ROW_ID = 2**63 - 1


class SqliteResourceStore:
    """SQLite implementation of ResourceStore.

    Thread safety:
        Callers are serialised by one asyncio lock, so the id sequence and
        the table observe a single global order just like the in-memory
        store. SQLite's own locking covers other processes.

    Example:
        >>> store = SqliteResourceStore("/var/lib/resourcedb/resources.db")
        >>> entity = await store.create({"name": "Alice"})
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        path: str = MEMORY_PATH,
        validator: Optional[Validator] = None,
        busy_timeout_ms: int = 5000,
        wal_mode: bool = True,
    ) -> None:
        """Initialize the store.

        Args:
            path: Database file path, or ":memory:" for a private database
            validator: Field validator (accepts anything if not provided)
            busy_timeout_ms: SQLite busy timeout
            wal_mode: Enable SQLite WAL journal mode (file databases only)
        """
        self.path = path
        self.validator = validator or accept_any
        self.busy_timeout_ms = busy_timeout_ms
        self.wal_mode = wal_mode
        self._lock = asyncio.Lock()
        self._schema_ready = False
        # A memory database only lives as long as its connection
        self._shared: Optional[sqlite3.Connection] = None
        self._closed = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.path,
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
        if self.wal_mode and self.path != MEMORY_PATH:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with the schema in place.

        Yields:
            SQLite connection
        """
        if self.path == MEMORY_PATH:
            if self._closed:
                raise InternalError("Store is closed; its memory database is gone")
            if self._shared is None:
                self._shared = self._connect()
            conn = self._shared
        else:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()

        try:
            if not self._schema_ready:
                self._create_schema(conn)
                self._schema_ready = True
            yield conn
        finally:
            if conn is not self._shared:
                conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS resources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                fields_json TEXT NOT NULL DEFAULT '{}',
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)
        logger.info("Initialized resource database", extra={"path": self.path})

    def _encode(self, fields: Any) -> str:
        fields = ensure_mapping(fields)
        self.validator(fields)
        try:
            return json.dumps(fields)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"fields must be JSON serializable: {e}") from e

    @staticmethod
    def _check_row_id(resource_id: int) -> None:
        # Ids outside SQLite's INTEGER range can never have been assigned
        if not -MAX_ROW_ID - 1 <= resource_id <= MAX_ROW_ID:
            raise NotFoundError(resource_id)

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> Entity:
        return Entity(
            id=row["id"],
            fields=json.loads(row["fields_json"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def create(
        self,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Insert a row; the database assigns the id."""
        check_deadline(deadline, "create")
        fields_json = self._encode(fields)
        now = int(time.time() * 1000)

        async with locked(self._lock, deadline, "create"):
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    cursor = conn.execute(
                        """
                        INSERT INTO resources (fields_json, created_at, updated_at)
                        VALUES (?, ?, ?)
                        """,
                        (fields_json, now, now),
                    )
                    resource_id = cursor.lastrowid
                    conn.execute("COMMIT")
                except sqlite3.IntegrityError as e:
                    conn.execute("ROLLBACK")
                    raise InternalError(f"Id collision on insert: {e}") from e
                except Exception:
                    conn.execute("ROLLBACK")
                    raise

        logger.debug("Resource created", extra={"resource_id": resource_id})
        return Entity(
            id=resource_id,
            fields=json.loads(fields_json),
            created_at=now,
            updated_at=now,
        )

    async def get(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Read one row."""
        async with locked(self._lock, deadline, "get"):
            self._check_row_id(resource_id)
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM resources WHERE id = ?",
                    (resource_id,),
                ).fetchone()

        if row is None:
            raise NotFoundError(resource_id)
        return self._row_to_entity(row)

    async def list(
        self,
        *,
        deadline: Optional[Deadline] = None,
    ) -> List[Entity]:
        """Read all rows in id order."""
        async with locked(self._lock, deadline, "list"):
            with self._get_connection() as conn:
                rows = conn.execute("SELECT * FROM resources ORDER BY id").fetchall()

        return [self._row_to_entity(row) for row in rows]

    async def update(
        self,
        resource_id: int,
        fields: Mapping[str, Any],
        *,
        deadline: Optional[Deadline] = None,
    ) -> Entity:
        """Replace a row's fields wholesale."""
        check_deadline(deadline, "update")
        fields_json = self._encode(fields)
        now = int(time.time() * 1000)

        async with locked(self._lock, deadline, "update"):
            self._check_row_id(resource_id)
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    cursor = conn.execute(
                        "UPDATE resources SET fields_json = ?, updated_at = ? WHERE id = ?",
                        (fields_json, now, resource_id),
                    )
                    if cursor.rowcount == 0:
                        conn.execute("ROLLBACK")
                        raise NotFoundError(resource_id)
                    row = conn.execute(
                        "SELECT * FROM resources WHERE id = ?",
                        (resource_id,),
                    ).fetchone()
                    conn.execute("COMMIT")
                except NotFoundError:
                    raise
                except Exception:
                    conn.execute("ROLLBACK")
                    raise

        logger.debug("Resource updated", extra={"resource_id": resource_id})
        return self._row_to_entity(row)

    async def delete(
        self,
        resource_id: int,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """Delete a row. AUTOINCREMENT keeps the id retired."""
        async with locked(self._lock, deadline, "delete"):
            self._check_row_id(resource_id)
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM resources WHERE id = ?", (resource_id,))
                if cursor.rowcount == 0:
                    raise NotFoundError(resource_id)

        logger.debug("Resource deleted", extra={"resource_id": resource_id})

    async def count(self) -> int:
        """Number of rows currently stored."""
        async with self._lock:
            with self._get_connection() as conn:
                row = conn.execute("SELECT COUNT(*) AS n FROM resources").fetchone()
        return row["n"]

    async def close(self) -> None:
        """Close the shared connection, if any.

        A memory database dies with its connection, so a closed memory store
        refuses further use instead of silently restarting ids at 1. File
        databases reopen on the next operation.
        """
        async with self._lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None
            if self.path == MEMORY_PATH:
                self._closed = True
        logger.debug("SqliteResourceStore closed")

    # Testing helpers

    def snapshot(self) -> Dict[int, Dict[str, Any]]:
        """Table as id -> fields (testing helper)."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT id, fields_json FROM resources").fetchall()
        return {row["id"]: json.loads(row["fields_json"]) for row in rows}
