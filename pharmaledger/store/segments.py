"""
Segmented durable key-value store for PharmaLedger.

This module manages the single SQLite file that holds every piece of
persistent ledger state. The file is partitioned into numbered segments;
each segment is an independent ordered map from byte keys to byte values.

The store never interprets keys or values. Record encoding is owned by
pharmaledger.records, ordering and typing by pharmaledger.store.collections.

Invariants:
    - One SQLite file per store
    - Segments never overlap (rows are keyed by segment id and key)
    - open_segment() is idempotent, the same id always addresses the same rows
    - Scans return keys in ascending bytewise order
    - Writes outside transaction() commit immediately

How to change safely:
    - Schema migrations must be backward compatible
    - Never renumber segments that already hold data
    - Use transaction() for every multi-write operation

Table schema:
    segments:
        - segment_id INTEGER
        - key BLOB
        - value BLOB
        - PRIMARY KEY (segment_id, key)

    schema_version:
        - version INTEGER PRIMARY KEY
        - applied_at INTEGER (Unix ms)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..config import SYNCHRONOUS_LEVELS

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class StoreError(Exception):
    """Base exception for storage operations."""

    pass


class StoreClosedError(StoreError):
    """Operation attempted on a store that is not open."""

    pass


class Segment:
    """Handle to one segment of a SegmentStore.

    Handles are cheap and stateless apart from their segment id, all data
    lives in the store's SQLite file.

    Example:
        >>> users = store.open_segment(1)
        >>> users.put(b"\\x00\\x01", b"payload")
        >>> users.get(b"\\x00\\x01")
        b'payload'
    """

    def __init__(self, store: SegmentStore, segment_id: int) -> None:
        self._store = store
        self.segment_id = segment_id

    def __repr__(self) -> str:
        return f"Segment(id={self.segment_id})"

    def get(self, key: bytes) -> bytes | None:
        """Get the value stored under key, or None."""
        row = self._store._execute(
            "SELECT value FROM segments WHERE segment_id = ? AND key = ?",
            (self.segment_id, key),
        ).fetchone()
        return bytes(row[0]) if row else None

    def put(self, key: bytes, value: bytes) -> None:
        """Store value under key, replacing any existing value."""
        self._store._execute(
            "INSERT OR REPLACE INTO segments (segment_id, key, value) VALUES (?, ?, ?)",
            (self.segment_id, key, value),
        )

    def delete(self, key: bytes) -> bool:
        """Delete key.

        Returns:
            True if deleted, False if not found
        """
        cursor = self._store._execute(
            "DELETE FROM segments WHERE segment_id = ? AND key = ?",
            (self.segment_id, key),
        )
        return cursor.rowcount > 0

    def contains(self, key: bytes) -> bool:
        row = self._store._execute(
            "SELECT 1 FROM segments WHERE segment_id = ? AND key = ?",
            (self.segment_id, key),
        ).fetchone()
        return row is not None

    def scan(self) -> list[tuple[bytes, bytes]]:
        """Return all (key, value) pairs in ascending key order."""
        rows = self._store._execute(
            "SELECT key, value FROM segments WHERE segment_id = ? ORDER BY key",
            (self.segment_id,),
        ).fetchall()
        return [(bytes(key), bytes(value)) for key, value in rows]

    def count(self) -> int:
        row = self._store._execute(
            "SELECT COUNT(*) FROM segments WHERE segment_id = ?",
            (self.segment_id,),
        ).fetchone()
        return int(row[0])


class SegmentStore:
    """SQLite-backed store partitioned into numbered segments.

    This class owns one SQLite connection and provides:
    - Idempotent segment handles via open_segment()
    - Explicit transactions spanning any number of segments
    - Per-segment statistics for operators

    Thread safety:
        The store is single-writer. Callers serialize access (the ledger
        holds one lock around every operation).

    Example:
        >>> store = SegmentStore("/var/lib/pharmaledger/ledger.db")
        >>> store.open()
        >>> counter = store.open_segment(0)
        >>> with store.transaction():
        ...     counter.put(b"", b"\\x00" * 8)
        >>> store.close()
    """

    # SQLite schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(
        self,
        path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        synchronous: str = "FULL",
    ) -> None:
        """Initialize the store.

        Args:
            path: SQLite database file (":memory:" for a throwaway store)
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            synchronous: SQLite synchronous level (OFF, NORMAL, FULL, EXTRA)
        """
        self.path = path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        if synchronous.upper() not in SYNCHRONOUS_LEVELS:
            raise ValueError(f"Invalid synchronous level: {synchronous}")
        self.synchronous = synchronous.upper()
        self._conn: sqlite3.Connection | None = None
        self._segments: dict[int, Segment] = {}
        self._tx_depth = 0

    @classmethod
    def from_config(cls, config: StorageConfig) -> SegmentStore:
        """Create a store from storage configuration."""
        return cls(
            config.db_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
            synchronous=config.synchronous,
        )

    def open(self) -> None:
        """Open the database file, creating file and schema if needed."""
        if self._conn is not None:
            return

        if self.path != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            self.path,
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
            check_same_thread=False,
        )
        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode and self.path != MEMORY_PATH:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute(f"PRAGMA synchronous = {self.synchronous}")
            self._create_schema(conn)
        except sqlite3.Error:
            conn.close()
            raise

        self._conn = conn
        logger.info(f"Opened segment store: {self.path}")

    def close(self) -> None:
        """Close the database connection. Segment handles become unusable."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._segments.clear()
        self._tx_depth = 0
        logger.info(f"Closed segment store: {self.path}")

    def __enter__(self) -> SegmentStore:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript(f"""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS segments (
                segment_id INTEGER NOT NULL,
                key BLOB NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (segment_id, key)
            ) WITHOUT ROWID;

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES ({self.SCHEMA_VERSION}, strftime('%s', 'now') * 1000);
        """)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError(f"Segment store is not open: {self.path}")
        return self._conn

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._connection().execute(sql, params)

    def open_segment(self, segment_id: int) -> Segment:
        """Get a handle to a segment.

        Calling this again with the same id returns the same handle.

        Args:
            segment_id: Non-negative segment number

        Returns:
            Segment handle

        Raises:
            ValueError: If segment_id is negative
            StoreClosedError: If the store is not open
        """
        segment_id = int(segment_id)
        if segment_id < 0:
            raise ValueError(f"Segment id must be non-negative, got {segment_id}")
        self._connection()

        segment = self._segments.get(segment_id)
        if segment is None:
            segment = Segment(self, segment_id)
            self._segments[segment_id] = segment
        return segment

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of writes atomically.

        Nested use joins the outermost transaction. Any exception rolls
        back every write made since the outermost BEGIN.
        """
        conn = self._connection()
        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return

        conn.execute("BEGIN IMMEDIATE")
        self._tx_depth = 1
        try:
            yield
        except BaseException:
            self._tx_depth = 0
            conn.execute("ROLLBACK")
            logger.debug("Rolled back store transaction", extra={"path": self.path})
            raise
        else:
            self._tx_depth = 0
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                # A failed COMMIT (e.g. SQLITE_BUSY) leaves the transaction open
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.warning(f"Store commit failed, rolled back: {e}", extra={"path": self.path})
                raise StoreError(f"Commit failed: {e}") from e

    def stats(self) -> dict[int, dict[str, int]]:
        """Per-segment key count and total value bytes."""
        rows = self._execute(
            """
            SELECT segment_id, COUNT(*), COALESCE(SUM(LENGTH(value)), 0)
            FROM segments GROUP BY segment_id ORDER BY segment_id
            """
        ).fetchall()
        return {int(sid): {"keys": int(count), "bytes": int(size)} for sid, count, size in rows}

    def schema_version(self) -> int:
        row = self._execute("SELECT MAX(version) FROM schema_version").fetchone()
        return int(row[0] or 0)
