"""
Unit tests for the segmented SQLite store.

Tests cover:
- Segment get/put/delete/scan
- Segment isolation and handle identity
- Transactions (commit, rollback, nesting)
- Persistence across reopen
"""

import os
import sqlite3
import tempfile

import pytest

from pharmaledger.store.segments import SegmentStore, StoreClosedError, StoreError


class TestSegmentStore:
    """Tests for SegmentStore."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def db_path(self, data_dir):
        return os.path.join(data_dir, "ledger.db")

    @pytest.fixture
    def store(self, db_path):
        """Create and open a store."""
        store = SegmentStore(db_path, wal_mode=False)
        store.open()
        yield store
        store.close()

    def test_put_and_get(self, store):
        """Stored value is returned for its key."""
        segment = store.open_segment(1)
        segment.put(b"k1", b"v1")

        assert segment.get(b"k1") == b"v1"
        assert segment.get(b"missing") is None

    def test_put_overwrites(self, store):
        """Second put replaces the value."""
        segment = store.open_segment(1)
        segment.put(b"k1", b"v1")
        segment.put(b"k1", b"v2")

        assert segment.get(b"k1") == b"v2"
        assert segment.count() == 1

    def test_delete(self, store):
        """Delete reports whether the key existed."""
        segment = store.open_segment(1)
        segment.put(b"k1", b"v1")

        assert segment.delete(b"k1") is True
        assert segment.delete(b"k1") is False
        assert segment.contains(b"k1") is False

    def test_scan_orders_keys_bytewise(self, store):
        """Scan returns keys in ascending byte order, not insertion order."""
        segment = store.open_segment(2)
        segment.put(b"\x00\x03", b"c")
        segment.put(b"\x00\x01", b"a")
        segment.put(b"\x01\x00", b"d")
        segment.put(b"\x00\x02", b"b")

        assert [value for _, value in segment.scan()] == [b"a", b"b", b"c", b"d"]

    def test_segments_do_not_overlap(self, store):
        """The same key in two segments holds two independent values."""
        first = store.open_segment(1)
        second = store.open_segment(2)
        first.put(b"k", b"one")
        second.put(b"k", b"two")

        assert first.get(b"k") == b"one"
        assert second.get(b"k") == b"two"
        first.delete(b"k")
        assert second.get(b"k") == b"two"
        assert [key for key, _ in second.scan()] == [b"k"]

    def test_open_segment_is_idempotent(self, store):
        """Opening the same id twice returns the same handle."""
        assert store.open_segment(3) is store.open_segment(3)
        assert store.open_segment(3) is not store.open_segment(4)

    def test_open_segment_rejects_negative_id(self, store):
        with pytest.raises(ValueError):
            store.open_segment(-1)

    def test_transaction_commits(self, store):
        """Writes inside a transaction are visible after it ends."""
        segment = store.open_segment(1)
        with store.transaction():
            segment.put(b"a", b"1")
            segment.put(b"b", b"2")

        assert segment.count() == 2

    def test_transaction_rolls_back_on_error(self, store):
        """An exception discards every write of the transaction."""
        users = store.open_segment(1)
        rewards = store.open_segment(4)
        users.put(b"existing", b"x")

        with pytest.raises(RuntimeError):
            with store.transaction():
                users.put(b"new", b"y")
                rewards.put(b"r", b"z")
                raise RuntimeError("boom")

        assert users.get(b"new") is None
        assert rewards.count() == 0
        assert users.get(b"existing") == b"x"

    def test_nested_transaction_joins_outer(self, store):
        """Failure in the outer block also discards nested writes."""
        segment = store.open_segment(1)

        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    segment.put(b"inner", b"1")
                assert segment.get(b"inner") == b"1"
                raise RuntimeError("boom")

        assert segment.get(b"inner") is None

    def test_store_usable_after_rollback(self, store):
        segment = store.open_segment(1)
        with pytest.raises(ValueError):
            with store.transaction():
                segment.put(b"a", b"1")
                raise ValueError("bad")

        with store.transaction():
            segment.put(b"b", b"2")

        assert segment.get(b"b") == b"2"

    def test_failed_commit_rolls_back(self, db_path):
        """A COMMIT blocked by a reader rolls back and leaves the store usable."""
        with SegmentStore(db_path, wal_mode=False, busy_timeout_ms=0) as store:
            segment = store.open_segment(1)

            reader = sqlite3.connect(db_path, timeout=0, isolation_level=None)
            reader.execute("BEGIN")
            reader.execute("SELECT * FROM segments").fetchall()
            try:
                with pytest.raises(StoreError, match="Commit failed"):
                    with store.transaction():
                        segment.put(b"k", b"v")
            finally:
                reader.execute("ROLLBACK")
                reader.close()

            assert segment.get(b"k") is None

            with store.transaction():
                segment.put(b"k", b"v2")

            assert segment.get(b"k") == b"v2"

    def test_synchronous_level(self, db_path):
        with SegmentStore(db_path, wal_mode=False, synchronous="normal") as store:
            conn = store._connection()
            assert conn.execute("PRAGMA synchronous").fetchone()[0] == 1

        with pytest.raises(ValueError, match="synchronous"):
            SegmentStore(db_path, synchronous="SOMETIMES")

    def test_persists_across_reopen(self, db_path):
        """Data written before close is readable after reopen."""
        with SegmentStore(db_path, wal_mode=False) as store:
            store.open_segment(1).put(b"k", b"v")

        with SegmentStore(db_path, wal_mode=False) as store:
            assert store.open_segment(1).get(b"k") == b"v"

    def test_wal_mode_store_persists(self, db_path):
        with SegmentStore(db_path, wal_mode=True) as store:
            store.open_segment(2).put(b"k", b"v")

        with SegmentStore(db_path) as store:
            assert store.open_segment(2).get(b"k") == b"v"

    def test_closed_store_raises(self, db_path):
        store = SegmentStore(db_path, wal_mode=False)

        with pytest.raises(StoreClosedError):
            store.open_segment(1)

        store.open()
        segment = store.open_segment(1)
        store.close()

        with pytest.raises(StoreClosedError):
            segment.get(b"k")

    def test_creates_parent_directory(self, data_dir):
        path = os.path.join(data_dir, "nested", "dir", "ledger.db")
        with SegmentStore(path, wal_mode=False) as store:
            store.open_segment(0).put(b"", b"x")

        assert os.path.exists(path)

    def test_memory_store(self):
        with SegmentStore(":memory:") as store:
            store.open_segment(1).put(b"k", b"v")
            assert store.open_segment(1).get(b"k") == b"v"

    def test_stats(self, store):
        store.open_segment(1).put(b"a", b"123")
        store.open_segment(1).put(b"b", b"45")
        store.open_segment(3).put(b"a", b"6")

        assert store.stats() == {
            1: {"keys": 2, "bytes": 5},
            3: {"keys": 1, "bytes": 1},
        }
        assert store.schema_version() == SegmentStore.SCHEMA_VERSION
