"""
Unit tests for the store inspection CLI and logging setup.
"""

import json
import logging
import os
import tempfile

import json_log_formatter
import pytest

from pharmaledger.config import ObservabilityConfig, ServerConfig
from pharmaledger.main import setup_logging
from pharmaledger.records import Reward, SegmentId, User, UserRole
from pharmaledger.store import IdAllocator, SegmentStore, StableMap
from pharmaledger.tools.store_cli import StoreCLI, main


class TestStoreCLI:
    """Tests for StoreCLI."""

    @pytest.fixture
    def db_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "ledger.db")
            with SegmentStore(path, wal_mode=False) as store:
                ids = IdAllocator(store.open_segment(SegmentId.COUNTER))
                users = StableMap(store.open_segment(SegmentId.USERS), User)
                rewards = StableMap(store.open_segment(SegmentId.REWARDS), Reward)
                user_id = ids.next_id()
                users.insert(user_id, User(id=user_id, username="alice", role=UserRole.ADMIN))
                reward_id = ids.next_id()
                rewards.insert(reward_id, Reward(id=reward_id, participant="bob", points=10))
            yield path

    def test_counter(self, db_path):
        with SegmentStore(db_path, wal_mode=False) as store:
            assert StoreCLI(store).counter() == 2

    def test_stats(self, db_path):
        with SegmentStore(db_path, wal_mode=False) as store:
            stats = StoreCLI(store).stats()

        assert stats["segments"]["users"]["keys"] == 1
        assert stats["segments"]["rewards"]["keys"] == 1
        assert stats["segments"]["pharmaceuticals"] == {"keys": 0, "bytes": 0}
        assert stats["unknown_segments"] == []

    def test_dump(self, db_path):
        with SegmentStore(db_path, wal_mode=False) as store:
            users = StoreCLI(store).dump(SegmentId.USERS)

        assert users == [{"id": 1, "username": "alice", "role": "Admin"}]

    def test_main_dump_json(self, db_path, capsys):
        exit_code = main(["--db", db_path, "--format", "json", "dump", "rewards"])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output == [
            {"id": 2, "participant": "bob", "points": 10, "reward_type": "SupplyChainEvent"}
        ]

    def test_main_counter_text(self, db_path, capsys):
        assert main(["--db", db_path, "counter"]) == 0
        assert capsys.readouterr().out.strip() == "2"

    def test_main_missing_file(self, capsys):
        assert main(["--db", "/nonexistent/ledger.db", "stats"]) == 2
        assert "not found" in capsys.readouterr().err


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_format(self):
        setup_logging(ServerConfig(observability=ObservabilityConfig("DEBUG", "json")))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)

    def test_text_format(self):
        setup_logging(ServerConfig(observability=ObservabilityConfig("WARNING", "text")))

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
