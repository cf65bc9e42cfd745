"""
Store inspection CLI for PharmaLedger.

Read-only commands for operators working with a store file offline:
- stats: Key count and byte size per segment
- counter: Last identifier handed out
- dump: Decode and print every record of a segment

Usage:
    pharmaledger-store --db ./data/pharmaledger.db stats
    pharmaledger-store --db ./data/pharmaledger.db counter
    pharmaledger-store --db ./data/pharmaledger.db --format json dump users

Invariants:
    - Commands never write to the store
    - JSON output is deterministic (sorted keys)

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for scripts
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any

from ..records import RECORD_TYPES, SegmentId
from ..store import SegmentStore, StableMap
from ..store.allocator import COUNTER_KEY

logger = logging.getLogger(__name__)

SEGMENT_NAMES = {
    "counter": SegmentId.COUNTER,
    "users": SegmentId.USERS,
    "pharmaceuticals": SegmentId.PHARMACEUTICALS,
    "events": SegmentId.SUPPLY_CHAIN_EVENTS,
    "rewards": SegmentId.REWARDS,
}


class StoreCLI:
    """Read-only views over an open SegmentStore.

    Example:
        >>> with SegmentStore("ledger.db") as store:
        ...     StoreCLI(store).counter()
        4
    """

    def __init__(self, store: SegmentStore) -> None:
        self.store = store

    def stats(self) -> dict[str, Any]:
        per_segment = self.store.stats()
        segments = {}
        for name, segment_id in SEGMENT_NAMES.items():
            segments[name] = per_segment.get(int(segment_id), {"keys": 0, "bytes": 0})
        unknown = sorted(set(per_segment) - {int(s) for s in SegmentId})
        return {
            "path": self.store.path,
            "schema_version": self.store.schema_version(),
            "segments": segments,
            "unknown_segments": unknown,
        }

    def counter(self) -> int:
        # Read the raw row so inspection never initializes a missing counter
        raw = self.store.open_segment(SegmentId.COUNTER).get(COUNTER_KEY)
        return int.from_bytes(raw, "big") if raw else 0

    def dump(self, segment: SegmentId) -> list[dict[str, Any]]:
        """Decoded records of one segment, ascending by id."""
        if segment == SegmentId.COUNTER:
            return [{"id": None, "counter": self.counter()}]
        collection = StableMap(self.store.open_segment(segment), RECORD_TYPES[segment])
        return [record.to_dict() for _, record in collection.scan()]


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pharmaledger-store",
        description="Inspect a PharmaLedger store file",
    )
    parser.add_argument(
        "--db",
        default=os.getenv("PHARMALEDGER_DB_PATH", "./data/pharmaledger.db"),
        help="Path to the store file",
    )
    parser.add_argument("--format", choices=["json", "text"], default="text")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("stats", help="Show per-segment statistics")
    subparsers.add_parser("counter", help="Show the identifier counter")
    dump_parser = subparsers.add_parser("dump", help="Print the records of a segment")
    dump_parser.add_argument("segment", choices=sorted(SEGMENT_NAMES))

    args = parser.parse_args(argv)

    if not os.path.exists(args.db):
        print(f"Store file not found: {args.db}", file=sys.stderr)
        return 2

    with SegmentStore(args.db, wal_mode=False) as store:
        cli = StoreCLI(store)

        if args.command == "stats":
            stats = cli.stats()
            if args.format == "json":
                print(json.dumps(stats, indent=2, sort_keys=True))
            else:
                print(f"Store: {stats['path']} (schema v{stats['schema_version']})")
                for name, info in stats["segments"].items():
                    print(f"  {name:<16} {info['keys']:>8} keys {info['bytes']:>10} bytes")
                if stats["unknown_segments"]:
                    print(f"  unknown segments: {stats['unknown_segments']}")

        elif args.command == "counter":
            value = cli.counter()
            if args.format == "json":
                print(json.dumps({"counter": value}))
            else:
                print(value)

        elif args.command == "dump":
            records = cli.dump(SEGMENT_NAMES[args.segment])
            if args.format == "json":
                print(json.dumps(records, indent=2, sort_keys=True))
            else:
                if not records:
                    print(f"No records in {args.segment}")
                for record in records:
                    print(" ".join(f"{k}={v}" for k, v in record.items()))

    return 0


if __name__ == "__main__":
    sys.exit(main())
