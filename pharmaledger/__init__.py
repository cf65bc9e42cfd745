"""
PharmaLedger - pharmaceutical supply-chain record keeping.

This package tracks users, pharmaceutical batches, supply-chain events and
reward points on top of a small durable key-value store:
- One SQLite file split into numbered segments
- A global identifier counter shared by every entity kind
- Four ordered collections (users, pharmaceuticals, events, rewards)

Architecture:
    ┌─────────────┐     ┌──────────────┐     ┌───────────────────┐
    │   Client    │────▶│  HTTP API    │────▶│ SupplyChainLedger │
    │             │     │  (FastAPI)   │     │  (validation)     │
    └─────────────┘     └──────────────┘     └─────────┬─────────┘
                                                       │
                              ┌────────────────────────┼──────────────┐
                              ▼                        ▼              ▼
                        ┌───────────┐           ┌────────────┐  ┌──────────┐
                        │IdAllocator│           │ StableMap  │  │StableMap │ ...
                        │ segment 0 │           │ segment 1  │  │segment 2 │
                        └─────┬─────┘           └─────┬──────┘  └────┬─────┘
                              └───────────────┬───────┴──────────────┘
                                              ▼
                                      ┌──────────────┐
                                      │ SegmentStore │
                                      │   (SQLite)   │
                                      └──────────────┘

Invariants:
    - Identifiers are unique across all four collections
    - The identifier counter never rewinds, deleted ids are never reused
    - Validation always happens before any mutation
    - An event and its reward are written in one transaction

How to change safely:
    - Segment ids are part of the on-disk format, never renumber them
    - New record fields need defaults so older rows still decode
    - Keep MAX_SIZE limits at least as large as existing rows
"""

from ._version import __version__

__all__ = ["__version__"]
