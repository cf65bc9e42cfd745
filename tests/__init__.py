"""
PharmaLedger Test Suite.

This package contains:
- unit/: Unit tests (store, allocator, collections, records, config, CLI)
- integration/: Integration tests (ledger over SQLite, HTTP API)
"""
