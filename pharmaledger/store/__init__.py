"""
Storage module for PharmaLedger - segments, identifiers and collections.

This module handles:
- The segmented SQLite key-value store
- The global identifier counter
- Typed ordered collections over segments

Invariants:
    - One store instance per process, opened once at startup
    - Segment ids are stable across restarts
    - The identifier counter is shared by every collection

How to change safely:
    - Keep the on-disk key encodings fixed (8-byte big-endian ids)
    - Wrap multi-segment writes in SegmentStore.transaction()
"""

from .allocator import CounterOverflowError, IdAllocator
from .collections import RecordDecodeError, RecordTooLargeError, StableMap, Storable
from .segments import Segment, SegmentStore, StoreClosedError, StoreError

__all__ = [
    "SegmentStore",
    "Segment",
    "StoreError",
    "StoreClosedError",
    "IdAllocator",
    "CounterOverflowError",
    "StableMap",
    "Storable",
    "RecordTooLargeError",
    "RecordDecodeError",
]
