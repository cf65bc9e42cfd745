"""
Global identifier allocator.

A single persistent counter that hands out identifiers for every entity
kind. The counter lives under the empty key of its own segment as an
8-byte big-endian unsigned integer.

Invariants:
    - The first identifier ever returned is 1 (counter starts at 0)
    - Each call returns previous + 1 and persists it
    - Outside a transaction the new value is committed before returning
    - The counter never rewinds
"""

from __future__ import annotations

import logging

from .segments import Segment, StoreError

logger = logging.getLogger(__name__)

COUNTER_KEY = b""
MAX_ID = 2**64 - 1


class CounterOverflowError(StoreError):
    """The identifier space is exhausted."""

    pass


class IdAllocator:
    """Monotonic identifier source backed by one segment.

    Example:
        >>> allocator = IdAllocator(store.open_segment(0))
        >>> allocator.next_id()
        1
        >>> allocator.next_id()
        2
    """

    def __init__(self, segment: Segment) -> None:
        self._segment = segment
        if not segment.contains(COUNTER_KEY):
            segment.put(COUNTER_KEY, _encode(0))
            logger.info("Initialized identifier counter", extra={"segment_id": segment.segment_id})

    def current(self) -> int:
        """Last identifier handed out (0 if none)."""
        raw = self._segment.get(COUNTER_KEY)
        return _decode(raw) if raw is not None else 0

    def next_id(self) -> int:
        """Allocate and persist the next identifier.

        Raises:
            CounterOverflowError: If the 64-bit identifier space is exhausted
        """
        value = self.current()
        if value >= MAX_ID:
            raise CounterOverflowError("Identifier counter exhausted")
        value += 1
        self._segment.put(COUNTER_KEY, _encode(value))
        return value


def _encode(value: int) -> bytes:
    return value.to_bytes(8, "big")


def _decode(raw: bytes) -> int:
    if len(raw) != 8:
        raise StoreError(f"Corrupt identifier counter: expected 8 bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")
