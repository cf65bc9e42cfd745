"""
Typed ordered collections over store segments.

A StableMap maps 64-bit identifiers to records of one type. Identifiers are
stored as 8-byte big-endian keys so the segment's bytewise key order is the
numeric order of identifiers. Records are encoded by their own type.

Invariants:
    - scan() yields identifiers in ascending numeric order
    - insert() overwrites any record already stored under the identifier
    - No record larger than its type's MAX_SIZE is ever written
    - remove() deletes the row entirely, there are no tombstones
"""

from __future__ import annotations

import logging
from typing import Generic, Protocol, TypeVar, runtime_checkable

from .segments import Segment, StoreError

logger = logging.getLogger(__name__)

MAX_KEY = 2**64 - 1


class RecordTooLargeError(StoreError):
    """Encoded record exceeds its type's declared maximum size."""

    pass


class RecordDecodeError(StoreError):
    """Stored bytes could not be decoded into a record."""

    pass


@runtime_checkable
class Storable(Protocol):
    """Contract every record type stored in a StableMap fulfils.

    Implementations must provide a deterministic, lossless encoding and a
    fixed upper bound on the encoded size.
    """

    MAX_SIZE: int

    def encode(self) -> bytes:
        """Serialize to bytes."""
        ...

    @classmethod
    def decode(cls, data: bytes) -> Storable:
        """Deserialize from bytes produced by encode()."""
        ...


R = TypeVar("R", bound=Storable)


def encode_key(record_id: int) -> bytes:
    if not 0 <= record_id <= MAX_KEY:
        raise ValueError(f"Identifier out of range: {record_id}")
    return record_id.to_bytes(8, "big")


def decode_key(key: bytes) -> int:
    return int.from_bytes(key, "big")


class StableMap(Generic[R]):
    """Ordered identifier -> record map stored in one segment.

    Example:
        >>> users = StableMap(store.open_segment(1), User)
        >>> users.insert(1, User(id=1, username="alice", role=UserRole.ADMIN))
        >>> users.get(1).username
        'alice'
    """

    def __init__(self, segment: Segment, record_type: type[R]) -> None:
        self._segment = segment
        self.record_type = record_type

    def __repr__(self) -> str:
        return f"StableMap({self.record_type.__name__}, segment={self._segment.segment_id})"

    def __len__(self) -> int:
        return self._segment.count()

    def __contains__(self, record_id: int) -> bool:
        return self.contains(record_id)

    def _encode(self, record: R) -> bytes:
        data = record.encode()
        if len(data) > self.record_type.MAX_SIZE:
            raise RecordTooLargeError(
                f"{self.record_type.__name__} record is {len(data)} bytes, "
                f"maximum is {self.record_type.MAX_SIZE}"
            )
        return data

    def _decode(self, data: bytes) -> R:
        return self.record_type.decode(data)  # type: ignore[return-value]

    def insert(self, record_id: int, record: R) -> None:
        """Store record under record_id, replacing any existing record.

        Raises:
            RecordTooLargeError: If the encoded record exceeds MAX_SIZE
        """
        self._segment.put(encode_key(record_id), self._encode(record))

    def get(self, record_id: int) -> R | None:
        if not 0 <= record_id <= MAX_KEY:
            return None
        data = self._segment.get(encode_key(record_id))
        return self._decode(data) if data is not None else None

    def contains(self, record_id: int) -> bool:
        if not 0 <= record_id <= MAX_KEY:
            return False
        return self._segment.contains(encode_key(record_id))

    def remove(self, record_id: int) -> R | None:
        """Remove and return the record, or None if absent."""
        if not 0 <= record_id <= MAX_KEY:
            return None
        key = encode_key(record_id)
        data = self._segment.get(key)
        if data is None:
            return None
        self._segment.delete(key)
        return self._decode(data)

    def scan(self) -> list[tuple[int, R]]:
        """All (id, record) pairs in ascending id order."""
        return [(decode_key(key), self._decode(data)) for key, data in self._segment.scan()]

    def values(self) -> list[R]:
        return [record for _, record in self.scan()]
