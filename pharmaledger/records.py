"""
Record types stored by PharmaLedger.

This module defines the four entity records, their enums and the segment
layout they are stored in. Every record encodes itself as compact JSON with
sorted keys, which is deterministic and lossless for the field types used
here, and declares the maximum encoded size a collection will accept.

Invariants:
    - Enum values serialize as their names ("Admin", "Production", ...)
    - encode() output for equal records is byte-identical
    - Segment ids in SegmentId are part of the on-disk format

How to change safely:
    - New fields need defaults in from_dict() so stored rows still decode
    - Only ever raise MAX_SIZE, lowering it can strand existing rows
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, ClassVar

from .store.collections import RecordDecodeError


class SegmentId(IntEnum):
    """Stable segment numbers of the ledger's store."""

    COUNTER = 0
    USERS = 1
    PHARMACEUTICALS = 2
    SUPPLY_CHAIN_EVENTS = 3
    REWARDS = 4


class UserRole(Enum):
    """Role held by a registered user."""

    ADMIN = "Admin"
    MANUFACTURER = "Manufacturer"
    DISTRIBUTOR = "Distributor"
    VIEWER = "Viewer"


class SupplyChainEventType(Enum):
    """Stage of the supply chain an event records."""

    PRODUCTION = "Production"
    PACKAGING = "Packaging"
    STORAGE = "Storage"
    TRANSPORTATION = "Transportation"
    DELIVERY = "Delivery"


class RewardType(Enum):
    """Why a reward was issued."""

    SUPPLY_CHAIN_EVENT = "SupplyChainEvent"
    OTHER = "Other"


class Record:
    """Base for records stored in a StableMap.

    Subclasses implement to_dict() and from_dict(); the byte encoding is
    shared.
    """

    MAX_SIZE: ClassVar[int] = 512

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        raise NotImplementedError

    def encode(self) -> bytes:
        """Serialize to compact, key-sorted JSON.

        Non-ASCII characters are written as \\u escapes, so any Python str
        (lone surrogates included) survives a round trip.
        """
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("ascii")

    @classmethod
    def decode(cls, data: bytes) -> Record:
        """Deserialize bytes produced by encode().

        Raises:
            RecordDecodeError: If the bytes are not a valid encoded record
        """
        try:
            return cls.from_dict(json.loads(data.decode("utf-8")))
        except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise RecordDecodeError(f"Cannot decode {cls.__name__} record: {e}") from e


@dataclass
class User(Record):
    """A registered participant.

    Attributes:
        id: Identifier from the global counter
        username: Display name, never empty
        role: Current role
    """

    MAX_SIZE: ClassVar[int] = 512

    id: int
    username: str
    role: UserRole

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "role": self.role.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(id=data["id"], username=data["username"], role=UserRole(data["role"]))


@dataclass
class Pharmaceutical(Record):
    """A catalogued pharmaceutical batch.

    Attributes:
        id: Identifier from the global counter
        user_id: Admin user who registered the batch (not re-checked later)
        name: Product name
        manufacturer: Manufacturer name
        batch_number: Manufacturer batch number
        expiry_date: Expiry timestamp in nanoseconds since epoch (stored only)
    """

    MAX_SIZE: ClassVar[int] = 1024

    id: int
    user_id: int
    name: str
    manufacturer: str
    batch_number: str
    expiry_date: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "batch_number": self.batch_number,
            "expiry_date": self.expiry_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pharmaceutical:
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            name=data["name"],
            manufacturer=data["manufacturer"],
            batch_number=data["batch_number"],
            expiry_date=data["expiry_date"],
        )


@dataclass
class SupplyChainEvent(Record):
    """A timestamped step in a pharmaceutical's supply chain.

    Attributes:
        id: Identifier from the global counter
        pharmaceutical_id: Batch the event belongs to
        event_type: Supply-chain stage
        location: Where it happened
        date: Insert time in nanoseconds since epoch, set by the ledger
        participant: Free-text identity of the acting party
    """

    MAX_SIZE: ClassVar[int] = 1024

    id: int
    pharmaceutical_id: int
    event_type: SupplyChainEventType
    location: str
    date: int
    participant: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pharmaceutical_id": self.pharmaceutical_id,
            "event_type": self.event_type.value,
            "location": self.location,
            "date": self.date,
            "participant": self.participant,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SupplyChainEvent:
        return cls(
            id=data["id"],
            pharmaceutical_id=data["pharmaceutical_id"],
            event_type=SupplyChainEventType(
                data.get("event_type", SupplyChainEventType.PRODUCTION.value)
            ),
            location=data["location"],
            date=data["date"],
            participant=data["participant"],
        )


@dataclass
class Reward(Record):
    """Points issued to a participant.

    Attributes:
        id: Identifier from the global counter
        participant: Free-text identity, not a reference to a User
        points: Unsigned 32-bit point count
        reward_type: Why the reward was issued
    """

    MAX_SIZE: ClassVar[int] = 512

    id: int
    participant: str
    points: int
    reward_type: RewardType = RewardType.SUPPLY_CHAIN_EVENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "participant": self.participant,
            "points": self.points,
            "reward_type": self.reward_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reward:
        return cls(
            id=data["id"],
            participant=data["participant"],
            points=data["points"],
            reward_type=RewardType(data.get("reward_type", RewardType.SUPPLY_CHAIN_EVENT.value)),
        )


RECORD_TYPES: dict[SegmentId, type[Record]] = {
    SegmentId.USERS: User,
    SegmentId.PHARMACEUTICALS: Pharmaceutical,
    SegmentId.SUPPLY_CHAIN_EVENTS: SupplyChainEvent,
    SegmentId.REWARDS: Reward,
}
