"""
Supply-chain ledger: validation and orchestration of every domain operation.

SupplyChainLedger owns the identifier allocator and the four collections of
an open SegmentStore. Each operation validates its input, cross-checks other
collections where required, allocates identifiers and mutates collections.

Invariants:
    - Validation completes before the first write of any operation
    - Every mutating operation runs in one store transaction
    - Operations are serialized by a single lock and never await while
      holding it, so each one is atomic with respect to the others
    - Creating a supply-chain event always creates exactly one reward
    - List reads raise NotFoundError rather than returning an empty list

How to change safely:
    - Keep cross-collection checks inside the lock and before allocation
    - Do not add cascade deletes, dangling references are part of the model
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .errors import InvalidInputError, NotFoundError, UnauthorizedError
from .records import (
    Pharmaceutical,
    Reward,
    RewardType,
    SegmentId,
    SupplyChainEvent,
    SupplyChainEventType,
    User,
    UserRole,
)
from .store import IdAllocator, SegmentStore, StableMap

logger = logging.getLogger(__name__)

# Points credited to the participant of every logged supply-chain event
EVENT_REWARD_POINTS = 10

MAX_POINTS = 2**32 - 1


@dataclass
class UserPayload:
    username: str
    role: UserRole


@dataclass
class PharmaceuticalPayload:
    name: str
    user_id: int
    manufacturer: str
    batch_number: str
    expiry_date: int


@dataclass
class SupplyChainEventPayload:
    pharmaceutical_id: int
    location: str
    participant: str
    event_type: SupplyChainEventType = SupplyChainEventType.PRODUCTION


@dataclass
class RewardPayload:
    participant: str
    points: int
    reward_type: RewardType = RewardType.SUPPLY_CHAIN_EVENT


class SupplyChainLedger:
    """Domain operations over an open SegmentStore.

    Attributes:
        store: The underlying segment store (must be open)
        users: Users collection (segment 1)
        pharmaceuticals: Pharmaceuticals collection (segment 2)
        events: Supply-chain events collection (segment 3)
        rewards: Rewards collection (segment 4)

    Example:
        >>> store = SegmentStore("/tmp/ledger.db")
        >>> store.open()
        >>> ledger = SupplyChainLedger(store)
        >>> user = await ledger.create_user(UserPayload("alice", UserRole.ADMIN))
        >>> user.id
        1
    """

    def __init__(
        self,
        store: SegmentStore,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        """Bind the ledger to a store.

        Args:
            store: Open segment store
            clock: Source of event timestamps in nanoseconds
        """
        self.store = store
        self._clock = clock
        self._lock = asyncio.Lock()

        self._ids = IdAllocator(store.open_segment(SegmentId.COUNTER))
        self.users: StableMap[User] = StableMap(store.open_segment(SegmentId.USERS), User)
        self.pharmaceuticals: StableMap[Pharmaceutical] = StableMap(
            store.open_segment(SegmentId.PHARMACEUTICALS), Pharmaceutical
        )
        self.events: StableMap[SupplyChainEvent] = StableMap(
            store.open_segment(SegmentId.SUPPLY_CHAIN_EVENTS), SupplyChainEvent
        )
        self.rewards: StableMap[Reward] = StableMap(
            store.open_segment(SegmentId.REWARDS), Reward
        )

    @property
    def last_id(self) -> int:
        """Most recently allocated identifier (0 if none)."""
        return self._ids.current()

    # =========================================================================
    # Users
    # =========================================================================

    async def create_user(self, payload: UserPayload) -> User:
        if not payload.username:
            raise InvalidInputError("Username is required")

        async with self._lock:
            with self.store.transaction():
                user = User(id=self._ids.next_id(), username=payload.username, role=payload.role)
                self.users.insert(user.id, user)

        logger.info("Created user", extra={"user_id": user.id, "role": user.role.value})
        return user

    async def update_user_role(self, user_id: int, role: UserRole) -> User:
        """Replace a user's role. Applying the same role twice is a no-op."""
        async with self._lock:
            with self.store.transaction():
                user = self.users.remove(user_id)
                if user is None:
                    raise NotFoundError("User not found", {"user_id": user_id})
                user.role = role
                self.users.insert(user_id, user)

        logger.info("Updated user role", extra={"user_id": user_id, "role": role.value})
        return user

    async def delete_user(self, user_id: int) -> None:
        async with self._lock:
            with self.store.transaction():
                if self.users.remove(user_id) is None:
                    raise NotFoundError("User not found", {"user_id": user_id})
        logger.info("Deleted user", extra={"user_id": user_id})

    async def get_user_by_id(self, user_id: int) -> User:
        async with self._lock:
            user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found.", {"user_id": user_id})
        return user

    async def get_users_by_role(self, role: UserRole) -> list[User]:
        async with self._lock:
            users = [user for user in self.users.values() if user.role == role]
        if not users:
            raise NotFoundError("No users found with the specified role.", {"role": role.value})
        return users

    # =========================================================================
    # Pharmaceuticals
    # =========================================================================

    async def create_pharmaceutical(self, payload: PharmaceuticalPayload) -> Pharmaceutical:
        """Register a batch on behalf of an Admin user.

        Raises:
            InvalidInputError: If a field is empty or expiry_date is zero
            UnauthorizedError: If user_id is not currently an Admin
        """
        if (
            not payload.name
            or not payload.manufacturer
            or not payload.batch_number
            or payload.expiry_date <= 0
        ):
            raise InvalidInputError("All fields are required")

        async with self._lock:
            owner = self.users.get(payload.user_id)
            if owner is None or owner.role != UserRole.ADMIN:
                raise UnauthorizedError(
                    "Only admins can create pharmaceuticals", {"user_id": payload.user_id}
                )

            with self.store.transaction():
                pharmaceutical = Pharmaceutical(
                    id=self._ids.next_id(),
                    user_id=payload.user_id,
                    name=payload.name,
                    manufacturer=payload.manufacturer,
                    batch_number=payload.batch_number,
                    expiry_date=payload.expiry_date,
                )
                self.pharmaceuticals.insert(pharmaceutical.id, pharmaceutical)

        logger.info(
            "Created pharmaceutical",
            extra={
                "pharmaceutical_id": pharmaceutical.id,
                "user_id": pharmaceutical.user_id,
                "batch_number": pharmaceutical.batch_number,
            },
        )
        return pharmaceutical

    async def delete_pharmaceutical(self, pharmaceutical_id: int) -> None:
        async with self._lock:
            with self.store.transaction():
                if self.pharmaceuticals.remove(pharmaceutical_id) is None:
                    raise NotFoundError(
                        "Pharmaceutical not found", {"pharmaceutical_id": pharmaceutical_id}
                    )
        logger.info("Deleted pharmaceutical", extra={"pharmaceutical_id": pharmaceutical_id})

    async def get_pharmaceutical_by_id(self, pharmaceutical_id: int) -> Pharmaceutical:
        async with self._lock:
            pharmaceutical = self.pharmaceuticals.get(pharmaceutical_id)
        if pharmaceutical is None:
            raise NotFoundError(
                "Pharmaceutical not found.", {"pharmaceutical_id": pharmaceutical_id}
            )
        return pharmaceutical

    async def get_all_pharmaceuticals(self) -> list[Pharmaceutical]:
        async with self._lock:
            pharmaceuticals = self.pharmaceuticals.values()
        if not pharmaceuticals:
            raise NotFoundError("No pharmaceuticals found.")
        return pharmaceuticals

    async def get_pharmaceutical_history(self, pharmaceutical_id: int) -> list[SupplyChainEvent]:
        """All events logged against a pharmaceutical, oldest first."""
        async with self._lock:
            events = [
                event
                for event in self.events.values()
                if event.pharmaceutical_id == pharmaceutical_id
            ]
        if not events:
            raise NotFoundError(
                "No events found for the provided pharmaceutical ID.",
                {"pharmaceutical_id": pharmaceutical_id},
            )
        return events

    # =========================================================================
    # Supply-chain events
    # =========================================================================

    async def create_supply_chain_event(
        self, payload: SupplyChainEventPayload
    ) -> SupplyChainEvent:
        """Log an event and credit its participant with a reward.

        The event and the reward are written in one transaction, each with
        its own identifier (the reward's is the event's plus one).

        Raises:
            InvalidInputError: If location or participant is empty, or the
                pharmaceutical does not exist
        """
        if not payload.location or not payload.participant:
            raise InvalidInputError("All fields are required")

        async with self._lock:
            if not self.pharmaceuticals.contains(payload.pharmaceutical_id):
                raise InvalidInputError(
                    "Pharmaceutical with the provided ID does not exist.",
                    {"pharmaceutical_id": payload.pharmaceutical_id},
                )

            with self.store.transaction():
                event = SupplyChainEvent(
                    id=self._ids.next_id(),
                    pharmaceutical_id=payload.pharmaceutical_id,
                    event_type=payload.event_type,
                    location=payload.location,
                    date=self._clock(),
                    participant=payload.participant,
                )
                self.events.insert(event.id, event)

                reward = Reward(
                    id=self._ids.next_id(),
                    participant=payload.participant,
                    points=EVENT_REWARD_POINTS,
                    reward_type=RewardType.SUPPLY_CHAIN_EVENT,
                )
                self.rewards.insert(reward.id, reward)

        logger.info(
            "Logged supply chain event",
            extra={
                "event_id": event.id,
                "pharmaceutical_id": event.pharmaceutical_id,
                "event_type": event.event_type.value,
                "reward_id": reward.id,
            },
        )
        return event

    async def delete_supply_chain_event(self, event_id: int) -> None:
        async with self._lock:
            with self.store.transaction():
                if self.events.remove(event_id) is None:
                    raise NotFoundError("Supply chain event not found", {"event_id": event_id})
        logger.info("Deleted supply chain event", extra={"event_id": event_id})

    async def get_supply_chain_event_by_id(self, event_id: int) -> SupplyChainEvent:
        async with self._lock:
            event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("Supply chain event not found.", {"event_id": event_id})
        return event

    async def get_all_supply_chain_events(self) -> list[SupplyChainEvent]:
        async with self._lock:
            events = self.events.values()
        if not events:
            raise NotFoundError("No supply chain events found.")
        return events

    # =========================================================================
    # Rewards
    # =========================================================================

    async def create_reward(self, payload: RewardPayload) -> Reward:
        if not payload.participant or payload.points <= 0:
            raise InvalidInputError("All fields are required")
        if payload.points > MAX_POINTS:
            raise InvalidInputError(
                f"Points must not exceed {MAX_POINTS}", {"points": payload.points}
            )

        async with self._lock:
            with self.store.transaction():
                reward = Reward(
                    id=self._ids.next_id(),
                    participant=payload.participant,
                    points=payload.points,
                    reward_type=payload.reward_type,
                )
                self.rewards.insert(reward.id, reward)

        logger.info(
            "Created reward",
            extra={"reward_id": reward.id, "points": reward.points},
        )
        return reward

    async def delete_reward(self, reward_id: int) -> None:
        async with self._lock:
            with self.store.transaction():
                if self.rewards.remove(reward_id) is None:
                    raise NotFoundError("Reward not found", {"reward_id": reward_id})
        logger.info("Deleted reward", extra={"reward_id": reward_id})

    async def get_reward_by_id(self, reward_id: int) -> Reward:
        async with self._lock:
            reward = self.rewards.get(reward_id)
        if reward is None:
            raise NotFoundError("Reward not found.", {"reward_id": reward_id})
        return reward

    async def get_all_rewards(self) -> list[Reward]:
        async with self._lock:
            rewards = self.rewards.values()
        if not rewards:
            raise NotFoundError("No rewards found.")
        return rewards
