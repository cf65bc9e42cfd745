"""
API routes for PharmaLedger.

Every endpoint is a thin wrapper over one SupplyChainLedger operation.
Domain errors propagate to the exception handlers registered in app.py,
which turn them into JSON error bodies.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from ..ledger import (
    PharmaceuticalPayload,
    RewardPayload,
    SupplyChainEventPayload,
    SupplyChainLedger,
    UserPayload,
)
from ..records import RewardType, SupplyChainEventType, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(tags=["PharmaLedger"])


# =============================================================================
# Request/Response Models
# =============================================================================


class UserCreateRequest(BaseModel):
    """Register a user."""

    username: str = Field(..., description="Display name (non-empty)")
    role: UserRole = Field(..., description="Admin, Manufacturer, Distributor or Viewer")


class UserRoleUpdateRequest(BaseModel):
    """Change a user's role."""

    role: UserRole = Field(..., description="New role")


class PharmaceuticalCreateRequest(BaseModel):
    """Register a pharmaceutical batch (owner must be an Admin)."""

    user_id: int = Field(..., ge=0, description="Owning Admin user ID")
    name: str = Field(..., description="Product name")
    manufacturer: str = Field(..., description="Manufacturer name")
    batch_number: str = Field(..., description="Batch number")
    expiry_date: int = Field(..., ge=0, description="Expiry time, nanoseconds since epoch")


class SupplyChainEventCreateRequest(BaseModel):
    """Log a supply-chain event."""

    pharmaceutical_id: int = Field(..., ge=0, description="Pharmaceutical ID")
    event_type: SupplyChainEventType = Field(
        default=SupplyChainEventType.PRODUCTION, description="Supply-chain stage"
    )
    location: str = Field(..., description="Where the event happened")
    participant: str = Field(..., description="Acting party")


class RewardCreateRequest(BaseModel):
    """Issue a reward manually."""

    participant: str = Field(..., description="Rewarded party")
    points: int = Field(..., ge=0, description="Points (non-zero)")
    reward_type: RewardType = Field(default=RewardType.SUPPLY_CHAIN_EVENT)


class UserResponse(BaseModel):
    id: int
    username: str
    role: UserRole


class PharmaceuticalResponse(BaseModel):
    id: int
    user_id: int
    name: str
    manufacturer: str
    batch_number: str
    expiry_date: int


class SupplyChainEventResponse(BaseModel):
    id: int
    pharmaceutical_id: int
    event_type: SupplyChainEventType
    location: str
    date: int
    participant: str


class RewardResponse(BaseModel):
    id: int
    participant: str
    points: int
    reward_type: RewardType


# =============================================================================
# Dependencies
# =============================================================================


def get_ledger(request: Request) -> SupplyChainLedger:
    """Get ledger from app state."""
    return request.app.state.ledger


# =============================================================================
# Users
# =============================================================================


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    user = await ledger.create_user(UserPayload(username=body.username, role=body.role))
    return user.to_dict()


@router.get("/users", response_model=list[UserResponse])
async def get_users_by_role(
    role: UserRole = Query(..., description="Role to filter by"),
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    users = await ledger.get_users_by_role(role)
    return [user.to_dict() for user in users]


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, ledger: SupplyChainLedger = Depends(get_ledger)):
    user = await ledger.get_user_by_id(user_id)
    return user.to_dict()


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    body: UserRoleUpdateRequest,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    user = await ledger.update_user_role(user_id, body.role)
    return user.to_dict()


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(user_id: int, ledger: SupplyChainLedger = Depends(get_ledger)):
    await ledger.delete_user(user_id)


# =============================================================================
# Pharmaceuticals
# =============================================================================


@router.post("/pharmaceuticals", response_model=PharmaceuticalResponse, status_code=201)
async def create_pharmaceutical(
    body: PharmaceuticalCreateRequest,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    pharmaceutical = await ledger.create_pharmaceutical(
        PharmaceuticalPayload(
            name=body.name,
            user_id=body.user_id,
            manufacturer=body.manufacturer,
            batch_number=body.batch_number,
            expiry_date=body.expiry_date,
        )
    )
    return pharmaceutical.to_dict()


@router.get("/pharmaceuticals", response_model=list[PharmaceuticalResponse])
async def get_all_pharmaceuticals(ledger: SupplyChainLedger = Depends(get_ledger)):
    pharmaceuticals = await ledger.get_all_pharmaceuticals()
    return [p.to_dict() for p in pharmaceuticals]


@router.get("/pharmaceuticals/{pharmaceutical_id}", response_model=PharmaceuticalResponse)
async def get_pharmaceutical(
    pharmaceutical_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    pharmaceutical = await ledger.get_pharmaceutical_by_id(pharmaceutical_id)
    return pharmaceutical.to_dict()


@router.get(
    "/pharmaceuticals/{pharmaceutical_id}/history",
    response_model=list[SupplyChainEventResponse],
)
async def get_pharmaceutical_history(
    pharmaceutical_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    events = await ledger.get_pharmaceutical_history(pharmaceutical_id)
    return [event.to_dict() for event in events]


@router.delete("/pharmaceuticals/{pharmaceutical_id}", status_code=204)
async def delete_pharmaceutical(
    pharmaceutical_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    await ledger.delete_pharmaceutical(pharmaceutical_id)


# =============================================================================
# Supply-chain events
# =============================================================================


@router.post("/events", response_model=SupplyChainEventResponse, status_code=201)
async def create_supply_chain_event(
    body: SupplyChainEventCreateRequest,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    event = await ledger.create_supply_chain_event(
        SupplyChainEventPayload(
            pharmaceutical_id=body.pharmaceutical_id,
            location=body.location,
            participant=body.participant,
            event_type=body.event_type,
        )
    )
    return event.to_dict()


@router.get("/events", response_model=list[SupplyChainEventResponse])
async def get_all_supply_chain_events(ledger: SupplyChainLedger = Depends(get_ledger)):
    events = await ledger.get_all_supply_chain_events()
    return [event.to_dict() for event in events]


@router.get("/events/{event_id}", response_model=SupplyChainEventResponse)
async def get_supply_chain_event(event_id: int, ledger: SupplyChainLedger = Depends(get_ledger)):
    event = await ledger.get_supply_chain_event_by_id(event_id)
    return event.to_dict()


@router.delete("/events/{event_id}", status_code=204)
async def delete_supply_chain_event(
    event_id: int,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    await ledger.delete_supply_chain_event(event_id)


# =============================================================================
# Rewards
# =============================================================================


@router.post("/rewards", response_model=RewardResponse, status_code=201)
async def create_reward(
    body: RewardCreateRequest,
    ledger: SupplyChainLedger = Depends(get_ledger),
):
    reward = await ledger.create_reward(
        RewardPayload(
            participant=body.participant,
            points=body.points,
            reward_type=body.reward_type,
        )
    )
    return reward.to_dict()


@router.get("/rewards", response_model=list[RewardResponse])
async def get_all_rewards(ledger: SupplyChainLedger = Depends(get_ledger)):
    rewards = await ledger.get_all_rewards()
    return [reward.to_dict() for reward in rewards]


@router.get("/rewards/{reward_id}", response_model=RewardResponse)
async def get_reward(reward_id: int, ledger: SupplyChainLedger = Depends(get_ledger)):
    reward = await ledger.get_reward_by_id(reward_id)
    return reward.to_dict()


@router.delete("/rewards/{reward_id}", status_code=204)
async def delete_reward(reward_id: int, ledger: SupplyChainLedger = Depends(get_ledger)):
    await ledger.delete_reward(reward_id)
