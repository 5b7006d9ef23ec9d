"""Customer facing endpoints for earning, redeeming and balance lookups."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from bankrewards_api.api.dependencies.loyalty import get_loyalty_service
from bankrewards_api.api.errors import to_http_exception
from bankrewards_api.core.settings import settings
from bankrewards_api.domain.loyalty import Points, Redemption, Reward, Tier, Transaction
from bankrewards_api.services.loyalty import LoyaltyError, LoyaltyService


router = APIRouter(prefix="/loyalty", tags=["loyalty"])


class PointsResponse(BaseModel):
    customerId: UUID
    totalPoints: int
    availablePoints: int
    lifetimeEarned: int
    lifetimeRedeemed: int
    updatedAt: datetime


class TierResponse(BaseModel):
    id: UUID
    name: str
    minimumPoints: int
    multiplier: float
    benefits: List[str]
    color: str
    isActive: bool


class TransactionResponse(BaseModel):
    id: UUID
    customerId: UUID
    type: str
    points: int
    description: str
    category: str
    amount: Optional[float]
    currency: Optional[str]
    ruleId: Optional[UUID]
    campaignId: Optional[UUID]
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdAt: datetime


class RedemptionResponse(BaseModel):
    id: UUID
    customerId: UUID
    rewardId: UUID
    pointsUsed: int
    value: float
    status: str
    code: Optional[str]
    expiresAt: Optional[datetime]
    redeemedAt: Optional[datetime]
    createdAt: datetime


class RewardResponse(BaseModel):
    id: UUID
    name: str
    description: str
    type: str
    cost: int
    value: float
    category: str
    provider: Optional[str]
    stock: int
    terms: Optional[str]
    isActive: bool


class EarnRequest(BaseModel):
    customerId: UUID
    category: str = Field(..., min_length=1, description="Rule category, e.g. banking")
    serviceType: str = Field(..., min_length=1, description="Action within the category, e.g. transfer")
    amount: Optional[Decimal] = Field(None, description="Currency amount for amount based rules")
    metadata: Optional[dict[str, Any]] = Field(None, description="Context stored on the transaction")


class EarnResponse(BaseModel):
    transaction: TransactionResponse
    pointsEarned: int
    points: PointsResponse
    promotedTo: Optional[TierResponse]


class RedeemRequest(BaseModel):
    customerId: UUID
    rewardId: UUID


class RedeemResponse(BaseModel):
    redemption: RedemptionResponse
    transaction: TransactionResponse


class BalanceResponse(BaseModel):
    points: PointsResponse
    tier: Optional[TierResponse]
    nextTier: Optional[TierResponse]
    pointsToNextTier: int
    progressToNextTier: float


class HistoryResponse(BaseModel):
    transactions: List[TransactionResponse]


def serialize_points(points: Points) -> PointsResponse:
    return PointsResponse(
        customerId=points.customer_id,
        totalPoints=points.total_points,
        availablePoints=points.available_points,
        lifetimeEarned=points.lifetime_earned,
        lifetimeRedeemed=points.lifetime_redeemed,
        updatedAt=points.updated_at,
    )


def serialize_tier(tier: Tier | None) -> TierResponse | None:
    if tier is None:
        return None
    return TierResponse(
        id=tier.id,
        name=tier.name,
        minimumPoints=tier.minimum_points,
        multiplier=float(tier.multiplier),
        benefits=list(tier.benefits),
        color=tier.color,
        isActive=tier.is_active,
    )


def serialize_transaction(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        customerId=transaction.customer_id,
        type=transaction.type.value,
        points=transaction.points,
        description=transaction.description,
        category=transaction.category,
        amount=float(transaction.amount) if transaction.amount is not None else None,
        currency=transaction.currency,
        ruleId=transaction.rule_id,
        campaignId=transaction.campaign_id,
        status=transaction.status.value,
        metadata=transaction.metadata or {},
        createdAt=transaction.created_at,
    )


def serialize_redemption(redemption: Redemption) -> RedemptionResponse:
    return RedemptionResponse(
        id=redemption.id,
        customerId=redemption.customer_id,
        rewardId=redemption.reward_id,
        pointsUsed=redemption.points_used,
        value=float(redemption.value),
        status=redemption.status.value,
        code=redemption.code,
        expiresAt=redemption.expires_at,
        redeemedAt=redemption.redeemed_at,
        createdAt=redemption.created_at,
    )


def serialize_reward(reward: Reward) -> RewardResponse:
    return RewardResponse(
        id=reward.id,
        name=reward.name,
        description=reward.description,
        type=reward.type,
        cost=reward.cost,
        value=float(reward.value),
        category=reward.category,
        provider=reward.provider,
        stock=reward.stock,
        terms=reward.terms,
        isActive=reward.is_active,
    )


@router.post("/earn", response_model=EarnResponse, status_code=status.HTTP_201_CREATED)
async def earn_points(
    payload: EarnRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> EarnResponse:
    """Award points for a customer action using the matching earning rule."""

    try:
        result = await service.earn_points(
            payload.customerId,
            payload.category,
            payload.serviceType,
            amount=payload.amount,
            metadata=payload.metadata,
        )
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc

    return EarnResponse(
        transaction=serialize_transaction(result.transaction),
        pointsEarned=result.points_earned,
        points=serialize_points(result.balance),
        promotedTo=serialize_tier(result.promoted_to),
    )


@router.post("/redeem", response_model=RedeemResponse, status_code=status.HTTP_201_CREATED)
async def redeem_points(
    payload: RedeemRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> RedeemResponse:
    try:
        result = await service.redeem_points(payload.customerId, payload.rewardId)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc

    return RedeemResponse(
        redemption=serialize_redemption(result.redemption),
        transaction=serialize_transaction(result.transaction),
    )


@router.get("/balance/{customer_id}", response_model=BalanceResponse)
async def check_balance(
    customer_id: UUID,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> BalanceResponse:
    try:
        snapshot = await service.check_balance(customer_id)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc

    return BalanceResponse(
        points=serialize_points(snapshot.points),
        tier=serialize_tier(snapshot.tier),
        nextTier=serialize_tier(snapshot.next_tier),
        pointsToNextTier=snapshot.points_to_next_tier,
        progressToNextTier=float(snapshot.progress * 100),
    )


@router.get("/history/{customer_id}", response_model=HistoryResponse)
async def get_history(
    customer_id: UUID,
    limit: int = Query(settings.history_default_limit, ge=1),
    service: LoyaltyService = Depends(get_loyalty_service),
) -> HistoryResponse:
    """Return the customer's transactions, newest first."""

    try:
        transactions = await service.get_history(customer_id, limit)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return HistoryResponse(transactions=[serialize_transaction(item) for item in transactions])


@router.get("/customers/{customer_id}/redemptions", response_model=List[RedemptionResponse])
async def list_customer_redemptions(
    customer_id: UUID,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> List[RedemptionResponse]:
    redemptions = await service.list_customer_redemptions(customer_id)
    return [serialize_redemption(item) for item in redemptions]


@router.get("/rewards", response_model=List[RewardResponse])
async def list_rewards(service: LoyaltyService = Depends(get_loyalty_service)) -> List[RewardResponse]:
    """Active rewards available for redemption."""

    return [serialize_reward(reward) for reward in await service.list_active_rewards()]
