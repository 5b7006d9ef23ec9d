"""Administrative catalogue and dashboard endpoints (require the admin API key)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from bankrewards_api.api.dependencies.loyalty import get_analytics_service, get_loyalty_service
from bankrewards_api.api.dependencies.security import require_admin_api_key
from bankrewards_api.api.errors import to_http_exception
from bankrewards_api.api.v1.endpoints.loyalty import (
    RewardResponse,
    TierResponse,
    TransactionResponse,
    serialize_reward,
    serialize_tier,
    serialize_transaction,
)
from bankrewards_api.domain.loyalty import (
    Branch,
    Campaign,
    CampaignStatus,
    Reward,
    Rule,
    RuleUnit,
    Tier,
    UNLIMITED_STOCK,
)
from bankrewards_api.services.loyalty import (
    CustomerSummary,
    LoyaltyAnalyticsService,
    LoyaltyError,
    LoyaltyService,
)


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_api_key)])


class RuleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    serviceType: str = Field(..., min_length=1)
    pointsPerUnit: int = Field(..., ge=0)
    unit: Literal["amount", "action"]
    unitValue: Decimal = Field(Decimal("1"), gt=0)
    minimumAmount: Optional[Decimal] = None
    maximumPoints: Optional[int] = Field(None, ge=0)
    multiplier: Decimal = Decimal("1.0")
    conditions: dict[str, Any] = Field(default_factory=dict)
    isActive: bool = True


class RuleUpdateRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    serviceType: Optional[str] = None
    pointsPerUnit: Optional[int] = Field(None, ge=0)
    unit: Optional[Literal["amount", "action"]] = None
    unitValue: Optional[Decimal] = Field(None, gt=0)
    minimumAmount: Optional[Decimal] = None
    maximumPoints: Optional[int] = Field(None, ge=0)
    multiplier: Optional[Decimal] = None
    conditions: Optional[dict[str, Any]] = None
    isActive: Optional[bool] = None


class RuleResponse(BaseModel):
    id: UUID
    name: str
    category: str
    serviceType: str
    pointsPerUnit: int
    unit: str
    unitValue: float
    minimumAmount: Optional[float]
    maximumPoints: Optional[int]
    multiplier: float
    conditions: dict[str, Any]
    isActive: bool
    createdAt: datetime
    updatedAt: datetime


class TierCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    minimumPoints: int = Field(..., ge=0)
    multiplier: Decimal = Field(Decimal("1.0"), gt=0)
    benefits: List[str] = Field(default_factory=list)
    color: str = "#C0C0C0"
    isActive: bool = True


class TierUpdateRequest(BaseModel):
    name: Optional[str] = None
    minimumPoints: Optional[int] = Field(None, ge=0)
    multiplier: Optional[Decimal] = Field(None, gt=0)
    benefits: Optional[List[str]] = None
    color: Optional[str] = None
    isActive: Optional[bool] = None


class CustomerCreateRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    firstName: str
    lastName: str
    phoneNumber: Optional[str] = None
    bankingId: Optional[str] = None
    branchId: Optional[UUID] = None


class CustomerResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: Optional[str]
    tier: Optional[str]
    points: int
    status: str
    joinDate: datetime
    lastActivity: datetime


class CustomerTierRequest(BaseModel):
    tierId: UUID


class CustomerTierResponse(BaseModel):
    customerId: UUID
    tierId: UUID
    achievedAt: datetime
    isActive: bool


class CampaignCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    type: Literal["multiplier", "bonus", "special"]
    startDate: datetime
    endDate: datetime
    rules: dict[str, Any] = Field(default_factory=dict)
    targetCustomers: List[str] = Field(default_factory=list)
    budget: Optional[int] = Field(None, ge=0)
    status: Literal["active", "scheduled", "ended"] = "active"
    createdBy: str = "admin"


class CampaignUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[Literal["multiplier", "bonus", "special"]] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    rules: Optional[dict[str, Any]] = None
    targetCustomers: Optional[List[str]] = None
    budget: Optional[int] = Field(None, ge=0)
    spent: Optional[int] = Field(None, ge=0)
    participants: Optional[int] = Field(None, ge=0)
    status: Optional[Literal["active", "scheduled", "ended"]] = None


class CampaignResponse(BaseModel):
    id: UUID
    name: str
    description: str
    type: str
    startDate: datetime
    endDate: datetime
    rules: dict[str, Any]
    targetCustomers: List[str]
    budget: Optional[int]
    spent: int
    participants: int
    status: str
    createdBy: str
    createdAt: datetime


class RewardCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    type: str = Field(..., min_length=1)
    cost: int = Field(..., ge=0)
    value: Decimal = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    provider: Optional[str] = None
    stock: int = Field(UNLIMITED_STOCK, ge=UNLIMITED_STOCK, description="-1 means unlimited")
    terms: Optional[str] = None
    isActive: bool = True


class RewardUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    cost: Optional[int] = Field(None, ge=0)
    value: Optional[Decimal] = Field(None, ge=0)
    category: Optional[str] = None
    provider: Optional[str] = None
    stock: Optional[int] = Field(None, ge=UNLIMITED_STOCK)
    terms: Optional[str] = None
    isActive: Optional[bool] = None


class BranchCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    city: str
    region: str
    manager: Optional[str] = None


class BranchResponse(BaseModel):
    id: UUID
    name: str
    code: str
    city: str
    region: str
    manager: Optional[str]
    isActive: bool


class DashboardMetrics(BaseModel):
    totalCustomers: int
    totalPointsIssued: int
    totalPointsRedeemed: int
    activeCampaigns: int


class BranchMetricResponse(BaseModel):
    branchId: UUID
    branchName: str
    customers: int
    points: int


class DashboardResponse(BaseModel):
    metrics: DashboardMetrics
    branchMetrics: List[BranchMetricResponse]
    recentActivity: List[TransactionResponse]
    computedAt: datetime


# camelCase request field -> domain attribute
_RULE_FIELDS = {
    "name": "name",
    "category": "category",
    "serviceType": "service_type",
    "pointsPerUnit": "points_per_unit",
    "unit": "unit",
    "unitValue": "unit_value",
    "minimumAmount": "minimum_amount",
    "maximumPoints": "maximum_points",
    "multiplier": "multiplier",
    "conditions": "conditions",
    "isActive": "is_active",
}
_TIER_FIELDS = {
    "name": "name",
    "minimumPoints": "minimum_points",
    "multiplier": "multiplier",
    "benefits": "benefits",
    "color": "color",
    "isActive": "is_active",
}
_CAMPAIGN_FIELDS = {
    "name": "name",
    "description": "description",
    "type": "type",
    "startDate": "start_date",
    "endDate": "end_date",
    "rules": "rules",
    "targetCustomers": "target_customers",
    "budget": "budget",
    "spent": "spent",
    "participants": "participants",
    "status": "status",
}
_REWARD_FIELDS = {
    "name": "name",
    "description": "description",
    "type": "type",
    "cost": "cost",
    "value": "value",
    "category": "category",
    "provider": "provider",
    "stock": "stock",
    "terms": "terms",
    "isActive": "is_active",
}


def _collect_changes(payload: BaseModel, field_map: dict[str, str]) -> dict[str, Any]:
    changes = {field_map[key]: value for key, value in payload.model_dump(exclude_unset=True).items()}
    if changes.get("unit") is not None:
        changes["unit"] = RuleUnit(changes["unit"])
    if changes.get("status") is not None:
        changes["status"] = CampaignStatus(changes["status"])
    return changes


def _serialize_rule(rule: Rule) -> RuleResponse:
    return RuleResponse(
        id=rule.id,
        name=rule.name,
        category=rule.category,
        serviceType=rule.service_type,
        pointsPerUnit=rule.points_per_unit,
        unit=rule.unit.value,
        unitValue=float(rule.unit_value),
        minimumAmount=float(rule.minimum_amount) if rule.minimum_amount is not None else None,
        maximumPoints=rule.maximum_points,
        multiplier=float(rule.multiplier),
        conditions=rule.conditions or {},
        isActive=rule.is_active,
        createdAt=rule.created_at,
        updatedAt=rule.updated_at,
    )


def _serialize_campaign(campaign: Campaign) -> CampaignResponse:
    return CampaignResponse(
        id=campaign.id,
        name=campaign.name,
        description=campaign.description,
        type=campaign.type,
        startDate=campaign.start_date,
        endDate=campaign.end_date,
        rules=campaign.rules or {},
        targetCustomers=list(campaign.target_customers),
        budget=campaign.budget,
        spent=campaign.spent,
        participants=campaign.participants,
        status=campaign.status.value,
        createdBy=campaign.created_by,
        createdAt=campaign.created_at,
    )


def _serialize_customer(summary: CustomerSummary) -> CustomerResponse:
    user = summary.user
    return CustomerResponse(
        id=user.id,
        name=user.full_name,
        email=user.email,
        phone=user.phone_number,
        tier=summary.tier_name,
        points=summary.available_points,
        status="Active" if user.is_active else "Inactive",
        joinDate=user.created_at,
        lastActivity=user.updated_at,
    )


def _serialize_branch(branch: Branch) -> BranchResponse:
    return BranchResponse(
        id=branch.id,
        name=branch.name,
        code=branch.code,
        city=branch.city,
        region=branch.region,
        manager=branch.manager,
        isActive=branch.is_active,
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    analytics: LoyaltyAnalyticsService = Depends(get_analytics_service),
) -> DashboardResponse:
    """Platform totals, per-branch activity and the latest transactions."""

    snapshot = await analytics.dashboard()
    return DashboardResponse(
        metrics=DashboardMetrics(
            totalCustomers=snapshot.total_customers,
            totalPointsIssued=snapshot.total_points_issued,
            totalPointsRedeemed=snapshot.total_points_redeemed,
            activeCampaigns=snapshot.active_campaigns,
        ),
        branchMetrics=[
            BranchMetricResponse(
                branchId=metric.branch_id,
                branchName=metric.branch_name,
                customers=metric.customers,
                points=metric.points,
            )
            for metric in snapshot.branch_metrics
        ],
        recentActivity=[serialize_transaction(item) for item in snapshot.recent_activity],
        computedAt=snapshot.computed_at,
    )


@router.get("/rules", response_model=List[RuleResponse])
async def list_rules(service: LoyaltyService = Depends(get_loyalty_service)) -> List[RuleResponse]:
    return [_serialize_rule(rule) for rule in await service.list_rules()]


@router.post("/rules", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    payload: RuleCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> RuleResponse:
    rule = Rule(
        name=payload.name,
        category=payload.category,
        service_type=payload.serviceType,
        points_per_unit=payload.pointsPerUnit,
        unit=RuleUnit(payload.unit),
        unit_value=payload.unitValue,
        minimum_amount=payload.minimumAmount,
        maximum_points=payload.maximumPoints,
        multiplier=payload.multiplier,
        conditions=payload.conditions,
        is_active=payload.isActive,
    )
    try:
        created = await service.create_rule(rule)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_rule(created)


@router.put("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: UUID,
    payload: RuleUpdateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> RuleResponse:
    try:
        rule = await service.update_rule(rule_id, _collect_changes(payload, _RULE_FIELDS))
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_rule(rule)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: UUID,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> Response:
    try:
        await service.delete_rule(rule_id)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tiers", response_model=List[TierResponse])
async def list_tiers(service: LoyaltyService = Depends(get_loyalty_service)) -> List[TierResponse]:
    return [serialize_tier(tier) for tier in await service.list_tiers()]


@router.post("/tiers", response_model=TierResponse, status_code=status.HTTP_201_CREATED)
async def create_tier(
    payload: TierCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> TierResponse:
    tier = Tier(
        name=payload.name,
        minimum_points=payload.minimumPoints,
        multiplier=payload.multiplier,
        benefits=payload.benefits,
        color=payload.color,
        is_active=payload.isActive,
    )
    try:
        created = await service.create_tier(tier)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return serialize_tier(created)


@router.put("/tiers/{tier_id}", response_model=TierResponse)
async def update_tier(
    tier_id: UUID,
    payload: TierUpdateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> TierResponse:
    try:
        tier = await service.update_tier(tier_id, _collect_changes(payload, _TIER_FIELDS))
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return serialize_tier(tier)


@router.get("/customers", response_model=List[CustomerResponse])
async def list_customers(
    branch_id: Optional[UUID] = Query(None, alias="branchId"),
    limit: Optional[int] = Query(None, ge=1),
    service: LoyaltyService = Depends(get_loyalty_service),
) -> List[CustomerResponse]:
    summaries = await service.list_customers(branch_id=branch_id, limit=limit)
    return [_serialize_customer(summary) for summary in summaries]


@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def register_customer(
    payload: CustomerCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> CustomerResponse:
    """Register a customer with an empty points balance."""

    try:
        user = await service.register_customer(
            username=payload.username,
            email=payload.email,
            first_name=payload.firstName,
            last_name=payload.lastName,
            phone_number=payload.phoneNumber,
            banking_id=payload.bankingId,
            branch_id=payload.branchId,
        )
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_customer(CustomerSummary(user=user, available_points=0, tier_name=None))


@router.put("/customers/{customer_id}/tier", response_model=CustomerTierResponse)
async def assign_customer_tier(
    customer_id: UUID,
    payload: CustomerTierRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> CustomerTierResponse:
    try:
        assignment = await service.assign_customer_tier(customer_id, payload.tierId)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return CustomerTierResponse(
        customerId=assignment.customer_id,
        tierId=assignment.tier_id,
        achievedAt=assignment.achieved_at,
        isActive=assignment.is_active,
    )


@router.get("/campaigns", response_model=List[CampaignResponse])
async def list_campaigns(
    active: bool = Query(False, description="Only campaigns running right now"),
    service: LoyaltyService = Depends(get_loyalty_service),
) -> List[CampaignResponse]:
    campaigns = await (service.list_active_campaigns() if active else service.list_campaigns())
    return [_serialize_campaign(campaign) for campaign in campaigns]


@router.post("/campaigns", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    payload: CampaignCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> CampaignResponse:
    campaign = Campaign(
        name=payload.name,
        description=payload.description,
        type=payload.type,
        start_date=payload.startDate,
        end_date=payload.endDate,
        created_by=payload.createdBy,
        rules=payload.rules,
        target_customers=payload.targetCustomers,
        budget=payload.budget,
        status=CampaignStatus(payload.status),
    )
    try:
        created = await service.create_campaign(campaign)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_campaign(created)


@router.put("/campaigns/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    payload: CampaignUpdateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> CampaignResponse:
    try:
        campaign = await service.update_campaign(campaign_id, _collect_changes(payload, _CAMPAIGN_FIELDS))
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_campaign(campaign)


@router.get("/rewards", response_model=List[RewardResponse])
async def list_rewards(service: LoyaltyService = Depends(get_loyalty_service)) -> List[RewardResponse]:
    """Full reward catalogue, inactive rewards included."""

    return [serialize_reward(reward) for reward in await service.list_rewards()]


@router.post("/rewards", response_model=RewardResponse, status_code=status.HTTP_201_CREATED)
async def create_reward(
    payload: RewardCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> RewardResponse:
    reward = Reward(
        name=payload.name,
        description=payload.description,
        type=payload.type,
        cost=payload.cost,
        value=payload.value,
        category=payload.category,
        provider=payload.provider,
        stock=payload.stock,
        terms=payload.terms,
        is_active=payload.isActive,
    )
    try:
        created = await service.create_reward(reward)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return serialize_reward(created)


@router.put("/rewards/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: UUID,
    payload: RewardUpdateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> RewardResponse:
    try:
        reward = await service.update_reward(reward_id, _collect_changes(payload, _REWARD_FIELDS))
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return serialize_reward(reward)


@router.get("/branches", response_model=List[BranchResponse])
async def list_branches(service: LoyaltyService = Depends(get_loyalty_service)) -> List[BranchResponse]:
    return [_serialize_branch(branch) for branch in await service.list_branches()]


@router.post("/branches", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def create_branch(
    payload: BranchCreateRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> BranchResponse:
    branch = Branch(
        name=payload.name,
        code=payload.code,
        city=payload.city,
        region=payload.region,
        manager=payload.manager,
    )
    try:
        created = await service.create_branch(branch)
    except LoyaltyError as exc:
        raise to_http_exception(exc) from exc
    return _serialize_branch(created)
