"""Loyalty domain records shared by the engine and every repository backend.

The records are plain mutable dataclasses: repositories hand out copies and
persist changes through explicit ``save_*`` calls, so an engine component can
never mutate stored state behind the repository's back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    ADMIN = "admin"
    BRANCH_MANAGER = "branch_manager"
    CUSTOMER = "customer"


class TransactionType(str, Enum):
    EARN = "earn"
    REDEEM = "redeem"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RuleUnit(str, Enum):
    AMOUNT = "amount"
    ACTION = "action"


class CampaignStatus(str, Enum):
    ACTIVE = "active"
    SCHEDULED = "scheduled"
    ENDED = "ended"


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class User:
    username: str
    email: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.CUSTOMER
    phone_number: str | None = None
    banking_id: str | None = None
    branch_id: UUID | None = None
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class Points:
    """Running balance for one customer; only the ledger changes it."""

    customer_id: UUID
    total_points: int = 0
    available_points: int = 0
    lifetime_earned: int = 0
    lifetime_redeemed: int = 0
    id: UUID = field(default_factory=uuid4)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Transaction:
    """Append-only audit record of a single earn or redeem."""

    customer_id: UUID
    type: TransactionType
    points: int
    description: str
    category: str
    amount: Decimal | None = None
    currency: str | None = "ETB"
    rule_id: UUID | None = None
    campaign_id: UUID | None = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    metadata: dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Rule:
    name: str
    category: str
    service_type: str
    points_per_unit: int
    unit: RuleUnit
    unit_value: Decimal = Decimal("1")
    minimum_amount: Decimal | None = None
    maximum_points: int | None = None
    # multiplier and conditions are surfaced to admins only; earning ignores them.
    multiplier: Decimal = Decimal("1.0")
    conditions: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Tier:
    name: str
    minimum_points: int
    multiplier: Decimal = Decimal("1.0")
    benefits: list[str] = field(default_factory=list)
    color: str = "#C0C0C0"
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class CustomerTierAssignment:
    customer_id: UUID
    tier_id: UUID
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    achieved_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Campaign:
    """Promotional window; catalogue data only, earning never consults it."""

    name: str
    description: str
    type: str
    start_date: datetime
    end_date: datetime
    created_by: str
    rules: dict[str, Any] = field(default_factory=dict)
    target_customers: list[str] = field(default_factory=list)
    budget: int | None = None
    spent: int = 0
    participants: int = 0
    status: CampaignStatus = CampaignStatus.ACTIVE
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def is_running(self, at: datetime) -> bool:
        return self.status == CampaignStatus.ACTIVE and self.start_date <= at <= self.end_date


UNLIMITED_STOCK = -1


@dataclass(slots=True)
class Reward:
    name: str
    description: str
    type: str
    cost: int
    value: Decimal
    category: str
    provider: str | None = None
    stock: int = UNLIMITED_STOCK
    terms: str | None = None
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def has_unlimited_stock(self) -> bool:
        return self.stock == UNLIMITED_STOCK


@dataclass(slots=True)
class Redemption:
    customer_id: UUID
    reward_id: UUID
    points_used: int
    value: Decimal
    status: RedemptionStatus = RedemptionStatus.PENDING
    code: str | None = None
    expires_at: datetime | None = None
    redeemed_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Branch:
    name: str
    code: str
    city: str
    region: str
    manager: str | None = None
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)


__all__ = [
    "Branch",
    "Campaign",
    "CampaignStatus",
    "CustomerTierAssignment",
    "Points",
    "Redemption",
    "RedemptionStatus",
    "Reward",
    "Rule",
    "RuleUnit",
    "Tier",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UNLIMITED_STOCK",
    "User",
    "UserRole",
    "utcnow",
]
