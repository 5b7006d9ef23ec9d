"""SQLAlchemy-backed repository for the transactional deployment."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankrewards_api.db.base import Base
from bankrewards_api.domain.loyalty import (
    Branch,
    Campaign,
    CampaignStatus,
    CustomerTierAssignment,
    Points,
    Redemption,
    RedemptionStatus,
    Reward,
    Rule,
    RuleUnit,
    Tier,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    UserRole,
    utcnow,
)
from bankrewards_api.models import (
    BranchRecord,
    CampaignRecord,
    CustomerTierRecord,
    PointsRecord,
    RedemptionRecord,
    RewardRecord,
    RuleRecord,
    TierRecord,
    TransactionRecord,
    UserRecord,
)
from bankrewards_api.services.loyalty.locks import CustomerLockRegistry
from bankrewards_api.services.loyalty.repository import LoyaltyRepository

D = TypeVar("D")


@dataclass(frozen=True)
class _RecordMapping(Generic[D]):
    """Column <-> dataclass field correspondence for one entity."""

    domain: type[D]
    record: type[Base]
    enums: dict[str, type[Enum]] = field(default_factory=dict)
    renames: dict[str, str] = field(default_factory=dict)

    def to_domain(self, row: Any) -> D:
        values: dict[str, Any] = {}
        for item in fields(self.domain):  # type: ignore[arg-type]
            value = getattr(row, self.renames.get(item.name, item.name))
            enum_type = self.enums.get(item.name)
            if enum_type is not None and value is not None:
                value = enum_type(value)
            elif isinstance(value, datetime) and value.tzinfo is None:
                # SQLite drops tzinfo; every stored timestamp is UTC.
                value = value.replace(tzinfo=timezone.utc)
            values[item.name] = value
        return self.domain(**values)

    def apply(self, obj: D, row: Any) -> Any:
        for item in fields(self.domain):  # type: ignore[arg-type]
            value = getattr(obj, item.name)
            if isinstance(value, Enum):
                value = value.value
            setattr(row, self.renames.get(item.name, item.name), value)
        return row


_USERS = _RecordMapping(User, UserRecord, enums={"role": UserRole})
_POINTS = _RecordMapping(Points, PointsRecord)
_TRANSACTIONS = _RecordMapping(
    Transaction,
    TransactionRecord,
    enums={"type": TransactionType, "status": TransactionStatus},
    renames={"metadata": "metadata_json"},
)
_RULES = _RecordMapping(Rule, RuleRecord, enums={"unit": RuleUnit})
_TIERS = _RecordMapping(Tier, TierRecord)
_CUSTOMER_TIERS = _RecordMapping(CustomerTierAssignment, CustomerTierRecord)
_CAMPAIGNS = _RecordMapping(Campaign, CampaignRecord, enums={"status": CampaignStatus})
_REWARDS = _RecordMapping(Reward, RewardRecord)
_REDEMPTIONS = _RecordMapping(Redemption, RedemptionRecord, enums={"status": RedemptionStatus})
_BRANCHES = _RecordMapping(Branch, BranchRecord)


class SqlAlchemyLoyaltyRepository(LoyaltyRepository):
    """Repository over an ``AsyncSession``; one instance per request/unit of work."""

    def __init__(self, db_session: AsyncSession, *, locks: CustomerLockRegistry) -> None:
        self._db = db_session
        self._locks = locks

    @asynccontextmanager
    async def customer_scope(self, customer_id: UUID) -> AsyncIterator[None]:
        async with self._locks.hold(customer_id):
            try:
                yield
            except BaseException:
                await self._db.rollback()
                logger.debug("Rolled back customer scope", customer_id=str(customer_id))
                raise
            await self._db.commit()

    async def commit(self) -> None:
        await self._db.commit()

    async def _list(self, mapping: _RecordMapping[D], stmt) -> list[D]:
        result = await self._db.execute(stmt)
        return [mapping.to_domain(row) for row in result.scalars().all()]

    async def _one(self, mapping: _RecordMapping[D], stmt) -> D | None:
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return mapping.to_domain(row) if row is not None else None

    async def _get(self, mapping: _RecordMapping[D], identifier: UUID) -> D | None:
        row = await self._db.get(mapping.record, identifier)
        return mapping.to_domain(row) if row is not None else None

    async def _upsert(self, mapping: _RecordMapping[D], obj: D) -> D:
        row = await self._db.get(mapping.record, obj.id)  # type: ignore[attr-defined]
        if row is None:
            row = mapping.record()
            self._db.add(row)
        mapping.apply(obj, row)
        await self._db.flush()
        return obj

    # Users
    async def get_user(self, user_id: UUID) -> User | None:
        return await self._get(_USERS, user_id)

    async def get_user_by_username(self, username: str) -> User | None:
        return await self._one(_USERS, select(UserRecord).where(UserRecord.username == username))

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._one(_USERS, select(UserRecord).where(UserRecord.email == email))

    async def add_user(self, user: User) -> User:
        return await self._upsert(_USERS, user)

    async def save_user(self, user: User) -> User:
        user.updated_at = utcnow()
        return await self._upsert(_USERS, user)

    async def list_customers(self, *, branch_id: UUID | None = None) -> list[User]:
        stmt = (
            select(UserRecord)
            .where(UserRecord.role == UserRole.CUSTOMER.value)
            .order_by(UserRecord.created_at.asc())
        )
        if branch_id is not None:
            stmt = stmt.where(UserRecord.branch_id == branch_id)
        return await self._list(_USERS, stmt)

    # Points
    async def get_points(self, customer_id: UUID, *, for_update: bool = False) -> Points | None:
        stmt = select(PointsRecord).where(PointsRecord.customer_id == customer_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self._one(_POINTS, stmt)

    async def add_points(self, points: Points) -> Points:
        return await self._upsert(_POINTS, points)

    async def save_points(self, points: Points) -> Points:
        points.updated_at = utcnow()
        return await self._upsert(_POINTS, points)

    # Transactions
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        return await self._upsert(_TRANSACTIONS, transaction)

    async def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        return await self._get(_TRANSACTIONS, transaction_id)

    async def list_customer_transactions(self, customer_id: UUID, *, limit: int) -> list[Transaction]:
        stmt = (
            select(TransactionRecord)
            .where(TransactionRecord.customer_id == customer_id)
            .order_by(TransactionRecord.created_at.desc())
            .limit(limit)
        )
        return await self._list(_TRANSACTIONS, stmt)

    async def list_recent_transactions(self, *, limit: int) -> list[Transaction]:
        stmt = select(TransactionRecord).order_by(TransactionRecord.created_at.desc()).limit(limit)
        return await self._list(_TRANSACTIONS, stmt)

    async def sum_transaction_points(
        self,
        transaction_type: TransactionType,
        *,
        customer_ids: Iterable[UUID] | None = None,
    ) -> int:
        stmt = select(func.coalesce(func.sum(TransactionRecord.points), 0)).where(
            TransactionRecord.type == transaction_type.value
        )
        if customer_ids is not None:
            ids = list(customer_ids)
            if not ids:
                return 0
            stmt = stmt.where(TransactionRecord.customer_id.in_(ids))
        result = await self._db.execute(stmt)
        return int(result.scalar_one() or 0)

    # Rules
    async def list_rules(self) -> list[Rule]:
        return await self._list(_RULES, select(RuleRecord).order_by(RuleRecord.created_at.asc()))

    async def list_active_rules(self) -> list[Rule]:
        stmt = (
            select(RuleRecord)
            .where(RuleRecord.is_active.is_(True))
            .order_by(RuleRecord.created_at.asc())
        )
        return await self._list(_RULES, stmt)

    async def get_rule(self, rule_id: UUID) -> Rule | None:
        return await self._get(_RULES, rule_id)

    async def add_rule(self, rule: Rule) -> Rule:
        return await self._upsert(_RULES, rule)

    async def save_rule(self, rule: Rule) -> Rule:
        rule.updated_at = utcnow()
        return await self._upsert(_RULES, rule)

    async def delete_rule(self, rule_id: UUID) -> bool:
        result = await self._db.execute(delete(RuleRecord).where(RuleRecord.id == rule_id))
        return bool(result.rowcount)

    # Tiers
    async def list_tiers(self, *, active_only: bool = False) -> list[Tier]:
        stmt = select(TierRecord).order_by(TierRecord.minimum_points.asc())
        if active_only:
            stmt = stmt.where(TierRecord.is_active.is_(True))
        return await self._list(_TIERS, stmt)

    async def get_tier(self, tier_id: UUID) -> Tier | None:
        return await self._get(_TIERS, tier_id)

    async def add_tier(self, tier: Tier) -> Tier:
        return await self._upsert(_TIERS, tier)

    async def save_tier(self, tier: Tier) -> Tier:
        return await self._upsert(_TIERS, tier)

    async def get_tier_assignment(self, customer_id: UUID) -> CustomerTierAssignment | None:
        stmt = select(CustomerTierRecord).where(CustomerTierRecord.customer_id == customer_id)
        return await self._one(_CUSTOMER_TIERS, stmt)

    async def set_tier_assignment(self, assignment: CustomerTierAssignment) -> CustomerTierAssignment:
        await self._db.execute(
            delete(CustomerTierRecord).where(CustomerTierRecord.customer_id == assignment.customer_id)
        )
        return await self._upsert(_CUSTOMER_TIERS, assignment)

    # Campaigns
    async def list_campaigns(self) -> list[Campaign]:
        return await self._list(_CAMPAIGNS, select(CampaignRecord).order_by(CampaignRecord.created_at.asc()))

    async def list_active_campaigns(self, at: datetime) -> list[Campaign]:
        stmt = select(CampaignRecord).where(CampaignRecord.status == CampaignStatus.ACTIVE.value)
        campaigns = await self._list(_CAMPAIGNS, stmt)
        # Window check happens on normalized UTC values; SQLite compares naive strings.
        return [campaign for campaign in campaigns if campaign.is_running(at)]

    async def get_campaign(self, campaign_id: UUID) -> Campaign | None:
        return await self._get(_CAMPAIGNS, campaign_id)

    async def add_campaign(self, campaign: Campaign) -> Campaign:
        return await self._upsert(_CAMPAIGNS, campaign)

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        campaign.updated_at = utcnow()
        return await self._upsert(_CAMPAIGNS, campaign)

    # Rewards
    async def list_rewards(self) -> list[Reward]:
        return await self._list(_REWARDS, select(RewardRecord).order_by(RewardRecord.created_at.asc()))

    async def list_active_rewards(self) -> list[Reward]:
        stmt = (
            select(RewardRecord)
            .where(RewardRecord.is_active.is_(True))
            .order_by(RewardRecord.cost.asc())
        )
        return await self._list(_REWARDS, stmt)

    async def get_reward(self, reward_id: UUID, *, for_update: bool = False) -> Reward | None:
        stmt = select(RewardRecord).where(RewardRecord.id == reward_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self._one(_REWARDS, stmt)

    async def add_reward(self, reward: Reward) -> Reward:
        return await self._upsert(_REWARDS, reward)

    async def save_reward(self, reward: Reward) -> Reward:
        return await self._upsert(_REWARDS, reward)

    # Redemptions
    async def add_redemption(self, redemption: Redemption) -> Redemption:
        return await self._upsert(_REDEMPTIONS, redemption)

    async def get_redemption(self, redemption_id: UUID) -> Redemption | None:
        return await self._get(_REDEMPTIONS, redemption_id)

    async def list_customer_redemptions(self, customer_id: UUID) -> list[Redemption]:
        stmt = (
            select(RedemptionRecord)
            .where(RedemptionRecord.customer_id == customer_id)
            .order_by(RedemptionRecord.created_at.desc())
        )
        return await self._list(_REDEMPTIONS, stmt)

    async def save_redemption(self, redemption: Redemption) -> Redemption:
        return await self._upsert(_REDEMPTIONS, redemption)

    # Branches
    async def list_branches(self) -> list[Branch]:
        return await self._list(_BRANCHES, select(BranchRecord).order_by(BranchRecord.created_at.asc()))

    async def get_branch(self, branch_id: UUID) -> Branch | None:
        return await self._get(_BRANCHES, branch_id)

    async def add_branch(self, branch: Branch) -> Branch:
        return await self._upsert(_BRANCHES, branch)


__all__ = ["SqlAlchemyLoyaltyRepository"]
