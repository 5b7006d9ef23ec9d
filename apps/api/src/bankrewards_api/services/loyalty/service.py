"""Loyalty service composing rule matching, calculation, ledger and redemption."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID

from loguru import logger

from bankrewards_api.core.settings import Settings, settings as default_settings
from bankrewards_api.domain.loyalty import (
    Branch,
    Campaign,
    CustomerTierAssignment,
    Points,
    Redemption,
    Reward,
    Rule,
    RuleUnit,
    Tier,
    Transaction,
    TransactionType,
    UNLIMITED_STOCK,
    User,
    UserRole,
    utcnow,
)
from bankrewards_api.observability.loyalty import LoyaltyObservabilityStore, get_loyalty_store
from bankrewards_api.services.loyalty.calculator import PointsCalculator
from bankrewards_api.services.loyalty.errors import (
    LoyaltyError,
    LoyaltyValidationError,
    NotFoundError,
)
from bankrewards_api.services.loyalty.ledger import Ledger
from bankrewards_api.services.loyalty.redemption import RedemptionEngine, RedemptionResult
from bankrewards_api.services.loyalty.repository import LoyaltyRepository
from bankrewards_api.services.loyalty.rules import RuleMatcher
from bankrewards_api.services.loyalty.tiers import TierResolver


@dataclass(slots=True)
class EarnResult:
    transaction: Transaction
    points_earned: int
    balance: Points
    promoted_to: Tier | None = None


@dataclass(slots=True)
class BalanceSnapshot:
    """Balance together with the tier context shown next to it."""

    points: Points
    tier: Tier | None
    next_tier: Tier | None
    points_to_next_tier: int
    progress: Decimal


@dataclass(slots=True)
class CustomerSummary:
    user: User
    available_points: int
    tier_name: str | None


RULE_FIELDS = frozenset(
    {
        "name",
        "category",
        "service_type",
        "points_per_unit",
        "unit",
        "unit_value",
        "minimum_amount",
        "maximum_points",
        "multiplier",
        "conditions",
        "is_active",
    }
)
TIER_FIELDS = frozenset({"name", "minimum_points", "multiplier", "benefits", "color", "is_active"})
CAMPAIGN_FIELDS = frozenset(
    {
        "name",
        "description",
        "type",
        "start_date",
        "end_date",
        "rules",
        "target_customers",
        "budget",
        "spent",
        "participants",
        "status",
    }
)
REWARD_FIELDS = frozenset(
    {"name", "description", "type", "cost", "value", "category", "provider", "stock", "terms", "is_active"}
)


# Optional on the domain records; an explicit null clears them.
CLEARABLE_FIELDS = frozenset({"minimum_amount", "maximum_points", "budget", "provider", "terms"})


def _apply_changes(target: Any, changes: Mapping[str, Any], allowed: Iterable[str]) -> None:
    allowed_fields = set(allowed)
    unknown = sorted(set(changes) - allowed_fields)
    if unknown:
        raise LoyaltyValidationError(f"Unsupported fields: {', '.join(unknown)}")
    not_nullable = sorted(name for name, value in changes.items() if value is None and name not in CLEARABLE_FIELDS)
    if not_nullable:
        raise LoyaltyValidationError(f"Fields cannot be null: {', '.join(not_nullable)}")
    for name, value in changes.items():
        setattr(target, name, value)


def _validate_rule(rule: Rule) -> None:
    if not rule.category or not rule.service_type:
        raise LoyaltyValidationError("Rule category and service type are required")
    if rule.points_per_unit < 0:
        raise LoyaltyValidationError("pointsPerUnit must be non-negative")
    if rule.unit == RuleUnit.AMOUNT and rule.unit_value <= 0:
        raise LoyaltyValidationError("unitValue must be positive for amount based rules")
    if rule.maximum_points is not None and rule.maximum_points < 0:
        raise LoyaltyValidationError("maximumPoints must be non-negative")


def _validate_tier(tier: Tier) -> None:
    if tier.minimum_points < 0:
        raise LoyaltyValidationError("minimumPoints must be non-negative")
    if tier.multiplier <= 0:
        raise LoyaltyValidationError("Tier multiplier must be positive")


def _validate_campaign(campaign: Campaign) -> None:
    # Naive datetimes from clients are taken as UTC.
    if campaign.start_date.tzinfo is None:
        campaign.start_date = campaign.start_date.replace(tzinfo=timezone.utc)
    if campaign.end_date.tzinfo is None:
        campaign.end_date = campaign.end_date.replace(tzinfo=timezone.utc)
    if campaign.end_date < campaign.start_date:
        raise LoyaltyValidationError("Campaign end date precedes its start date")


def _validate_reward(reward: Reward) -> None:
    if reward.cost < 0:
        raise LoyaltyValidationError("Reward cost must be non-negative")
    if reward.stock < UNLIMITED_STOCK:
        raise LoyaltyValidationError("Reward stock must be -1 (unlimited) or a non-negative count")


class LoyaltyService:
    """Entry point for earning, redemption, balance and catalogue operations."""

    def __init__(
        self,
        repository: LoyaltyRepository,
        *,
        settings: Settings | None = None,
        store: LoyaltyObservabilityStore | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or default_settings
        self._store = store or get_loyalty_store()
        self.rules = RuleMatcher(repository)
        self.tiers = TierResolver(repository)
        self.calculator = PointsCalculator(self.tiers)
        self.ledger = Ledger(repository)
        self.redemptions = RedemptionEngine(repository, self.ledger, settings=self._settings)

    async def _require_customer(self, customer_id: UUID) -> User:
        user = await self._repository.get_user(customer_id)
        if user is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return user

    async def earn_points(
        self,
        customer_id: UUID,
        category: str,
        service_type: str,
        amount: Decimal | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> EarnResult:
        try:
            rule = await self.rules.find_rule(category, service_type)
            async with self._repository.customer_scope(customer_id):
                if await self._repository.get_points(customer_id, for_update=True) is None:
                    raise NotFoundError(f"Customer {customer_id} points not found")

                points_earned = await self.calculator.compute_earned_points(rule, customer_id, amount)
                transaction = Transaction(
                    customer_id=customer_id,
                    type=TransactionType.EARN,
                    points=points_earned,
                    description=f"Points earned from {rule.name}",
                    category=category,
                    amount=amount,
                    currency=self._settings.default_currency,
                    rule_id=rule.id,
                    metadata=dict(metadata or {}),
                )
                balance = await self.ledger.apply_transaction(transaction)

                promoted_to = None
                if self._settings.tier_auto_promotion_enabled:
                    promoted_to = await self.tiers.promote(customer_id, balance.total_points)
        except LoyaltyError as exc:
            self._store.record_rejection(exc.code)
            logger.info(
                "Rejected loyalty earn request",
                customer_id=str(customer_id),
                category=category,
                service_type=service_type,
                reason=exc.code,
            )
            raise

        self._store.record_earn(category=category, service_type=service_type, points=points_earned)
        return EarnResult(
            transaction=transaction,
            points_earned=points_earned,
            balance=balance,
            promoted_to=promoted_to,
        )

    async def redeem_points(self, customer_id: UUID, reward_id: UUID) -> RedemptionResult:
        try:
            result = await self.redemptions.redeem(customer_id, reward_id)
        except LoyaltyError as exc:
            self._store.record_rejection(exc.code)
            logger.info(
                "Rejected loyalty redemption",
                customer_id=str(customer_id),
                reward_id=str(reward_id),
                reason=exc.code,
            )
            raise

        reward = await self._repository.get_reward(reward_id)
        self._store.record_redemption(
            reward_type=reward.type if reward else "unknown",
            points=result.transaction.points,
        )
        return result

    async def check_balance(self, customer_id: UUID) -> BalanceSnapshot:
        points = await self._repository.get_points(customer_id)
        if points is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        progress = await self.tiers.progress(customer_id, points.total_points)
        return BalanceSnapshot(
            points=points,
            tier=progress.current_tier,
            next_tier=progress.next_tier,
            points_to_next_tier=progress.points_to_next_tier,
            progress=progress.progress,
        )

    async def get_history(self, customer_id: UUID, limit: int | None = None) -> list[Transaction]:
        if limit is None:
            limit = self._settings.history_default_limit
        if limit < 1:
            raise LoyaltyValidationError("limit must be at least 1")
        limit = min(limit, self._settings.history_max_limit)
        return await self._repository.list_customer_transactions(customer_id, limit=limit)

    async def list_customer_redemptions(self, customer_id: UUID) -> list[Redemption]:
        return await self._repository.list_customer_redemptions(customer_id)

    # Customers
    async def register_customer(
        self,
        *,
        username: str,
        email: str,
        first_name: str,
        last_name: str,
        phone_number: str | None = None,
        banking_id: str | None = None,
        branch_id: UUID | None = None,
        role: UserRole = UserRole.CUSTOMER,
    ) -> User:
        if await self._repository.get_user_by_username(username):
            raise LoyaltyValidationError(f"Username '{username}' is already registered")
        if await self._repository.get_user_by_email(email):
            raise LoyaltyValidationError(f"Email '{email}' is already registered")
        if branch_id is not None and await self._repository.get_branch(branch_id) is None:
            raise NotFoundError(f"Branch {branch_id} not found")

        user = await self._repository.add_user(
            User(
                username=username,
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=role,
                phone_number=phone_number,
                banking_id=banking_id,
                branch_id=branch_id,
            )
        )
        await self._repository.add_points(Points(customer_id=user.id))
        await self._repository.commit()
        logger.info("Registered loyalty member", customer_id=str(user.id), role=role.value)
        return user

    async def list_customers(
        self,
        *,
        branch_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[CustomerSummary]:
        limit = limit or self._settings.customer_list_default_limit
        summaries: list[CustomerSummary] = []
        for customer in (await self._repository.list_customers(branch_id=branch_id))[:limit]:
            points = await self._repository.get_points(customer.id)
            tier = await self.tiers.current_tier(customer.id)
            summaries.append(
                CustomerSummary(
                    user=customer,
                    available_points=points.available_points if points else 0,
                    tier_name=tier.name if tier else None,
                )
            )
        return summaries

    async def assign_customer_tier(self, customer_id: UUID, tier_id: UUID) -> CustomerTierAssignment:
        await self._require_customer(customer_id)
        assignment = await self.tiers.assign(customer_id, tier_id)
        await self._repository.commit()
        return assignment

    # Rules
    async def list_rules(self) -> list[Rule]:
        return await self._repository.list_rules()

    async def create_rule(self, rule: Rule) -> Rule:
        _validate_rule(rule)
        created = await self._repository.add_rule(rule)
        await self._repository.commit()
        logger.info(
            "Created earning rule",
            rule_id=str(rule.id),
            category=rule.category,
            service_type=rule.service_type,
        )
        return created

    async def update_rule(self, rule_id: UUID, changes: Mapping[str, Any]) -> Rule:
        rule = await self._repository.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(f"Rule {rule_id} not found")
        _apply_changes(rule, changes, RULE_FIELDS)
        _validate_rule(rule)
        saved = await self._repository.save_rule(rule)
        await self._repository.commit()
        return saved

    async def delete_rule(self, rule_id: UUID) -> None:
        if not await self._repository.delete_rule(rule_id):
            raise NotFoundError(f"Rule {rule_id} not found")
        await self._repository.commit()
        logger.info("Deleted earning rule", rule_id=str(rule_id))

    # Tiers
    async def list_tiers(self) -> list[Tier]:
        return await self._repository.list_tiers()

    async def _ensure_unique_threshold(self, tier: Tier) -> None:
        for existing in await self._repository.list_tiers():
            if existing.id != tier.id and existing.minimum_points == tier.minimum_points:
                raise LoyaltyValidationError(
                    f"Tier '{existing.name}' already starts at {tier.minimum_points} points"
                )

    async def create_tier(self, tier: Tier) -> Tier:
        _validate_tier(tier)
        await self._ensure_unique_threshold(tier)
        created = await self._repository.add_tier(tier)
        await self._repository.commit()
        logger.info("Created loyalty tier", tier=tier.name, minimum_points=tier.minimum_points)
        return created

    async def update_tier(self, tier_id: UUID, changes: Mapping[str, Any]) -> Tier:
        tier = await self._repository.get_tier(tier_id)
        if tier is None:
            raise NotFoundError(f"Tier {tier_id} not found")
        _apply_changes(tier, changes, TIER_FIELDS)
        _validate_tier(tier)
        await self._ensure_unique_threshold(tier)
        saved = await self._repository.save_tier(tier)
        await self._repository.commit()
        return saved

    # Campaigns
    async def list_campaigns(self) -> list[Campaign]:
        return await self._repository.list_campaigns()

    async def list_active_campaigns(self) -> list[Campaign]:
        return await self._repository.list_active_campaigns(utcnow())

    async def create_campaign(self, campaign: Campaign) -> Campaign:
        _validate_campaign(campaign)
        created = await self._repository.add_campaign(campaign)
        await self._repository.commit()
        logger.info("Created campaign", campaign_id=str(campaign.id), name=campaign.name)
        return created

    async def update_campaign(self, campaign_id: UUID, changes: Mapping[str, Any]) -> Campaign:
        campaign = await self._repository.get_campaign(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        _apply_changes(campaign, changes, CAMPAIGN_FIELDS)
        _validate_campaign(campaign)
        saved = await self._repository.save_campaign(campaign)
        await self._repository.commit()
        return saved

    # Rewards
    async def list_rewards(self) -> list[Reward]:
        return await self._repository.list_rewards()

    async def list_active_rewards(self) -> list[Reward]:
        return await self._repository.list_active_rewards()

    async def create_reward(self, reward: Reward) -> Reward:
        _validate_reward(reward)
        created = await self._repository.add_reward(reward)
        await self._repository.commit()
        logger.info("Created reward", reward_id=str(reward.id), name=reward.name, cost=reward.cost)
        return created

    async def update_reward(self, reward_id: UUID, changes: Mapping[str, Any]) -> Reward:
        reward = await self._repository.get_reward(reward_id)
        if reward is None:
            raise NotFoundError(f"Reward {reward_id} not found")
        _apply_changes(reward, changes, REWARD_FIELDS)
        _validate_reward(reward)
        saved = await self._repository.save_reward(reward)
        await self._repository.commit()
        return saved

    # Branches
    async def list_branches(self) -> list[Branch]:
        return await self._repository.list_branches()

    async def create_branch(self, branch: Branch) -> Branch:
        if any(existing.code == branch.code for existing in await self._repository.list_branches()):
            raise LoyaltyValidationError(f"Branch code '{branch.code}' already exists")
        created = await self._repository.add_branch(branch)
        await self._repository.commit()
        return created


__all__ = ["BalanceSnapshot", "CustomerSummary", "EarnResult", "LoyaltyService"]
