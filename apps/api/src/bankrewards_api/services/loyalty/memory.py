"""Dict-backed repository used for local runs, demos and tests."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TypeVar
from uuid import UUID

from bankrewards_api.domain.loyalty import (
    Branch,
    Campaign,
    CustomerTierAssignment,
    Points,
    Redemption,
    Reward,
    Rule,
    Tier,
    Transaction,
    TransactionType,
    User,
    UserRole,
    utcnow,
)
from bankrewards_api.services.loyalty.locks import CustomerLockRegistry
from bankrewards_api.services.loyalty.repository import LoyaltyRepository

T = TypeVar("T")


def _detach(record: T) -> T:
    return copy.deepcopy(record)


class InMemoryLoyaltyRepository(LoyaltyRepository):
    """Keyed in-process stores; dict insertion order doubles as creation order."""

    def __init__(self, *, locks: CustomerLockRegistry | None = None) -> None:
        self._locks = locks or CustomerLockRegistry()
        self._users: dict[UUID, User] = {}
        self._points: dict[UUID, Points] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._rules: dict[UUID, Rule] = {}
        self._tiers: dict[UUID, Tier] = {}
        self._customer_tiers: dict[UUID, CustomerTierAssignment] = {}
        self._campaigns: dict[UUID, Campaign] = {}
        self._rewards: dict[UUID, Reward] = {}
        self._redemptions: dict[UUID, Redemption] = {}
        self._branches: dict[UUID, Branch] = {}

    @asynccontextmanager
    async def customer_scope(self, customer_id: UUID) -> AsyncIterator[None]:
        async with self._locks.hold(customer_id):
            yield

    async def commit(self) -> None:
        return None

    # Users
    async def get_user(self, user_id: UUID) -> User | None:
        user = self._users.get(user_id)
        return _detach(user) if user else None

    async def get_user_by_username(self, username: str) -> User | None:
        return next((_detach(user) for user in self._users.values() if user.username == username), None)

    async def get_user_by_email(self, email: str) -> User | None:
        return next((_detach(user) for user in self._users.values() if user.email == email), None)

    async def add_user(self, user: User) -> User:
        self._users[user.id] = _detach(user)
        return user

    async def save_user(self, user: User) -> User:
        user.updated_at = utcnow()
        self._users[user.id] = _detach(user)
        return user

    async def list_customers(self, *, branch_id: UUID | None = None) -> list[User]:
        return [
            _detach(user)
            for user in self._users.values()
            if user.role == UserRole.CUSTOMER and (branch_id is None or user.branch_id == branch_id)
        ]

    # Points
    async def get_points(self, customer_id: UUID, *, for_update: bool = False) -> Points | None:
        points = self._points.get(customer_id)
        return _detach(points) if points else None

    async def add_points(self, points: Points) -> Points:
        self._points[points.customer_id] = _detach(points)
        return points

    async def save_points(self, points: Points) -> Points:
        points.updated_at = utcnow()
        self._points[points.customer_id] = _detach(points)
        return points

    # Transactions
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions[transaction.id] = _detach(transaction)
        return transaction

    async def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        transaction = self._transactions.get(transaction_id)
        return _detach(transaction) if transaction else None

    def _newest_first(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        # reversed() keeps later inserts ahead of earlier ones that share a timestamp
        ordered = list(reversed(list(transactions)))
        return sorted(ordered, key=lambda item: item.created_at, reverse=True)

    async def list_customer_transactions(self, customer_id: UUID, *, limit: int) -> list[Transaction]:
        matching = (item for item in self._transactions.values() if item.customer_id == customer_id)
        return [_detach(item) for item in self._newest_first(matching)[:limit]]

    async def list_recent_transactions(self, *, limit: int) -> list[Transaction]:
        return [_detach(item) for item in self._newest_first(self._transactions.values())[:limit]]

    async def sum_transaction_points(
        self,
        transaction_type: TransactionType,
        *,
        customer_ids: Iterable[UUID] | None = None,
    ) -> int:
        allowed = set(customer_ids) if customer_ids is not None else None
        return sum(
            item.points
            for item in self._transactions.values()
            if item.type == transaction_type and (allowed is None or item.customer_id in allowed)
        )

    # Rules
    async def list_rules(self) -> list[Rule]:
        return [_detach(rule) for rule in self._rules.values()]

    async def list_active_rules(self) -> list[Rule]:
        return [_detach(rule) for rule in self._rules.values() if rule.is_active]

    async def get_rule(self, rule_id: UUID) -> Rule | None:
        rule = self._rules.get(rule_id)
        return _detach(rule) if rule else None

    async def add_rule(self, rule: Rule) -> Rule:
        self._rules[rule.id] = _detach(rule)
        return rule

    async def save_rule(self, rule: Rule) -> Rule:
        rule.updated_at = utcnow()
        self._rules[rule.id] = _detach(rule)
        return rule

    async def delete_rule(self, rule_id: UUID) -> bool:
        return self._rules.pop(rule_id, None) is not None

    # Tiers
    async def list_tiers(self, *, active_only: bool = False) -> list[Tier]:
        tiers = [tier for tier in self._tiers.values() if tier.is_active or not active_only]
        return [_detach(tier) for tier in sorted(tiers, key=lambda tier: tier.minimum_points)]

    async def get_tier(self, tier_id: UUID) -> Tier | None:
        tier = self._tiers.get(tier_id)
        return _detach(tier) if tier else None

    async def add_tier(self, tier: Tier) -> Tier:
        self._tiers[tier.id] = _detach(tier)
        return tier

    async def save_tier(self, tier: Tier) -> Tier:
        self._tiers[tier.id] = _detach(tier)
        return tier

    async def get_tier_assignment(self, customer_id: UUID) -> CustomerTierAssignment | None:
        assignment = self._customer_tiers.get(customer_id)
        return _detach(assignment) if assignment else None

    async def set_tier_assignment(self, assignment: CustomerTierAssignment) -> CustomerTierAssignment:
        self._customer_tiers[assignment.customer_id] = _detach(assignment)
        return assignment

    # Campaigns
    async def list_campaigns(self) -> list[Campaign]:
        return [_detach(campaign) for campaign in self._campaigns.values()]

    async def list_active_campaigns(self, at: datetime) -> list[Campaign]:
        return [_detach(campaign) for campaign in self._campaigns.values() if campaign.is_running(at)]

    async def get_campaign(self, campaign_id: UUID) -> Campaign | None:
        campaign = self._campaigns.get(campaign_id)
        return _detach(campaign) if campaign else None

    async def add_campaign(self, campaign: Campaign) -> Campaign:
        self._campaigns[campaign.id] = _detach(campaign)
        return campaign

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        campaign.updated_at = utcnow()
        self._campaigns[campaign.id] = _detach(campaign)
        return campaign

    # Rewards
    async def list_rewards(self) -> list[Reward]:
        return [_detach(reward) for reward in self._rewards.values()]

    async def list_active_rewards(self) -> list[Reward]:
        active = [reward for reward in self._rewards.values() if reward.is_active]
        return [_detach(reward) for reward in sorted(active, key=lambda reward: reward.cost)]

    async def get_reward(self, reward_id: UUID, *, for_update: bool = False) -> Reward | None:
        reward = self._rewards.get(reward_id)
        return _detach(reward) if reward else None

    async def add_reward(self, reward: Reward) -> Reward:
        self._rewards[reward.id] = _detach(reward)
        return reward

    async def save_reward(self, reward: Reward) -> Reward:
        self._rewards[reward.id] = _detach(reward)
        return reward

    # Redemptions
    async def add_redemption(self, redemption: Redemption) -> Redemption:
        self._redemptions[redemption.id] = _detach(redemption)
        return redemption

    async def get_redemption(self, redemption_id: UUID) -> Redemption | None:
        redemption = self._redemptions.get(redemption_id)
        return _detach(redemption) if redemption else None

    async def list_customer_redemptions(self, customer_id: UUID) -> list[Redemption]:
        matching = [item for item in self._redemptions.values() if item.customer_id == customer_id]
        matching.reverse()
        return [_detach(item) for item in sorted(matching, key=lambda item: item.created_at, reverse=True)]

    async def save_redemption(self, redemption: Redemption) -> Redemption:
        self._redemptions[redemption.id] = _detach(redemption)
        return redemption

    # Branches
    async def list_branches(self) -> list[Branch]:
        return [_detach(branch) for branch in self._branches.values()]

    async def get_branch(self, branch_id: UUID) -> Branch | None:
        branch = self._branches.get(branch_id)
        return _detach(branch) if branch else None

    async def add_branch(self, branch: Branch) -> Branch:
        self._branches[branch.id] = _detach(branch)
        return branch


__all__ = ["InMemoryLoyaltyRepository"]
