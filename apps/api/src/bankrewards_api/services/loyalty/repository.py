"""Persistence contract consumed by the points engine.

Implementations own storage only: no business rule lives behind this
interface. Records returned are detached copies; callers persist changes
through the matching ``save_*`` method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
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
)


class LoyaltyRepository(ABC):
    """Abstract keyed stores for every loyalty entity."""

    @abstractmethod
    def customer_scope(self, customer_id: UUID) -> AbstractAsyncContextManager[None]:
        """Serialize balance mutations for one customer and commit them as a unit."""

    # Users
    @abstractmethod
    async def get_user(self, user_id: UUID) -> User | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def add_user(self, user: User) -> User: ...

    @abstractmethod
    async def save_user(self, user: User) -> User: ...

    @abstractmethod
    async def list_customers(self, *, branch_id: UUID | None = None) -> list[User]: ...

    # Points
    @abstractmethod
    async def get_points(self, customer_id: UUID, *, for_update: bool = False) -> Points | None: ...

    @abstractmethod
    async def add_points(self, points: Points) -> Points: ...

    @abstractmethod
    async def save_points(self, points: Points) -> Points: ...

    # Transactions
    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction: ...

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Transaction | None: ...

    @abstractmethod
    async def list_customer_transactions(self, customer_id: UUID, *, limit: int) -> list[Transaction]:
        """Return the customer's transactions newest first."""

    @abstractmethod
    async def list_recent_transactions(self, *, limit: int) -> list[Transaction]: ...

    @abstractmethod
    async def sum_transaction_points(
        self,
        transaction_type: TransactionType,
        *,
        customer_ids: Iterable[UUID] | None = None,
    ) -> int: ...

    # Rules
    @abstractmethod
    async def list_rules(self) -> list[Rule]: ...

    @abstractmethod
    async def list_active_rules(self) -> list[Rule]:
        """Return active rules in creation order."""

    @abstractmethod
    async def get_rule(self, rule_id: UUID) -> Rule | None: ...

    @abstractmethod
    async def add_rule(self, rule: Rule) -> Rule: ...

    @abstractmethod
    async def save_rule(self, rule: Rule) -> Rule: ...

    @abstractmethod
    async def delete_rule(self, rule_id: UUID) -> bool: ...

    # Tiers
    @abstractmethod
    async def list_tiers(self, *, active_only: bool = False) -> list[Tier]:
        """Return tiers ordered by ascending ``minimum_points``."""

    @abstractmethod
    async def get_tier(self, tier_id: UUID) -> Tier | None: ...

    @abstractmethod
    async def add_tier(self, tier: Tier) -> Tier: ...

    @abstractmethod
    async def save_tier(self, tier: Tier) -> Tier: ...

    @abstractmethod
    async def get_tier_assignment(self, customer_id: UUID) -> CustomerTierAssignment | None: ...

    @abstractmethod
    async def set_tier_assignment(self, assignment: CustomerTierAssignment) -> CustomerTierAssignment:
        """Replace the customer's single assignment row."""

    # Campaigns
    @abstractmethod
    async def list_campaigns(self) -> list[Campaign]: ...

    @abstractmethod
    async def list_active_campaigns(self, at: datetime) -> list[Campaign]: ...

    @abstractmethod
    async def get_campaign(self, campaign_id: UUID) -> Campaign | None: ...

    @abstractmethod
    async def add_campaign(self, campaign: Campaign) -> Campaign: ...

    @abstractmethod
    async def save_campaign(self, campaign: Campaign) -> Campaign: ...

    # Rewards
    @abstractmethod
    async def list_rewards(self) -> list[Reward]: ...

    @abstractmethod
    async def list_active_rewards(self) -> list[Reward]: ...

    @abstractmethod
    async def get_reward(self, reward_id: UUID, *, for_update: bool = False) -> Reward | None: ...

    @abstractmethod
    async def add_reward(self, reward: Reward) -> Reward: ...

    @abstractmethod
    async def save_reward(self, reward: Reward) -> Reward: ...

    # Redemptions
    @abstractmethod
    async def add_redemption(self, redemption: Redemption) -> Redemption: ...

    @abstractmethod
    async def get_redemption(self, redemption_id: UUID) -> Redemption | None: ...

    @abstractmethod
    async def list_customer_redemptions(self, customer_id: UUID) -> list[Redemption]:
        """Return the customer's redemptions newest first."""

    @abstractmethod
    async def save_redemption(self, redemption: Redemption) -> Redemption: ...

    # Branches
    @abstractmethod
    async def list_branches(self) -> list[Branch]: ...

    @abstractmethod
    async def get_branch(self, branch_id: UUID) -> Branch | None: ...

    @abstractmethod
    async def add_branch(self, branch: Branch) -> Branch: ...

    @abstractmethod
    async def commit(self) -> None:
        """Flush catalogue writes made outside a customer scope."""


__all__ = ["LoyaltyRepository"]
