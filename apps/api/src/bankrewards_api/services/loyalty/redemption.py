"""Reward redemption: eligibility checks, voucher issuance and the paired debit."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from loguru import logger

from bankrewards_api.core.settings import Settings, settings as default_settings
from bankrewards_api.domain.loyalty import (
    Redemption,
    RedemptionStatus,
    Reward,
    Transaction,
    TransactionType,
    utcnow,
)
from bankrewards_api.services.loyalty.errors import (
    InsufficientPointsError,
    NotFoundError,
    OutOfStockError,
    RewardUnavailableError,
)
from bankrewards_api.services.loyalty.ledger import Ledger
from bankrewards_api.services.loyalty.repository import LoyaltyRepository


@dataclass(slots=True)
class RedemptionResult:
    redemption: Redemption
    transaction: Transaction


def generate_voucher_code(prefix: str, issued_at: datetime) -> str:
    """Millisecond timestamp plus a random suffix so same-millisecond codes differ."""

    epoch_ms = int(issued_at.timestamp() * 1000)
    return f"{prefix}-{epoch_ms}-{secrets.token_hex(3).upper()}"


class RedemptionEngine:
    """Convert available points into a reward."""

    def __init__(
        self,
        repository: LoyaltyRepository,
        ledger: Ledger,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._settings = settings or default_settings

    def _issues_voucher(self, reward: Reward) -> bool:
        return reward.type in self._settings.voucher_reward_types

    async def redeem(self, customer_id: UUID, reward_id: UUID) -> RedemptionResult:
        async with self._repository.customer_scope(customer_id):
            reward = await self._repository.get_reward(reward_id, for_update=True)
            if reward is None:
                raise NotFoundError(f"Reward {reward_id} not found")

            points = await self._repository.get_points(customer_id, for_update=True)
            if points is None:
                raise NotFoundError(f"Customer {customer_id} points not found")

            if not reward.is_active:
                raise RewardUnavailableError(f"Reward '{reward.name}' is not available")

            if points.available_points < reward.cost:
                raise InsufficientPointsError(required=reward.cost, available=points.available_points)

            if not reward.has_unlimited_stock and reward.stock <= 0:
                raise OutOfStockError(f"Reward '{reward.name}' is out of stock")

            redeemed_at = utcnow()
            redemption = Redemption(
                customer_id=customer_id,
                reward_id=reward.id,
                points_used=reward.cost,
                value=reward.value,
                status=RedemptionStatus.COMPLETED,
                redeemed_at=redeemed_at,
            )
            if self._issues_voucher(reward):
                redemption.code = generate_voucher_code(self._settings.voucher_code_prefix, redeemed_at)
                redemption.expires_at = redeemed_at + timedelta(days=self._settings.voucher_validity_days)
            await self._repository.add_redemption(redemption)

            transaction = Transaction(
                customer_id=customer_id,
                type=TransactionType.REDEEM,
                points=reward.cost,
                description=f"Redeemed {reward.name}",
                category=reward.category,
                amount=reward.value,
                currency=self._settings.default_currency,
                metadata={"redemptionId": str(redemption.id)},
            )
            await self._ledger.apply_transaction(transaction)

            if not reward.has_unlimited_stock:
                reward.stock -= 1
                await self._repository.save_reward(reward)

        logger.info(
            "Redeemed loyalty reward",
            customer_id=str(customer_id),
            reward_id=str(reward.id),
            redemption_id=str(redemption.id),
            points=reward.cost,
            voucher=redemption.code is not None,
        )
        return RedemptionResult(redemption=redemption, transaction=transaction)


__all__ = ["RedemptionEngine", "RedemptionResult", "generate_voucher_code"]
