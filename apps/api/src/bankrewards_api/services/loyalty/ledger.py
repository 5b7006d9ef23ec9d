"""The single point where customer balances change."""

from __future__ import annotations

from loguru import logger

from bankrewards_api.domain.loyalty import Points, Transaction, TransactionType
from bankrewards_api.services.loyalty.errors import (
    InsufficientPointsError,
    LoyaltyValidationError,
    NotFoundError,
)
from bankrewards_api.services.loyalty.repository import LoyaltyRepository


class Ledger:
    """Apply earn and redeem transactions to the customer's points row.

    Callers must hold ``repository.customer_scope(customer_id)`` so the
    balance update and the transaction insert land together.
    """

    def __init__(self, repository: LoyaltyRepository) -> None:
        self._repository = repository

    async def apply_transaction(self, transaction: Transaction) -> Points:
        if transaction.points < 0:
            raise LoyaltyValidationError("Transaction points must be non-negative")

        points = await self._repository.get_points(transaction.customer_id, for_update=True)
        if points is None:
            raise NotFoundError(f"Customer {transaction.customer_id} points not found")

        if transaction.type == TransactionType.EARN:
            points.total_points += transaction.points
            points.available_points += transaction.points
            points.lifetime_earned += transaction.points
        elif transaction.type == TransactionType.REDEEM:
            if transaction.points > points.available_points:
                raise InsufficientPointsError(
                    required=transaction.points,
                    available=points.available_points,
                )
            points.total_points -= transaction.points
            points.available_points -= transaction.points
            points.lifetime_redeemed += transaction.points
        else:  # pragma: no cover - enum is closed
            raise LoyaltyValidationError(f"Unsupported transaction type {transaction.type}")

        await self._repository.save_points(points)
        await self._repository.add_transaction(transaction)

        logger.info(
            "Recorded loyalty ledger entry",
            customer_id=str(transaction.customer_id),
            transaction_id=str(transaction.id),
            entry_type=transaction.type.value,
            points=transaction.points,
            available_points=points.available_points,
        )
        return points


__all__ = ["Ledger"]
