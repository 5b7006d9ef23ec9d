"""Tier lookup, progression display and the opt-in promotion step."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from loguru import logger

from bankrewards_api.domain.loyalty import CustomerTierAssignment, Tier
from bankrewards_api.services.loyalty.errors import NotFoundError
from bankrewards_api.services.loyalty.repository import LoyaltyRepository


@dataclass(slots=True)
class TierProgress:
    """Where a customer's points total sits between their tier and the next one."""

    current_tier: Tier | None
    next_tier: Tier | None
    points_to_next_tier: int
    progress: Decimal


class TierResolver:
    """Resolve the authoritative tier from assignment rows.

    The assignment is never derived from the points total on read; only
    ``assign`` and ``promote`` change it.
    """

    def __init__(self, repository: LoyaltyRepository) -> None:
        self._repository = repository

    async def current_tier(self, customer_id: UUID) -> Tier | None:
        assignment = await self._repository.get_tier_assignment(customer_id)
        if assignment is None or not assignment.is_active:
            return None
        return await self._repository.get_tier(assignment.tier_id)

    async def assign(self, customer_id: UUID, tier_id: UUID) -> CustomerTierAssignment:
        tier = await self._repository.get_tier(tier_id)
        if tier is None:
            raise NotFoundError(f"Tier {tier_id} not found")

        assignment = await self._repository.set_tier_assignment(
            CustomerTierAssignment(customer_id=customer_id, tier_id=tier.id)
        )
        logger.info("Assigned customer tier", customer_id=str(customer_id), tier=tier.name)
        return assignment

    async def progress(self, customer_id: UUID, total_points: int) -> TierProgress:
        tiers = await self._repository.list_tiers(active_only=True)
        current = await self.current_tier(customer_id)

        next_tier: Tier | None = None
        if current is not None:
            next_tier = next((tier for tier in tiers if tier.minimum_points > current.minimum_points), None)
        elif tiers:
            next_tier = tiers[0]

        if next_tier is None:
            return TierProgress(
                current_tier=current,
                next_tier=None,
                points_to_next_tier=0,
                progress=Decimal("1") if tiers else Decimal("0"),
            )

        current_threshold = Decimal(current.minimum_points if current else 0)
        denominator = max(Decimal(next_tier.minimum_points) - current_threshold, Decimal("1"))
        ratio = (Decimal(total_points) - current_threshold) / denominator
        return TierProgress(
            current_tier=current,
            next_tier=next_tier,
            points_to_next_tier=max(next_tier.minimum_points - total_points, 0),
            progress=max(Decimal("0"), min(ratio, Decimal("1"))),
        )

    async def promote(self, customer_id: UUID, total_points: int) -> Tier | None:
        """Upgrade to the highest active tier the points total qualifies for.

        Returns the new tier when an upgrade happened, otherwise ``None``.
        """

        tiers = await self._repository.list_tiers(active_only=True)
        eligible = [tier for tier in tiers if tier.minimum_points <= total_points]
        if not eligible:
            return None

        target = eligible[-1]
        current = await self.current_tier(customer_id)
        if current is not None and current.minimum_points >= target.minimum_points:
            return None

        await self._repository.set_tier_assignment(
            CustomerTierAssignment(customer_id=customer_id, tier_id=target.id)
        )
        logger.info(
            "Upgraded customer tier",
            customer_id=str(customer_id),
            from_tier=current.name if current else None,
            to_tier=target.name,
        )
        return target


__all__ = ["TierProgress", "TierResolver"]
