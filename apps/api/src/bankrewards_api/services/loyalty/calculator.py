"""Points calculation for a matched earning rule."""

from __future__ import annotations

import math
from decimal import Decimal
from uuid import UUID

from bankrewards_api.domain.loyalty import Rule, RuleUnit, Tier
from bankrewards_api.services.loyalty.errors import LoyaltyValidationError
from bankrewards_api.services.loyalty.tiers import TierResolver


def base_points(rule: Rule, amount: Decimal | None) -> int:
    """Points a rule yields before tier and cap adjustments."""

    if rule.unit == RuleUnit.ACTION:
        return rule.points_per_unit

    if amount is None or amount <= 0:
        raise LoyaltyValidationError(f"Rule '{rule.name}' requires a positive amount")
    if rule.unit_value <= 0:
        raise LoyaltyValidationError(f"Rule '{rule.name}' has a non-positive unit value")
    return math.floor((Decimal(amount) / rule.unit_value) * rule.points_per_unit)


def apply_adjustments(points: int, rule: Rule, tier: Tier | None) -> int:
    """Tier multiplier first, then the rule cap; floor after the multiplication."""

    if tier is not None:
        points = math.floor(points * Decimal(tier.multiplier))
    if rule.maximum_points is not None and points > rule.maximum_points:
        points = rule.maximum_points
    return max(points, 0)


class PointsCalculator:
    """Convert a raw action into a point quantity for one customer."""

    def __init__(self, tiers: TierResolver) -> None:
        self._tiers = tiers

    async def compute_earned_points(
        self,
        rule: Rule,
        customer_id: UUID,
        amount: Decimal | None = None,
    ) -> int:
        points = base_points(rule, amount)
        tier = await self._tiers.current_tier(customer_id)
        return apply_adjustments(points, rule, tier)


__all__ = ["PointsCalculator", "apply_adjustments", "base_points"]
