from decimal import Decimal

import pytest

from bankrewards_api.domain.loyalty import Rule, RuleUnit, Tier
from bankrewards_api.services.loyalty import LoyaltyValidationError, PointsCalculator, TierResolver
from bankrewards_api.services.loyalty.calculator import apply_adjustments, base_points


def _transfer_rule(**overrides) -> Rule:
    values = dict(
        name="Account Transfers",
        category="banking",
        service_type="transfer",
        points_per_unit=10,
        unit=RuleUnit.AMOUNT,
        unit_value=Decimal("1000"),
        maximum_points=1000,
    )
    values.update(overrides)
    return Rule(**values)


def test_amount_rule_floors_partial_units() -> None:
    rule = _transfer_rule()

    assert base_points(rule, Decimal("2000")) == 20
    assert base_points(rule, Decimal("1999.99")) == 19
    assert base_points(rule, Decimal("50")) == 0


def test_action_rule_ignores_amount() -> None:
    rule = Rule(
        name="Daily Login",
        category="mobile_app",
        service_type="login",
        points_per_unit=5,
        unit=RuleUnit.ACTION,
    )

    assert base_points(rule, None) == 5
    assert base_points(rule, Decimal("99999")) == 5


@pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-10")])
def test_amount_rule_requires_positive_amount(amount) -> None:
    with pytest.raises(LoyaltyValidationError):
        base_points(_transfer_rule(), amount)


def test_tier_multiplier_applies_before_cap() -> None:
    gold = Tier(name="Gold", minimum_points=5000, multiplier=Decimal("1.5"))

    assert apply_adjustments(20, _transfer_rule(), gold) == 30
    assert apply_adjustments(20, _transfer_rule(maximum_points=25), gold) == 25
    assert apply_adjustments(7, _transfer_rule(), gold) == 10


def test_dormant_rule_fields_do_not_change_points() -> None:
    rule = _transfer_rule(
        multiplier=Decimal("3.0"),
        minimum_amount=Decimal("5000"),
        conditions={"autopay_bonus": 2},
    )

    assert apply_adjustments(base_points(rule, Decimal("2000")), rule, None) == 20


@pytest.mark.asyncio
async def test_calculator_uses_assigned_tier(memory_repository, create_customer) -> None:
    gold = await memory_repository.add_tier(Tier(name="Gold", minimum_points=5000, multiplier=Decimal("1.5")))
    tiered = await create_customer(memory_repository, username="tiered", tier_id=gold.id)
    plain = await create_customer(memory_repository, username="plain")
    calculator = PointsCalculator(TierResolver(memory_repository))

    assert await calculator.compute_earned_points(_transfer_rule(), tiered.id, Decimal("2000")) == 30
    assert await calculator.compute_earned_points(_transfer_rule(), plain.id, Decimal("2000")) == 20
    assert await calculator.compute_earned_points(_transfer_rule(maximum_points=25), tiered.id, Decimal("2000")) == 25


@pytest.mark.asyncio
async def test_calculator_is_monotonic_in_amount(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository)
    calculator = PointsCalculator(TierResolver(memory_repository))
    rule = _transfer_rule(maximum_points=None)

    previous = 0
    for amount in range(100, 20000, 750):
        points = await calculator.compute_earned_points(rule, customer.id, Decimal(amount))
        assert points >= previous
        previous = points
