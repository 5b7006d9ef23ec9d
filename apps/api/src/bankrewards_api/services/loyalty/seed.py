"""Demo catalogue installed on first start when ``seed_demo_data`` is enabled."""

from __future__ import annotations

from decimal import Decimal

from loguru import logger

from bankrewards_api.domain.loyalty import (
    Branch,
    CustomerTierAssignment,
    Points,
    Reward,
    Rule,
    RuleUnit,
    Tier,
    UNLIMITED_STOCK,
    User,
    UserRole,
)
from bankrewards_api.services.loyalty.repository import LoyaltyRepository

ADMIN_USERNAME = "admin"
DEMO_CUSTOMER_USERNAME = "johndoe"


async def seed_defaults(repository: LoyaltyRepository) -> bool:
    """Install the demo data set; returns ``False`` when it is already present."""

    if await repository.get_user_by_username(ADMIN_USERNAME) is not None:
        logger.debug("Demo data already present; skipping seed")
        return False

    branch = await repository.add_branch(
        Branch(
            name="Addis Ababa Main Branch",
            code="AA-MAIN",
            city="Addis Ababa",
            region="Addis Ababa",
            manager="Alemayehu Tadesse",
        )
    )

    admin = await repository.add_user(
        User(
            username=ADMIN_USERNAME,
            email="admin@cbo.et",
            first_name="System",
            last_name="Administrator",
            role=UserRole.ADMIN,
            phone_number="+251911000000",
            banking_id="CBO-ADMIN-001",
            branch_id=branch.id,
        )
    )
    await repository.add_points(Points(customer_id=admin.id))

    customer = await repository.add_user(
        User(
            username=DEMO_CUSTOMER_USERNAME,
            email="john@example.com",
            first_name="John",
            last_name="Doe",
            phone_number="+251911123456",
            banking_id="CBO-CUST-001",
            branch_id=branch.id,
        )
    )
    await repository.add_points(
        Points(
            customer_id=customer.id,
            total_points=12450,
            available_points=12450,
            lifetime_earned=45780,
            lifetime_redeemed=33330,
        )
    )

    await repository.add_tier(
        Tier(
            name="Silver",
            minimum_points=0,
            multiplier=Decimal("1.0"),
            benefits=["Basic support", "Standard processing"],
            color="#C0C0C0",
        )
    )
    gold = await repository.add_tier(
        Tier(
            name="Gold",
            minimum_points=5000,
            multiplier=Decimal("1.5"),
            benefits=["Priority support", "1.5x points", "Birthday bonus", "Exclusive offers"],
            color="#FFD700",
        )
    )
    await repository.add_tier(
        Tier(
            name="Platinum",
            minimum_points=15000,
            multiplier=Decimal("2.0"),
            benefits=["VIP support", "2x points", "Premium rewards", "Concierge service"],
            color="#E5E4E2",
        )
    )
    await repository.set_tier_assignment(CustomerTierAssignment(customer_id=customer.id, tier_id=gold.id))

    for rule in (
        Rule(
            name="Account Transfers",
            category="banking",
            service_type="transfer",
            points_per_unit=10,
            unit=RuleUnit.AMOUNT,
            unit_value=Decimal("1000"),
            minimum_amount=Decimal("100"),
            maximum_points=1000,
        ),
        Rule(
            name="Bill Payments",
            category="banking",
            service_type="bill_payment",
            points_per_unit=5,
            unit=RuleUnit.AMOUNT,
            unit_value=Decimal("500"),
            minimum_amount=Decimal("50"),
            maximum_points=500,
            conditions={"autopay_bonus": 2},
        ),
        Rule(
            name="Daily Login",
            category="mobile_app",
            service_type="login",
            points_per_unit=5,
            unit=RuleUnit.ACTION,
            maximum_points=5,
            conditions={"streak_bonus": 50},
        ),
    ):
        await repository.add_rule(rule)

    await repository.add_reward(
        Reward(
            name="Cashback",
            description="Direct cash transfer to your account",
            type="cashback",
            cost=1000,
            value=Decimal("100"),
            category="cash",
            provider="CBO",
            stock=UNLIMITED_STOCK,
            terms="Cashback will be processed within 24 hours",
        )
    )
    await repository.add_reward(
        Reward(
            name="Shopping Voucher",
            description="Use at partner stores",
            type="voucher",
            cost=800,
            value=Decimal("100"),
            category="shopping",
            provider="Partner Stores",
            stock=100,
            terms="Valid for 6 months from redemption date",
        )
    )

    await repository.commit()
    logger.info("Seeded demo loyalty data", customer_id=str(customer.id), branch=branch.code)
    return True


__all__ = ["ADMIN_USERNAME", "DEMO_CUSTOMER_USERNAME", "seed_defaults"]
