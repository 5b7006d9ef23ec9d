from decimal import Decimal
from uuid import uuid4

import pytest

from bankrewards_api.domain.loyalty import Tier
from bankrewards_api.services.loyalty import NotFoundError, TierResolver


async def _install_tiers(repository) -> dict[str, Tier]:
    tiers = {}
    for name, minimum, multiplier in (("Silver", 0, "1.0"), ("Gold", 5000, "1.5"), ("Platinum", 15000, "2.0")):
        tiers[name] = await repository.add_tier(
            Tier(name=name, minimum_points=minimum, multiplier=Decimal(multiplier))
        )
    return tiers


@pytest.mark.asyncio
async def test_customer_without_assignment_has_no_tier(memory_repository, create_customer) -> None:
    await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, available_points=20000)

    assert await TierResolver(memory_repository).current_tier(customer.id) is None


@pytest.mark.asyncio
async def test_assignment_is_not_derived_from_points(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, available_points=20000, tier_id=tiers["Silver"].id)

    tier = await TierResolver(memory_repository).current_tier(customer.id)

    assert tier.name == "Silver"


@pytest.mark.asyncio
async def test_progress_towards_next_tier(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, available_points=2500, tier_id=tiers["Silver"].id)

    progress = await TierResolver(memory_repository).progress(customer.id, 2500)

    assert progress.current_tier.name == "Silver"
    assert progress.next_tier.name == "Gold"
    assert progress.points_to_next_tier == 2500
    assert progress.progress == Decimal("0.5")


@pytest.mark.asyncio
async def test_progress_is_clamped(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, tier_id=tiers["Gold"].id)
    resolver = TierResolver(memory_repository)

    above = await resolver.progress(customer.id, 16000)
    below = await resolver.progress(customer.id, 100)

    assert above.next_tier.name == "Platinum"
    assert above.points_to_next_tier == 0
    assert above.progress == Decimal("1")
    assert below.progress == Decimal("0")


@pytest.mark.asyncio
async def test_top_tier_has_no_next(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, tier_id=tiers["Platinum"].id)

    progress = await TierResolver(memory_repository).progress(customer.id, 15500)

    assert progress.next_tier is None
    assert progress.points_to_next_tier == 0
    assert progress.progress == Decimal("1")


@pytest.mark.asyncio
async def test_assign_replaces_existing_assignment(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, tier_id=tiers["Silver"].id)
    resolver = TierResolver(memory_repository)

    await resolver.assign(customer.id, tiers["Platinum"].id)

    assert (await resolver.current_tier(customer.id)).name == "Platinum"


@pytest.mark.asyncio
async def test_assign_unknown_tier(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository)

    with pytest.raises(NotFoundError):
        await TierResolver(memory_repository).assign(customer.id, uuid4())


@pytest.mark.asyncio
async def test_promote_only_upgrades(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    customer = await create_customer(memory_repository, tier_id=tiers["Gold"].id)
    resolver = TierResolver(memory_repository)

    assert await resolver.promote(customer.id, 1000) is None
    assert (await resolver.current_tier(customer.id)).name == "Gold"

    promoted = await resolver.promote(customer.id, 15000)
    assert promoted.name == "Platinum"
    assert (await resolver.current_tier(customer.id)).name == "Platinum"


@pytest.mark.asyncio
async def test_promote_ignores_inactive_tiers(memory_repository, create_customer) -> None:
    tiers = await _install_tiers(memory_repository)
    platinum = tiers["Platinum"]
    platinum.is_active = False
    await memory_repository.save_tier(platinum)
    customer = await create_customer(memory_repository, tier_id=tiers["Silver"].id)

    promoted = await TierResolver(memory_repository).promote(customer.id, 50000)

    assert promoted.name == "Gold"
