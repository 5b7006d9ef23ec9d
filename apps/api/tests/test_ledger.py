from uuid import uuid4

import pytest

from bankrewards_api.domain.loyalty import Transaction, TransactionType
from bankrewards_api.services.loyalty import (
    InsufficientPointsError,
    Ledger,
    LoyaltyValidationError,
    NotFoundError,
)


def _entry(customer_id, entry_type: TransactionType, points: int) -> Transaction:
    return Transaction(
        customer_id=customer_id,
        type=entry_type,
        points=points,
        description=f"{entry_type.value} {points}",
        category="banking",
    )


@pytest.mark.asyncio
async def test_earn_then_redeem_updates_all_counters(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository)
    ledger = Ledger(memory_repository)

    async with memory_repository.customer_scope(customer.id):
        earned = await ledger.apply_transaction(_entry(customer.id, TransactionType.EARN, 100))
    assert (earned.total_points, earned.available_points, earned.lifetime_earned) == (100, 100, 100)

    async with memory_repository.customer_scope(customer.id):
        redeemed = await ledger.apply_transaction(_entry(customer.id, TransactionType.REDEEM, 30))
    assert redeemed.total_points == 70
    assert redeemed.available_points == 70
    assert redeemed.lifetime_earned == 100
    assert redeemed.lifetime_redeemed == 30

    stored = await memory_repository.get_points(customer.id)
    assert stored.available_points == 70
    history = await memory_repository.list_customer_transactions(customer.id, limit=10)
    assert [item.type for item in history] == [TransactionType.REDEEM, TransactionType.EARN]


@pytest.mark.asyncio
async def test_zero_point_earn_is_recorded(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository, available_points=10)
    ledger = Ledger(memory_repository)

    points = await ledger.apply_transaction(_entry(customer.id, TransactionType.EARN, 0))

    assert points.available_points == 10
    assert len(await memory_repository.list_customer_transactions(customer.id, limit=10)) == 1


@pytest.mark.asyncio
async def test_negative_points_rejected(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository, available_points=10)

    with pytest.raises(LoyaltyValidationError):
        await Ledger(memory_repository).apply_transaction(_entry(customer.id, TransactionType.EARN, -5))


@pytest.mark.asyncio
async def test_redeem_cannot_overdraw(memory_repository, create_customer) -> None:
    customer = await create_customer(memory_repository, available_points=10)

    with pytest.raises(InsufficientPointsError) as excinfo:
        await Ledger(memory_repository).apply_transaction(_entry(customer.id, TransactionType.REDEEM, 25))

    assert excinfo.value.shortfall == 15
    assert (await memory_repository.get_points(customer.id)).available_points == 10
    assert await memory_repository.list_customer_transactions(customer.id, limit=10) == []


@pytest.mark.asyncio
async def test_unknown_customer_has_no_points_row(memory_repository) -> None:
    with pytest.raises(NotFoundError):
        await Ledger(memory_repository).apply_transaction(_entry(uuid4(), TransactionType.EARN, 5))
