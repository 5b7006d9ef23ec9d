from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from bankrewards_api.services.loyalty import SqlAlchemyLoyaltyRepository, seed_defaults
from bankrewards_api.services.loyalty.seed import DEMO_CUSTOMER_USERNAME


async def _seeded_customer(repository):
    await seed_defaults(repository)
    customer = await repository.get_user_by_username(DEMO_CUSTOMER_USERNAME)
    rewards = {reward.type: reward for reward in await repository.list_rewards()}
    return customer, rewards


@pytest.mark.asyncio
async def test_earn_endpoint_credits_points(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, _ = await _seeded_customer(repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/v1/loyalty/earn",
            json={
                "customerId": str(customer.id),
                "category": "banking",
                "serviceType": "transfer",
                "amount": "2000",
                "metadata": {"reference": "TRX-1"},
            },
        )

    assert response.status_code == 201
    body = response.json()
    assert body["pointsEarned"] == 30
    assert body["points"]["availablePoints"] == 12480
    assert body["promotedTo"] is None
    transaction = body["transaction"]
    assert transaction["type"] == "earn"
    assert transaction["description"] == "Points earned from Account Transfers"
    assert transaction["currency"] == "ETB"
    assert transaction["metadata"] == {"reference": "TRX-1"}


@pytest.mark.asyncio
async def test_earn_endpoint_error_mapping(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, _ = await _seeded_customer(repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        missing_rule = await client.post(
            "/api/v1/loyalty/earn",
            json={"customerId": str(customer.id), "category": "banking", "serviceType": "loan"},
        )
        missing_amount = await client.post(
            "/api/v1/loyalty/earn",
            json={"customerId": str(customer.id), "category": "banking", "serviceType": "transfer"},
        )
        unknown_customer = await client.post(
            "/api/v1/loyalty/earn",
            json={"customerId": str(uuid4()), "category": "mobile_app", "serviceType": "login"},
        )
        malformed = await client.post("/api/v1/loyalty/earn", json={"customerId": "not-a-uuid"})

    assert missing_rule.status_code == 400
    assert missing_rule.json()["detail"] == "No earning rule found for banking/loan"
    assert missing_amount.status_code == 400
    assert unknown_customer.status_code == 404
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_malformed_earn_and_redeem_bodies_are_bad_requests(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, _ = await _seeded_customer(repository)
    valid_earn = {"customerId": str(customer.id), "category": "banking", "serviceType": "transfer", "amount": "1000"}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        earn_bodies = [
            {**valid_earn, "category": ""},
            {**valid_earn, "amount": "abc"},
            {**valid_earn, "customerId": "not-a-uuid"},
            {"category": "banking"},
        ]
        earn_responses = [await client.post("/api/v1/loyalty/earn", json=body) for body in earn_bodies]
        redeem_bad_reward = await client.post(
            "/api/v1/loyalty/redeem",
            json={"customerId": str(customer.id), "rewardId": "voucher"},
        )
        redeem_empty = await client.post("/api/v1/loyalty/redeem", json={})
        balance = await client.get(f"/api/v1/loyalty/balance/{customer.id}")

    for response in [*earn_responses, redeem_bad_reward, redeem_empty]:
        assert response.status_code == 400
        assert isinstance(response.json()["detail"], list)
    assert earn_responses[0].json()["detail"][0]["loc"] == ["body", "category"]
    assert earn_responses[1].json()["detail"][0]["loc"] == ["body", "amount"]
    assert balance.json()["points"]["availablePoints"] == 12450


@pytest.mark.asyncio
async def test_redeem_endpoint_and_customer_redemptions(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, rewards = await _seeded_customer(repository)
    voucher = rewards["voucher"]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/v1/loyalty/redeem",
            json={"customerId": str(customer.id), "rewardId": str(voucher.id)},
        )
        listing = await client.get(f"/api/v1/loyalty/customers/{customer.id}/redemptions")

    assert response.status_code == 201
    body = response.json()
    redemption = body["redemption"]
    assert redemption["status"] == "completed"
    assert redemption["pointsUsed"] == 800
    assert redemption["code"].startswith("CBO-")
    assert redemption["expiresAt"] is not None
    assert body["transaction"]["type"] == "redeem"
    assert body["transaction"]["metadata"] == {"redemptionId": redemption["id"]}

    assert listing.status_code == 200
    assert [item["id"] for item in listing.json()] == [redemption["id"]]
    assert (await repository.get_points(customer.id)).available_points == 11650


@pytest.mark.asyncio
async def test_redeem_insufficient_points_reports_shortfall(app_with_repository, create_customer) -> None:
    app, repository = app_with_repository
    _, rewards = await _seeded_customer(repository)
    member = await create_customer(repository, username="saver", available_points=250)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/v1/loyalty/redeem",
            json={"customerId": str(member.id), "rewardId": str(rewards["cashback"].id)},
        )
        unknown_reward = await client.post(
            "/api/v1/loyalty/redeem",
            json={"customerId": str(member.id), "rewardId": str(uuid4())},
        )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["shortfall"] == 750
    assert detail["required"] == 1000
    assert detail["available"] == 250
    assert "750" in detail["message"]
    assert unknown_reward.status_code == 404


@pytest.mark.asyncio
async def test_balance_endpoint_includes_tier_progress(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, _ = await _seeded_customer(repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get(f"/api/v1/loyalty/balance/{customer.id}")
        missing = await client.get(f"/api/v1/loyalty/balance/{uuid4()}")

    assert response.status_code == 200
    body = response.json()
    assert body["points"]["availablePoints"] == 12450
    assert body["points"]["lifetimeEarned"] == 45780
    assert body["tier"]["name"] == "Gold"
    assert body["nextTier"]["name"] == "Platinum"
    assert body["pointsToNextTier"] == 2550
    assert body["progressToNextTier"] == pytest.approx(74.5)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_history_endpoint_orders_and_limits(app_with_repository) -> None:
    app, repository = app_with_repository
    customer, _ = await _seeded_customer(repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        empty = await client.get(f"/api/v1/loyalty/history/{customer.id}")
        for amount in ("1000", "2000", "3000"):
            await client.post(
                "/api/v1/loyalty/earn",
                json={
                    "customerId": str(customer.id),
                    "category": "banking",
                    "serviceType": "transfer",
                    "amount": amount,
                },
            )
        limited = await client.get(f"/api/v1/loyalty/history/{customer.id}", params={"limit": 2})
        rejected = await client.get(f"/api/v1/loyalty/history/{customer.id}", params={"limit": 0})

    assert empty.json() == {"transactions": []}
    assert [item["amount"] for item in limited.json()["transactions"]] == [3000.0, 2000.0]
    assert rejected.status_code == 422


@pytest.mark.asyncio
async def test_rewards_endpoint_lists_active_catalogue(app_with_repository) -> None:
    app, repository = app_with_repository
    _, rewards = await _seeded_customer(repository)
    retired = rewards["cashback"]
    retired.is_active = False
    await repository.save_reward(retired)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/loyalty/rewards")

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Shopping Voucher"]


@pytest.mark.asyncio
async def test_earn_and_redeem_against_database(app_with_db) -> None:
    app, session_factory = app_with_db
    async with session_factory() as session:
        repository = SqlAlchemyLoyaltyRepository(session, locks=app.state.customer_locks)
        customer, rewards = await _seeded_customer(repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        earned = await client.post(
            "/api/v1/loyalty/earn",
            json={"customerId": str(customer.id), "category": "mobile_app", "serviceType": "login"},
        )
        redeemed = await client.post(
            "/api/v1/loyalty/redeem",
            json={"customerId": str(customer.id), "rewardId": str(rewards["cashback"].id)},
        )
        balance = await client.get(f"/api/v1/loyalty/balance/{customer.id}")

    assert earned.status_code == 201
    assert earned.json()["pointsEarned"] == 5
    assert redeemed.status_code == 201
    assert redeemed.json()["redemption"]["code"] is None
    assert balance.json()["points"]["availablePoints"] == 12450 + 5 - 1000

    async with session_factory() as session:
        repository = SqlAlchemyLoyaltyRepository(session, locks=app.state.customer_locks)
        history = await repository.list_customer_transactions(customer.id, limit=10)
    assert len(history) == 2
