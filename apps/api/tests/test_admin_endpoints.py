from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from bankrewards_api.core.settings import settings
from bankrewards_api.domain.loyalty import utcnow
from bankrewards_api.services.loyalty import seed_defaults
from bankrewards_api.services.loyalty.seed import DEMO_CUSTOMER_USERNAME


@pytest.mark.asyncio
async def test_admin_routes_require_key(app_with_repository) -> None:
    app, _ = app_with_repository
    previous_key = settings.admin_api_key
    settings.admin_api_key = "admin-key"

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            anonymous = await client.get("/api/v1/admin/rules")
            wrong = await client.get("/api/v1/admin/rules", headers={"X-API-Key": "nope"})
            allowed = await client.get("/api/v1/admin/rules", headers={"X-API-Key": "admin-key"})
        assert anonymous.status_code == 401
        assert wrong.status_code == 401
        assert allowed.status_code == 200
    finally:
        settings.admin_api_key = previous_key


@pytest.mark.asyncio
async def test_rule_lifecycle(app_with_repository) -> None:
    app, _ = app_with_repository

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post(
            "/api/v1/admin/rules",
            json={
                "name": "Card Purchases",
                "category": "cards",
                "serviceType": "purchase",
                "pointsPerUnit": 2,
                "unit": "amount",
                "unitValue": "100",
                "maximumPoints": 200,
            },
        )
        rule_id = created.json()["id"]
        updated = await client.put(f"/api/v1/admin/rules/{rule_id}", json={"pointsPerUnit": 3, "isActive": False})
        listed = await client.get("/api/v1/admin/rules")
        deleted = await client.delete(f"/api/v1/admin/rules/{rule_id}")
        deleted_again = await client.delete(f"/api/v1/admin/rules/{rule_id}")
        invalid = await client.post(
            "/api/v1/admin/rules",
            json={"name": "Broken", "category": "cards", "serviceType": "purchase", "pointsPerUnit": -1, "unit": "amount"},
        )

    assert created.status_code == 201
    assert created.json()["unitValue"] == 100.0
    assert updated.status_code == 200
    assert updated.json()["pointsPerUnit"] == 3
    assert updated.json()["isActive"] is False
    assert [rule["id"] for rule in listed.json()] == [rule_id]
    assert deleted.status_code == 204
    assert deleted_again.status_code == 404
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_tier_and_customer_management(app_with_repository) -> None:
    app, repository = app_with_repository
    await seed_defaults(repository)
    branch = (await repository.list_branches())[0]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        diamond = await client.post(
            "/api/v1/admin/tiers",
            json={"name": "Diamond", "minimumPoints": 50000, "multiplier": "3.0", "color": "#B9F2FF"},
        )
        clash = await client.post("/api/v1/admin/tiers", json={"name": "Bronze", "minimumPoints": 5000})
        renamed = await client.put(
            f"/api/v1/admin/tiers/{diamond.json()['id']}",
            json={"benefits": ["Dedicated banker"]},
        )
        registered = await client.post(
            "/api/v1/admin/customers",
            json={
                "username": "almaz",
                "email": "almaz@example.com",
                "firstName": "Almaz",
                "lastName": "Ayana",
                "phoneNumber": "+251911222333",
                "branchId": str(branch.id),
            },
        )
        duplicate = await client.post(
            "/api/v1/admin/customers",
            json={"username": "almaz", "email": "other@example.com", "firstName": "A", "lastName": "B"},
        )
        assigned = await client.put(
            f"/api/v1/admin/customers/{registered.json()['id']}/tier",
            json={"tierId": diamond.json()["id"]},
        )
        unknown_customer = await client.put(
            f"/api/v1/admin/customers/{uuid4()}/tier",
            json={"tierId": diamond.json()["id"]},
        )
        customers = await client.get("/api/v1/admin/customers", params={"branchId": str(branch.id)})
        tiers = await client.get("/api/v1/admin/tiers")

    assert diamond.status_code == 201
    assert clash.status_code == 400
    assert renamed.json()["benefits"] == ["Dedicated banker"]
    assert registered.status_code == 201
    assert registered.json()["name"] == "Almaz Ayana"
    assert registered.json()["points"] == 0
    assert registered.json()["status"] == "Active"
    assert duplicate.status_code == 400
    assert assigned.status_code == 200
    assert unknown_customer.status_code == 404

    by_email = {item["email"]: item for item in customers.json()}
    assert by_email["almaz@example.com"]["tier"] == "Diamond"
    assert by_email["john@example.com"]["tier"] == "Gold"
    assert by_email["john@example.com"]["points"] == 12450
    assert [tier["name"] for tier in tiers.json()] == ["Silver", "Gold", "Platinum", "Diamond"]


@pytest.mark.asyncio
async def test_campaign_reward_and_branch_catalogue(app_with_repository) -> None:
    app, _ = app_with_repository
    now = utcnow()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        running = await client.post(
            "/api/v1/admin/campaigns",
            json={
                "name": "New Year",
                "description": "Double points",
                "type": "multiplier",
                "startDate": (now - timedelta(days=1)).isoformat(),
                "endDate": (now + timedelta(days=30)).isoformat(),
                "budget": 100000,
            },
        )
        backwards = await client.post(
            "/api/v1/admin/campaigns",
            json={
                "name": "Backwards",
                "type": "bonus",
                "startDate": now.isoformat(),
                "endDate": (now - timedelta(days=1)).isoformat(),
            },
        )
        ended = await client.put(f"/api/v1/admin/campaigns/{running.json()['id']}", json={"status": "ended"})
        active = await client.get("/api/v1/admin/campaigns", params={"active": "true"})
        every = await client.get("/api/v1/admin/campaigns")

        reward = await client.post(
            "/api/v1/admin/rewards",
            json={"name": "Airtime", "type": "airtime", "cost": 300, "value": "25", "category": "telecom"},
        )
        hidden = await client.put(f"/api/v1/admin/rewards/{reward.json()['id']}", json={"isActive": False})
        admin_rewards = await client.get("/api/v1/admin/rewards")
        public_rewards = await client.get("/api/v1/loyalty/rewards")

        branch = await client.post(
            "/api/v1/admin/branches",
            json={"name": "Hawassa Branch", "code": "HW-01", "city": "Hawassa", "region": "Sidama"},
        )
        duplicate_branch = await client.post(
            "/api/v1/admin/branches",
            json={"name": "Hawassa Two", "code": "HW-01", "city": "Hawassa", "region": "Sidama"},
        )
        branches = await client.get("/api/v1/admin/branches")

    assert running.status_code == 201
    assert running.json()["status"] == "active"
    assert backwards.status_code == 400
    assert ended.json()["status"] == "ended"
    assert active.json() == []
    assert len(every.json()) == 1

    assert reward.status_code == 201
    assert reward.json()["stock"] == -1
    assert hidden.json()["isActive"] is False
    assert [item["name"] for item in admin_rewards.json()] == ["Airtime"]
    assert public_rewards.json() == []

    assert branch.status_code == 201
    assert duplicate_branch.status_code == 400
    assert [item["code"] for item in branches.json()] == ["HW-01"]


@pytest.mark.asyncio
async def test_dashboard_endpoint(app_with_repository) -> None:
    app, repository = app_with_repository
    await seed_defaults(repository)
    customer = await repository.get_user_by_username(DEMO_CUSTOMER_USERNAME)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post(
            "/api/v1/loyalty/earn",
            json={"customerId": str(customer.id), "category": "banking", "serviceType": "bill_payment", "amount": "1500"},
        )
        response = await client.get("/api/v1/admin/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["metrics"] == {
        "totalCustomers": 1,
        "totalPointsIssued": 22,
        "totalPointsRedeemed": 0,
        "activeCampaigns": 0,
    }
    assert body["branchMetrics"][0]["customers"] == 1
    assert body["branchMetrics"][0]["points"] == 22
    assert [item["description"] for item in body["recentActivity"]] == ["Points earned from Bill Payments"]
    assert "computedAt" in body


@pytest.mark.asyncio
async def test_explicit_null_only_clears_optional_fields(app_with_repository) -> None:
    app, _ = app_with_repository
    now = utcnow()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        rule = await client.post(
            "/api/v1/admin/rules",
            json={
                "name": "Card Purchases",
                "category": "cards",
                "serviceType": "purchase",
                "pointsPerUnit": 2,
                "unit": "amount",
                "unitValue": "100",
                "maximumPoints": 200,
            },
        )
        rule_url = f"/api/v1/admin/rules/{rule.json()['id']}"
        rule_points = await client.put(rule_url, json={"pointsPerUnit": None})
        rule_name = await client.put(rule_url, json={"name": None})
        rule_unit = await client.put(rule_url, json={"unit": None})
        rule_cap = await client.put(rule_url, json={"maximumPoints": None})

        tier = await client.post("/api/v1/admin/tiers", json={"name": "Onyx", "minimumPoints": 70000})
        tier_url = f"/api/v1/admin/tiers/{tier.json()['id']}"
        tier_minimum = await client.put(tier_url, json={"minimumPoints": None})
        tier_multiplier = await client.put(tier_url, json={"multiplier": None})

        reward = await client.post(
            "/api/v1/admin/rewards",
            json={"name": "Airtime", "type": "airtime", "cost": 300, "value": "25", "category": "telecom", "terms": "Once"},
        )
        reward_url = f"/api/v1/admin/rewards/{reward.json()['id']}"
        reward_stock = await client.put(reward_url, json={"stock": None})
        reward_cost = await client.put(reward_url, json={"cost": None})
        reward_terms = await client.put(reward_url, json={"terms": None})

        campaign = await client.post(
            "/api/v1/admin/campaigns",
            json={
                "name": "New Year",
                "type": "multiplier",
                "startDate": now.isoformat(),
                "endDate": (now + timedelta(days=30)).isoformat(),
                "budget": 100000,
            },
        )
        campaign_url = f"/api/v1/admin/campaigns/{campaign.json()['id']}"
        campaign_name = await client.put(campaign_url, json={"name": None})
        campaign_status = await client.put(campaign_url, json={"status": None})
        campaign_budget = await client.put(campaign_url, json={"budget": None})
        rules_after = await client.get("/api/v1/admin/rules")

    for response in (
        rule_points,
        rule_name,
        rule_unit,
        tier_minimum,
        tier_multiplier,
        reward_stock,
        reward_cost,
        campaign_name,
        campaign_status,
    ):
        assert response.status_code == 400
        assert "cannot be null" in response.json()["detail"]

    assert rule_cap.status_code == 200
    assert rule_cap.json()["maximumPoints"] is None
    assert rules_after.json()[0]["pointsPerUnit"] == 2
    assert rules_after.json()[0]["name"] == "Card Purchases"
    assert reward_terms.status_code == 200
    assert reward_terms.json()["terms"] is None
    assert reward_terms.json()["cost"] == 300
    assert campaign_budget.status_code == 200
    assert campaign_budget.json()["budget"] is None
    assert campaign_budget.json()["name"] == "New Year"
