"""Repository and service dependencies for loyalty endpoints."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bankrewards_api.db.session import get_session
from bankrewards_api.services.loyalty import (
    LoyaltyAnalyticsService,
    LoyaltyRepository,
    LoyaltyService,
    SqlAlchemyLoyaltyRepository,
)


async def get_loyalty_repository(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> LoyaltyRepository:
    """Resolve the repository for the configured backend.

    The in-memory store is process wide and lives on ``app.state``; the SQL
    repository wraps the request's session and shares the customer locks.
    """

    state = request.app.state
    if state.repository_backend == "sql":
        return SqlAlchemyLoyaltyRepository(db, locks=state.customer_locks)
    return state.loyalty_repository


async def get_loyalty_service(
    repository: LoyaltyRepository = Depends(get_loyalty_repository),
) -> LoyaltyService:
    return LoyaltyService(repository)


async def get_analytics_service(
    repository: LoyaltyRepository = Depends(get_loyalty_repository),
) -> LoyaltyAnalyticsService:
    return LoyaltyAnalyticsService(repository)
