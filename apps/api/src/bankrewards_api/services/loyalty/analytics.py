"""Administrative dashboard aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from bankrewards_api.core.settings import Settings, settings as default_settings
from bankrewards_api.domain.loyalty import Transaction, TransactionType, utcnow
from bankrewards_api.services.loyalty.repository import LoyaltyRepository


@dataclass(slots=True)
class BranchMetric:
    """Customers registered at a branch and the points they have earned."""

    branch_id: UUID
    branch_name: str
    customers: int
    points: int


@dataclass(slots=True)
class DashboardSnapshot:
    """Platform-wide loyalty totals for the admin overview."""

    computed_at: datetime
    total_customers: int
    total_points_issued: int
    total_points_redeemed: int
    active_campaigns: int
    branch_metrics: list[BranchMetric]
    recent_activity: list[Transaction]


class LoyaltyAnalyticsService:
    """Compute dashboard totals from the repository."""

    def __init__(self, repository: LoyaltyRepository, *, settings: Settings | None = None) -> None:
        self._repository = repository
        self._settings = settings or default_settings

    async def dashboard(self) -> DashboardSnapshot:
        now = utcnow()
        customers = await self._repository.list_customers()
        issued = await self._repository.sum_transaction_points(TransactionType.EARN)
        redeemed = await self._repository.sum_transaction_points(TransactionType.REDEEM)
        campaigns = await self._repository.list_active_campaigns(now)
        recent = await self._repository.list_recent_transactions(limit=self._settings.recent_activity_limit)

        return DashboardSnapshot(
            computed_at=now,
            total_customers=len(customers),
            total_points_issued=issued,
            total_points_redeemed=redeemed,
            active_campaigns=len(campaigns),
            branch_metrics=await self._branch_metrics(),
            recent_activity=recent,
        )

    async def _branch_metrics(self) -> list[BranchMetric]:
        metrics: list[BranchMetric] = []
        for branch in await self._repository.list_branches():
            members = await self._repository.list_customers(branch_id=branch.id)
            member_ids = [member.id for member in members]
            points = 0
            if member_ids:
                points = await self._repository.sum_transaction_points(
                    TransactionType.EARN,
                    customer_ids=member_ids,
                )
            metrics.append(
                BranchMetric(
                    branch_id=branch.id,
                    branch_name=branch.name,
                    customers=len(members),
                    points=points,
                )
            )
        return metrics


__all__ = ["BranchMetric", "DashboardSnapshot", "LoyaltyAnalyticsService"]
