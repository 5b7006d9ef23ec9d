"""Earning rule lookup."""

from __future__ import annotations

from loguru import logger

from bankrewards_api.domain.loyalty import Rule
from bankrewards_api.services.loyalty.errors import LoyaltyValidationError, RuleNotFoundError
from bankrewards_api.services.loyalty.repository import LoyaltyRepository


class RuleMatcher:
    """Select the active rule for a ``(category, service_type)`` action."""

    def __init__(self, repository: LoyaltyRepository) -> None:
        self._repository = repository

    async def find_rule(self, category: str, service_type: str) -> Rule:
        if not category or not service_type:
            raise LoyaltyValidationError("category and serviceType are required")

        matches = [
            rule
            for rule in await self._repository.list_active_rules()
            if rule.category == category and rule.service_type == service_type
        ]
        if not matches:
            raise RuleNotFoundError(category, service_type)

        if len(matches) > 1:
            logger.warning(
                "Multiple active earning rules match; using the oldest",
                category=category,
                service_type=service_type,
                rule_ids=[str(rule.id) for rule in matches],
            )
        return matches[0]


__all__ = ["RuleMatcher"]
