"""Failure taxonomy for the points engine.

Every error is terminal for the request that raised it and is raised before
any balance or catalogue write happens.
"""

from __future__ import annotations


class LoyaltyError(RuntimeError):
    """Base exception for points engine failures."""

    code = "loyalty_error"


class LoyaltyValidationError(LoyaltyError):
    """Raised when a request is malformed."""

    code = "validation_error"


class NotFoundError(LoyaltyError):
    """Raised when a referenced customer, reward, rule or tier does not exist."""

    code = "not_found"


class RuleNotFoundError(LoyaltyError):
    """Raised when no active earning rule covers a category/service type pair."""

    code = "rule_not_found"

    def __init__(self, category: str, service_type: str) -> None:
        super().__init__(f"No earning rule found for {category}/{service_type}")
        self.category = category
        self.service_type = service_type


class RewardUnavailableError(LoyaltyError):
    code = "reward_unavailable"


class InsufficientPointsError(LoyaltyError):
    code = "insufficient_points"

    def __init__(self, *, required: int, available: int) -> None:
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(f"Insufficient points: {self.shortfall} more points required")


class OutOfStockError(LoyaltyError):
    code = "out_of_stock"


__all__ = [
    "InsufficientPointsError",
    "LoyaltyError",
    "LoyaltyValidationError",
    "NotFoundError",
    "OutOfStockError",
    "RewardUnavailableError",
    "RuleNotFoundError",
]
