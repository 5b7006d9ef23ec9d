"""Loyalty service exports."""

from .analytics import BranchMetric, DashboardSnapshot, LoyaltyAnalyticsService  # noqa: F401
from .calculator import PointsCalculator  # noqa: F401
from .errors import (  # noqa: F401
    InsufficientPointsError,
    LoyaltyError,
    LoyaltyValidationError,
    NotFoundError,
    OutOfStockError,
    RewardUnavailableError,
    RuleNotFoundError,
)
from .ledger import Ledger  # noqa: F401
from .locks import CustomerLockRegistry  # noqa: F401
from .memory import InMemoryLoyaltyRepository  # noqa: F401
from .redemption import RedemptionEngine, RedemptionResult  # noqa: F401
from .repository import LoyaltyRepository  # noqa: F401
from .rules import RuleMatcher  # noqa: F401
from .seed import seed_defaults  # noqa: F401
from .service import BalanceSnapshot, CustomerSummary, EarnResult, LoyaltyService  # noqa: F401
from .sql import SqlAlchemyLoyaltyRepository  # noqa: F401
from .tiers import TierProgress, TierResolver  # noqa: F401
