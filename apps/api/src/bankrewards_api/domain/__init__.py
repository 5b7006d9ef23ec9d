"""Loyalty domain records."""

from .loyalty import (  # noqa: F401
    Branch,
    Campaign,
    CampaignStatus,
    CustomerTierAssignment,
    Points,
    Redemption,
    RedemptionStatus,
    Reward,
    Rule,
    RuleUnit,
    Tier,
    Transaction,
    TransactionStatus,
    TransactionType,
    UNLIMITED_STOCK,
    User,
    UserRole,
    utcnow,
)
