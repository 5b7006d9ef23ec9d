"""SQLAlchemy models package."""

from .loyalty import (  # noqa: F401
    CampaignRecord,
    CustomerTierRecord,
    PointsRecord,
    RedemptionRecord,
    RewardRecord,
    RuleRecord,
    TierRecord,
    TransactionRecord,
)
from .user import BranchRecord, UserRecord  # noqa: F401
