"""Points ledger, earning rule, tier and reward catalogue tables."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from bankrewards_api.db.base import Base
from bankrewards_api.domain.loyalty import (
    CampaignStatus,
    RedemptionStatus,
    TransactionStatus,
    UNLIMITED_STOCK,
)


class PointsRecord(Base):
    """One balance row per customer."""

    __tablename__ = "loyalty_points"
    __table_args__ = (
        UniqueConstraint("customer_id", name="uq_loyalty_points_customer_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    total_points = Column(Integer, nullable=False, default=0, server_default="0")
    available_points = Column(Integer, nullable=False, default=0, server_default="0")
    lifetime_earned = Column(Integer, nullable=False, default=0, server_default="0")
    lifetime_redeemed = Column(Integer, nullable=False, default=0, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class TransactionRecord(Base):
    """Append-only earn/redeem audit trail."""

    __tablename__ = "loyalty_transactions"
    __table_args__ = (
        Index("ix_loyalty_transactions_customer_created", "customer_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(length=16), nullable=False)
    points = Column(Integer, nullable=False)
    description = Column(String, nullable=False)
    category = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=True)
    currency = Column(String(length=8), nullable=True, default="ETB")
    rule_id = Column(UUID(as_uuid=True), nullable=True)
    campaign_id = Column(UUID(as_uuid=True), nullable=True)
    status = Column(
        String(length=16),
        nullable=False,
        default=TransactionStatus.COMPLETED.value,
        server_default=TransactionStatus.COMPLETED.value,
    )
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RuleRecord(Base):
    __tablename__ = "loyalty_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    service_type = Column(String, nullable=False)
    points_per_unit = Column(Integer, nullable=False)
    unit = Column(String(length=16), nullable=False)
    unit_value = Column(Numeric(14, 2), nullable=False)
    minimum_amount = Column(Numeric(14, 2), nullable=True)
    maximum_points = Column(Integer, nullable=True)
    multiplier = Column(Numeric(6, 2), nullable=False, default=1, server_default="1.0")
    conditions = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class TierRecord(Base):
    __tablename__ = "loyalty_tiers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    minimum_points = Column(Integer, nullable=False, index=True)
    multiplier = Column(Numeric(6, 2), nullable=False, default=1, server_default="1.0")
    benefits = Column(JSON, nullable=False, default=list)
    color = Column(String(length=16), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CustomerTierRecord(Base):
    """Authoritative tier assignment; replaced wholesale on promotion."""

    __tablename__ = "loyalty_customer_tiers"
    __table_args__ = (
        UniqueConstraint("customer_id", name="uq_loyalty_customer_tiers_customer_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tier_id = Column(UUID(as_uuid=True), ForeignKey("loyalty_tiers.id"), nullable=False)
    achieved_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")


class CampaignRecord(Base):
    __tablename__ = "loyalty_campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(length=32), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    rules = Column(JSON, nullable=False, default=dict)
    target_customers = Column(JSON, nullable=False, default=list)
    budget = Column(Integer, nullable=True)
    spent = Column(Integer, nullable=False, default=0, server_default="0")
    participants = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(
        String(length=16),
        nullable=False,
        default=CampaignStatus.ACTIVE.value,
        server_default=CampaignStatus.ACTIVE.value,
    )
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class RewardRecord(Base):
    __tablename__ = "loyalty_rewards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(length=32), nullable=False)
    cost = Column(Integer, nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    category = Column(String, nullable=False)
    provider = Column(String, nullable=True)
    stock = Column(Integer, nullable=False, default=UNLIMITED_STOCK, server_default=str(UNLIMITED_STOCK))
    terms = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RedemptionRecord(Base):
    __tablename__ = "loyalty_redemptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id = Column(UUID(as_uuid=True), ForeignKey("loyalty_rewards.id"), nullable=False)
    points_used = Column(Integer, nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    status = Column(
        String(length=16),
        nullable=False,
        default=RedemptionStatus.PENDING.value,
        server_default=RedemptionStatus.PENDING.value,
    )
    code = Column(String, nullable=True, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
