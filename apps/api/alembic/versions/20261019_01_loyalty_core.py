"""Loyalty core: users, branches, points ledger, rules, tiers, campaigns and rewards.

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("city", sa.String(), nullable=False),
        sa.Column("region", sa.String(), nullable=False),
        sa.Column("manager", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
    )

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="customer"),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("banking_id", sa.String(), nullable=True, unique=True),
        sa.Column("branch_id", _uuid(), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("role IN ('admin','branch_manager','customer')", name="ck_users_role_valid"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_branch_id", "users", ["branch_id"])

    op.create_table(
        "loyalty_points",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_redeemed", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("customer_id", name="uq_loyalty_points_customer_id"),
        sa.CheckConstraint("available_points >= 0", name="ck_loyalty_points_available_non_negative"),
    )

    op.create_table(
        "loyalty_transactions",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("rule_id", _uuid(), nullable=True),
        sa.Column("campaign_id", _uuid(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("type IN ('earn','redeem')", name="ck_loyalty_transactions_type_valid"),
        sa.CheckConstraint("points >= 0", name="ck_loyalty_transactions_points_non_negative"),
    )
    op.create_index(
        "ix_loyalty_transactions_customer_created",
        "loyalty_transactions",
        ["customer_id", "created_at"],
    )

    op.create_table(
        "loyalty_rules",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("points_per_unit", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(length=16), nullable=False),
        sa.Column("unit_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("minimum_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("maximum_points", sa.Integer(), nullable=True),
        sa.Column("multiplier", sa.Numeric(6, 2), nullable=False, server_default="1.0"),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("unit IN ('amount','action')", name="ck_loyalty_rules_unit_valid"),
    )
    op.create_index("ix_loyalty_rules_category", "loyalty_rules", ["category"])

    op.create_table(
        "loyalty_tiers",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("minimum_points", sa.Integer(), nullable=False),
        sa.Column("multiplier", sa.Numeric(6, 2), nullable=False, server_default="1.0"),
        sa.Column("benefits", sa.JSON(), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
    )
    op.create_index("ix_loyalty_tiers_minimum_points", "loyalty_tiers", ["minimum_points"])

    op.create_table(
        "loyalty_customer_tiers",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tier_id", _uuid(), sa.ForeignKey("loyalty_tiers.id"), nullable=False),
        _timestamp("achieved_at"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("customer_id", name="uq_loyalty_customer_tiers_customer_id"),
    )

    op.create_table(
        "loyalty_campaigns",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rules", sa.JSON(), nullable=False),
        sa.Column("target_customers", sa.JSON(), nullable=False),
        sa.Column("budget", sa.Integer(), nullable=True),
        sa.Column("spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("participants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_by", sa.String(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "loyalty_rewards",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("provider", sa.String(), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="-1"),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        sa.CheckConstraint("stock >= -1", name="ck_loyalty_rewards_stock_valid"),
    )

    op.create_table(
        "loyalty_redemptions",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_id", _uuid(), sa.ForeignKey("loyalty_rewards.id"), nullable=False),
        sa.Column("points_used", sa.Integer(), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("code", sa.String(), nullable=True, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_loyalty_redemptions_customer_id", "loyalty_redemptions", ["customer_id"])


def downgrade() -> None:
    op.drop_index("ix_loyalty_redemptions_customer_id", table_name="loyalty_redemptions")
    op.drop_table("loyalty_redemptions")
    op.drop_table("loyalty_rewards")
    op.drop_table("loyalty_campaigns")
    op.drop_table("loyalty_customer_tiers")
    op.drop_index("ix_loyalty_tiers_minimum_points", table_name="loyalty_tiers")
    op.drop_table("loyalty_tiers")
    op.drop_index("ix_loyalty_rules_category", table_name="loyalty_rules")
    op.drop_table("loyalty_rules")
    op.drop_index("ix_loyalty_transactions_customer_created", table_name="loyalty_transactions")
    op.drop_table("loyalty_transactions")
    op.drop_table("loyalty_points")
    op.drop_index("ix_users_branch_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_table("branches")
