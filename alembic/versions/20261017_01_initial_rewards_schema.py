"""Initial rewards schema.

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


UUID = postgresql.UUID(as_uuid=True)

transaction_type = sa.Enum(
    "EARN",
    "REDEMPTION",
    "ADJUSTMENT",
    "CHECK_IN",
    "BADGE_EARNED",
    "MUKANDO_CONTRIBUTION",
    "MUKANDO_PAYOUT",
    "FOLLOW_BONUS",
    name="transaction_type",
)
loyalty_rule_type = sa.Enum("POINTS", "TIER", "MILESTONE", "MUKANDO", "ECO", name="loyalty_rule_type")
mukando_group_status = sa.Enum(
    "PENDING_APPROVAL", "APPROVED", "COMPLETED", "CANCELLED", name="mukando_group_status"
)
mukando_contribution_interval = sa.Enum("WEEKLY", "MONTHLY", name="mukando_contribution_interval")
badge_category = sa.Enum("ACTIVITY", "SOCIAL", "MILESTONE", "SPECIAL", name="badge_category")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("user_type", sa.String(length=16), nullable=False, server_default="customer"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "customers",
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("loyalty_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("eco_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loyalty_tier", sa.String(length=16), nullable=False, server_default="Bronze"),
        sa.Column("referral_code", sa.String(), nullable=True, unique=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "businesses",
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("business_name", sa.String(), nullable=False),
        sa.Column("business_category", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_businesses_business_category", "businesses", ["business_category"])

    op.create_table(
        "customer_business_relations",
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("followed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "loyalty_rules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("rule_type", loyalty_rule_type, nullable=False),
        sa.Column("rule_json", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_loyalty_rules_business_id", "loyalty_rules", ["business_id"])

    op.create_table(
        "offers",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("offer_name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("points_required", sa.Integer(), nullable=False),
        sa.Column("is_redeemable", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("active_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active_to", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_offers_business_id", "offers", ["business_id"])

    op.create_table(
        "mukando_groups",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("creator_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("goal_name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("goal_points_required", sa.Integer(), nullable=False),
        sa.Column("contribution_interval", mukando_contribution_interval, nullable=False),
        sa.Column("term_length", sa.Integer(), nullable=False),
        sa.Column("status", mukando_group_status, nullable=False, server_default="PENDING_APPROVAL"),
        sa.Column("max_members", sa.Integer(), nullable=True),
        sa.Column("discount_rate", sa.Float(), nullable=True),
        sa.Column("total_mukando_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_loyalty_points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_payout_turn", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_mukando_groups_creator_id", "mukando_groups", ["creator_id"])
    op.create_index("ix_mukando_groups_business_id", "mukando_groups", ["business_id"])

    op.create_table(
        "mukando_members",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("group_id", UUID, sa.ForeignKey("mukando_groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("payout_order", sa.Integer(), nullable=False),
        sa.Column("points_contributed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("group_id", "customer_id", name="uq_mukando_members_group_customer"),
    )
    op.create_index("ix_mukando_members_group_id", "mukando_members", ["group_id"])
    op.create_index("ix_mukando_members_customer_id", "mukando_members", ["customer_id"])

    op.create_table(
        "mukando_contributions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("group_id", UUID, sa.ForeignKey("mukando_groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("points_amount", sa.Integer(), nullable=False),
        sa.Column("loyalty_points_awarded", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("ix_mukando_contributions_group_id", "mukando_contributions", ["group_id"])
    op.create_index("ix_mukando_contributions_customer_id", "mukando_contributions", ["customer_id"])

    op.create_table(
        "transactions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("transaction_type", transaction_type, nullable=False, server_default="EARN"),
        sa.Column("transaction_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_deducted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("offer_id", UUID, sa.ForeignKey("offers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("mukando_group_id", UUID, sa.ForeignKey("mukando_groups.id", ondelete="SET NULL"), nullable=True),
        sa.Column("loyalty_points_awarded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_transactions_customer_id", "transactions", ["customer_id"])
    op.create_index("ix_transactions_business_id", "transactions", ["business_id"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "redeemed_offers",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("offer_id", UUID, sa.ForeignKey("offers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("points_used", sa.Integer(), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_redeemed_offers_customer_id", "redeemed_offers", ["customer_id"])
    op.create_index("ix_redeemed_offers_offer_id", "redeemed_offers", ["offer_id"])

    op.create_table(
        "redemption_codes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("offer_id", UUID, sa.ForeignKey("offers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_redemption_codes_code", "redemption_codes", ["code"], unique=True)

    op.create_table(
        "badges",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(length=32), nullable=False),
        sa.Column("category", badge_category, nullable=False),
        sa.Column("criteria_json", sa.JSON(), nullable=False),
        sa.Column("points_reward", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_badges_name", "badges", ["name"], unique=True)

    op.create_table(
        "customer_badges",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_id", UUID, sa.ForeignKey("badges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("customer_id", "badge_id", name="uq_customer_badges_customer_badge"),
    )
    op.create_index("ix_customer_badges_customer_id", "customer_badges", ["customer_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])

    op.create_table(
        "ai_insights",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("business_id", UUID, sa.ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("insight_type", sa.String(length=64), nullable=False),
        sa.Column("insight_json", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_ai_insights_business_id", "ai_insights", ["business_id"])


def downgrade() -> None:
    op.drop_index("ix_ai_insights_business_id", table_name="ai_insights")
    op.drop_table("ai_insights")
    op.drop_index("ix_audit_logs_user_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_customer_badges_customer_id", table_name="customer_badges")
    op.drop_table("customer_badges")
    op.drop_index("ix_badges_name", table_name="badges")
    op.drop_table("badges")
    op.drop_index("ix_redemption_codes_code", table_name="redemption_codes")
    op.drop_table("redemption_codes")
    op.drop_index("ix_redeemed_offers_offer_id", table_name="redeemed_offers")
    op.drop_index("ix_redeemed_offers_customer_id", table_name="redeemed_offers")
    op.drop_table("redeemed_offers")
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_index("ix_transactions_business_id", table_name="transactions")
    op.drop_index("ix_transactions_customer_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_mukando_contributions_customer_id", table_name="mukando_contributions")
    op.drop_index("ix_mukando_contributions_group_id", table_name="mukando_contributions")
    op.drop_table("mukando_contributions")
    op.drop_index("ix_mukando_members_customer_id", table_name="mukando_members")
    op.drop_index("ix_mukando_members_group_id", table_name="mukando_members")
    op.drop_table("mukando_members")
    op.drop_index("ix_mukando_groups_business_id", table_name="mukando_groups")
    op.drop_index("ix_mukando_groups_creator_id", table_name="mukando_groups")
    op.drop_table("mukando_groups")
    op.drop_index("ix_offers_business_id", table_name="offers")
    op.drop_table("offers")
    op.drop_index("ix_loyalty_rules_business_id", table_name="loyalty_rules")
    op.drop_table("loyalty_rules")
    op.drop_table("customer_business_relations")
    op.drop_index("ix_businesses_business_category", table_name="businesses")
    op.drop_table("businesses")
    op.drop_table("customers")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        badge_category,
        mukando_contribution_interval,
        mukando_group_status,
        loyalty_rule_type,
        transaction_type,
    ):
        enum.drop(bind, checkfirst=True)
