"""Initial schema: users, ledger, check-ins, predictions, referrals, orders, feedback, settings.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_auto_created", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("order_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_order_value", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("consecutive_check_ins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_check_in_date", sa.Date(), nullable=True),
        sa.Column("skip_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("skip_date", sa.Date(), nullable=True),
        sa.Column("max_skips", sa.Integer(), nullable=True),
        sa.Column("referral_code", sa.String(64), nullable=True),
        sa.Column("referred_by_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("total_successful_referrals", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_referred_by_id", "users", ["referred_by_id"])
    op.create_unique_constraint("users_referral_code_key", "users", ["referral_code"])
    op.execute("ALTER TABLE users ADD CONSTRAINT ck_users_role CHECK (role IN ('admin', 'staff', 'user'))")

    op.create_table(
        "point_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("admin_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("partition", sa.String(16), server_default="ledger", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_point_transactions_user_id", "point_transactions", ["user_id"])
    op.create_index("ix_point_transactions_reason", "point_transactions", ["reason"])
    op.create_index("ix_point_transactions_created_at", "point_transactions", ["created_at"])
    op.execute(
        "ALTER TABLE point_transactions ADD CONSTRAINT ck_point_transactions_partition "
        "CHECK (partition IN ('ledger', 'order'))"
    )

    op.create_table(
        "questions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("answer", sa.String(256), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), server_default="10", nullable=False),
        sa.Column("is_priority", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("display_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_questions_status", "questions", ["status"])

    op.create_table(
        "user_answered_questions",
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "question_id", sa.BigInteger(), sa.ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    op.create_table(
        "check_ins",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", sa.BigInteger(), sa.ForeignKey("questions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("answer", sa.String(256), nullable=False),
        sa.Column("is_correct", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("points_earned", sa.Integer(), server_default="0", nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("user_id", "check_in_date", name="check_ins_user_day_key"),
    )

    op.create_table(
        "predictions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("points_cost", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reward_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("winner_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_predictions_status", "predictions", ["status"])
    op.create_index("ix_predictions_created_at", "predictions", ["created_at"])
    op.execute(
        "ALTER TABLE predictions ADD CONSTRAINT ck_predictions_status CHECK (status IN ('active', 'finished'))"
    )

    op.create_table(
        "user_prediction_attempts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "prediction_id", sa.BigInteger(), sa.ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("guess", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_user_prediction_attempts_prediction_id", "user_prediction_attempts", ["prediction_id"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "referring_user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "referred_user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("referred_user_id", name="referrals_referred_user_id_key"),
    )
    op.create_index("ix_referrals_referring_user_id", "referrals", ["referring_user_id"])

    op.create_table(
        "external_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("wordpress_order_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending", nullable=False),
        sa.Column("customer_email", sa.String(320), server_default="", nullable=False),
        sa.Column("customer_name", sa.String(256), server_default="", nullable=False),
        sa.Column("customer_phone", sa.String(64), server_default="", nullable=False),
        sa.Column("total", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("currency", sa.String(8), server_default="", nullable=False),
        sa.Column("payment_method", sa.String(64), server_default="", nullable=False),
        sa.Column("line_items", sa.JSON(), server_default="[]", nullable=False),
        sa.Column("date_created", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_modified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_completed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_processed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("wordpress_order_id", name="external_orders_wordpress_order_id_key"),
    )
    op.create_index("ix_external_orders_status", "external_orders", ["status"])
    op.create_index("ix_external_orders_customer_email", "external_orders", ["customer_email"])
    op.create_index("ix_external_orders_created_at", "external_orders", ["created_at"])

    op.create_table(
        "feedback",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("feedback_text", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("awarded_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    op.create_table(
        "system_settings",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("setting_key", sa.String(64), nullable=False),
        sa.Column("setting_value", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(256), server_default="", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("setting_key", name="system_settings_setting_key_key"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("system_settings")
    op.drop_table("feedback")
    op.drop_table("external_orders")
    op.drop_table("referrals")
    op.drop_table("user_prediction_attempts")
    op.drop_table("predictions")
    op.drop_table("check_ins")
    op.drop_table("user_answered_questions")
    op.drop_table("questions")
    op.drop_table("point_transactions")
    op.drop_table("users")
