"""initial drops schema

Revision ID: 3a7f2c91d0b4
Revises:
Create Date: 2025-01-17 14:30:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "3a7f2c91d0b4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    _ = op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    _ = op.create_table(
        "drops",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("claim_window_start", sa.DateTime(), nullable=False),
        sa.Column("claim_window_end", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_drops_stock_ge_0"),
        sa.CheckConstraint(
            "claim_window_end > claim_window_start",
            name="ck_drops_window_order",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_drops_claim_window_start", "drops", ["claim_window_start"], unique=False)
    op.create_index("ix_drops_claim_window_end", "drops", ["claim_window_end"], unique=False)

    _ = op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("drop_id", sa.String(length=36), nullable=False),
        sa.Column("priority_score", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["drop_id"], ["drops.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "drop_id", name="uq_waitlist_entries_user_drop"),
    )
    op.create_index("ix_waitlist_entries_user_id", "waitlist_entries", ["user_id"], unique=False)
    op.create_index(
        "ix_waitlist_entries_drop_rank",
        "waitlist_entries",
        ["drop_id", "priority_score", "joined_at"],
        unique=False,
    )

    _ = op.create_table(
        "claims",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("drop_id", sa.String(length=36), nullable=False),
        sa.Column("claim_code", sa.String(length=14), nullable=False),
        sa.Column("claimed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["drop_id"], ["drops.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "drop_id", name="uq_claims_user_drop"),
        sa.UniqueConstraint("claim_code", name="uq_claims_claim_code"),
    )
    op.create_index("ix_claims_user_id", "claims", ["user_id"], unique=False)
    op.create_index("ix_claims_drop_id", "claims", ["drop_id"], unique=False)

    _ = op.create_table(
        "action_rates",
        sa.Column("key", sa.String(length=512), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("reset_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index("ix_action_rates_reset_at", "action_rates", ["reset_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_action_rates_reset_at", table_name="action_rates")
    op.drop_table("action_rates")
    op.drop_index("ix_claims_drop_id", table_name="claims")
    op.drop_index("ix_claims_user_id", table_name="claims")
    op.drop_table("claims")
    op.drop_index("ix_waitlist_entries_drop_rank", table_name="waitlist_entries")
    op.drop_index("ix_waitlist_entries_user_id", table_name="waitlist_entries")
    op.drop_table("waitlist_entries")
    op.drop_index("ix_drops_claim_window_end", table_name="drops")
    op.drop_index("ix_drops_claim_window_start", table_name="drops")
    op.drop_table("drops")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
