"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2025-01-24 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "contests",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contest_code", sa.String(length=50), nullable=True),
        sa.Column("min_number", sa.Integer(), nullable=False),
        sa.Column("max_number", sa.Integer(), nullable=False),
        sa.Column("numbers_per_participation", sa.Integer(), nullable=False),
        sa.Column("participation_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("first_place_pct", sa.Numeric(5, 2), nullable=True),
        sa.Column("second_place_pct", sa.Numeric(5, 2), nullable=True),
        sa.Column("lowest_place_pct", sa.Numeric(5, 2), nullable=True),
        sa.Column("admin_fee_pct", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft','active','finished','cancelled')",
            name=op.f("ck_contests_status_enum"),
        ),
        sa.CheckConstraint("min_number >= 1", name=op.f("ck_contests_min_number_positive")),
        sa.CheckConstraint(
            "max_number >= min_number", name=op.f("ck_contests_range_not_empty")
        ),
        sa.CheckConstraint(
            "numbers_per_participation >= 1",
            name=op.f("ck_contests_numbers_per_participation_positive"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_contests")),
        sa.UniqueConstraint("contest_code", name=op.f("uq_contests_contest_code")),
    )

    op.create_table(
        "participations",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("contest_id", ID, nullable=False),
        sa.Column("user_id", ID, nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("current_score", sa.Integer(), nullable=False),
        sa.Column("ticket_code", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending','active','cancelled')",
            name=op.f("ck_participations_status_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["contest_id"],
            ["contests.id"],
            name=op.f("fk_participations_contest_id_contests"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_participations_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_participations")),
        sa.UniqueConstraint("ticket_code", name=op.f("uq_participations_ticket_code")),
    )
    op.create_index(
        op.f("ix_participations_contest_id"), "participations", ["contest_id"]
    )
    op.create_index(op.f("ix_participations_user_id"), "participations", ["user_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("participation_id", ID, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=True),
        sa.Column("external_id", sa.String(length=100), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending','paid','cancelled','refunded')",
            name=op.f("ck_payments_status_enum"),
        ),
        sa.CheckConstraint("amount >= 0", name=op.f("ck_payments_amount_non_negative")),
        sa.ForeignKeyConstraint(
            ["participation_id"],
            ["participations.id"],
            name=op.f("fk_payments_participation_id_participations"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_payments")),
    )
    op.create_index(
        op.f("ix_payments_participation_id"), "payments", ["participation_id"]
    )

    op.create_table(
        "draws",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("contest_id", ID, nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("numbers_count", sa.Integer(), nullable=True),
        sa.Column("draw_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["contest_id"],
            ["contests.id"],
            name=op.f("fk_draws_contest_id_contests"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draws")),
    )
    op.create_index(op.f("ix_draws_contest_id"), "draws", ["contest_id"])
    op.create_index(op.f("ix_draws_draw_date"), "draws", ["draw_date"])

    op.create_table(
        "draw_payouts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("draw_id", ID, nullable=False),
        sa.Column("participation_id", ID, nullable=False),
        sa.Column("category", sa.String(length=10), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("amount_won", sa.Numeric(12, 2), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "category IN ('TOP','SECOND','LOWEST','NONE')",
            name=op.f("ck_draw_payouts_category_enum"),
        ),
        sa.CheckConstraint(
            "amount_won >= 0", name=op.f("ck_draw_payouts_amount_won_non_negative")
        ),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["draws.id"],
            name=op.f("fk_draw_payouts_draw_id_draws"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participation_id"],
            ["participations.id"],
            name=op.f("fk_draw_payouts_participation_id_participations"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_payouts")),
        sa.UniqueConstraint(
            "draw_id", "participation_id", name="draw_payouts_draw_participation_key"
        ),
    )
    op.create_index(op.f("ix_draw_payouts_draw_id"), "draw_payouts", ["draw_id"])
    op.create_index(
        op.f("ix_draw_payouts_participation_id"), "draw_payouts", ["participation_id"]
    )

    op.create_table(
        "rateio_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contest_id", ID, nullable=False),
        sa.Column("draw_id", ID, nullable=True),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("admin_fee_amount", sa.Numeric(16, 6), nullable=False),
        sa.Column("prize_pool_amount", sa.Numeric(16, 6), nullable=False),
        sa.Column("first_place_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("second_place_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("lowest_place_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("admin_fee_pct", sa.Numeric(5, 2), nullable=False),
        sa.Column("distribution", sa.JSON(), nullable=False),
        sa.Column("winners", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["contest_id"],
            ["contests.id"],
            name=op.f("fk_rateio_snapshots_contest_id_contests"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["draws.id"],
            name=op.f("fk_rateio_snapshots_draw_id_draws"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_rateio_snapshots")),
    )
    op.create_index(
        op.f("ix_rateio_snapshots_contest_id"), "rateio_snapshots", ["contest_id"]
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_rateio_snapshots_contest_id"), table_name="rateio_snapshots")
    op.drop_table("rateio_snapshots")
    op.drop_index(op.f("ix_draw_payouts_participation_id"), table_name="draw_payouts")
    op.drop_index(op.f("ix_draw_payouts_draw_id"), table_name="draw_payouts")
    op.drop_table("draw_payouts")
    op.drop_index(op.f("ix_draws_draw_date"), table_name="draws")
    op.drop_index(op.f("ix_draws_contest_id"), table_name="draws")
    op.drop_table("draws")
    op.drop_index(op.f("ix_payments_participation_id"), table_name="payments")
    op.drop_table("payments")
    op.drop_index(op.f("ix_participations_user_id"), table_name="participations")
    op.drop_index(op.f("ix_participations_contest_id"), table_name="participations")
    op.drop_table("participations")
    op.drop_table("contests")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
