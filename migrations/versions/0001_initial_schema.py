"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


activity = sa.Enum("slime", "tufting", name="activity")
booking_status = sa.Enum("active", "completed", "cancelled", name="booking_status")
payment_status = sa.Enum("pending", "completed", "failed", "refunded", name="payment_status")
booking_action = sa.Enum("created", "payment_updated", "verified", "cancelled", name="booking_action")


def _base_columns():
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "branches",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("allow_slime", sa.Boolean(), nullable=False),
        sa.Column("allow_tufting", sa.Boolean(), nullable=False),
        sa.Column("allow_monday", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_branches_id", "branches", ["id"])

    op.create_table(
        "sessions",
        *_base_columns(),
        sa.Column("branch_id", sa.Uuid(), sa.ForeignKey("branches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("activity", activity, nullable=False),
        sa.Column("label", sa.String(50), nullable=True),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("booked_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("age_group", sa.String(50), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("total_seats > 0", name="ck_sessions_total_seats_positive"),
        sa.CheckConstraint("booked_seats >= 0", name="ck_sessions_booked_seats_non_negative"),
        sa.CheckConstraint("booked_seats <= total_seats", name="ck_sessions_booked_within_total"),
        sa.CheckConstraint(
            "available_seats = total_seats - booked_seats",
            name="ck_sessions_available_consistency"
        ),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="ck_sessions_price_non_negative"),
    )
    op.create_index("ix_sessions_id", "sessions", ["id"])
    op.create_index("ix_sessions_branch_id", "sessions", ["branch_id"])
    op.create_index("ix_sessions_branch_date_activity", "sessions", ["branch_id", "date", "activity"])
    op.create_index("ix_sessions_branch_date_time", "sessions", ["branch_id", "date", "time"])

    op.create_table(
        "bookings",
        *_base_columns(),
        sa.Column("qr_token", sa.String(64), nullable=False),
        sa.Column("session_id", sa.Uuid(), sa.ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("branch_id", sa.Uuid(), nullable=False),
        sa.Column("activity", activity, nullable=True),
        sa.Column("date", sa.String(10), nullable=True),
        sa.Column("time", sa.String(5), nullable=True),
        sa.Column("customer_id", sa.String(255), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("package_type", sa.String(50), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.String(255), nullable=True),
        sa.CheckConstraint("seats > 0", name="ck_bookings_seats_positive"),
        sa.CheckConstraint("total_amount >= 0", name="ck_bookings_total_amount_non_negative"),
        sa.CheckConstraint(
            "NOT is_verified OR (verified_at IS NOT NULL AND verified_by IS NOT NULL)",
            name="ck_bookings_verification_complete"
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_qr_token", "bookings", ["qr_token"], unique=True)
    op.create_index("ix_bookings_session_id", "bookings", ["session_id"])
    op.create_index("ix_bookings_branch_id", "bookings", ["branch_id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_payment_status", "bookings", ["payment_status"])
    op.create_index("ix_bookings_status", "bookings", ["status"])

    op.create_table(
        "booking_history",
        *_base_columns(),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", booking_action, nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=True),
    )
    op.create_index("ix_booking_history_id", "booking_history", ["id"])
    op.create_index("ix_booking_history_booking_id", "booking_history", ["booking_id"])
    op.create_index("ix_booking_history_action", "booking_history", ["action"])


def downgrade() -> None:
    op.drop_table("booking_history")
    op.drop_table("bookings")
    op.drop_table("sessions")
    op.drop_table("branches")

    bind = op.get_bind()
    for enum_type in (booking_action, booking_status, payment_status, activity):
        enum_type.drop(bind, checkfirst=True)
