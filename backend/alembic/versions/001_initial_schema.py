"""Initial schema: players, courts, bookings, waitlist entries.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_players_id", "players", ["id"])
    op.create_index("ix_players_email", "players", ["email"])

    # The ledger row-locks courts (SELECT ... FOR UPDATE) to serialize
    # check-then-write across API processes.
    op.create_table(
        "courts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("surface", sa.String(50), nullable=True),
        sa.Column("indoor", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("lights", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_courts_id", "courts", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id"), nullable=False),
        sa.Column("player_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'booked'")),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'unpaid'")),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="check_booking_interval"),
        sa.CheckConstraint("price_cents >= 0", name="check_booking_price_non_negative"),
        sa.CheckConstraint("status IN ('booked', 'cancelled', 'completed')", name="check_booking_status"),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'refunded', 'waived')",
            name="check_booking_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_court_id", "bookings", ["court_id"])
    op.create_index("ix_bookings_player_id", "bookings", ["player_id"])
    # Conflict scan: WHERE court_id = ? AND status IN (...) AND start_time < ? AND end_time > ?
    op.create_index("ix_bookings_court_status_start", "bookings", ["court_id", "status", "start_time"])

    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id"), nullable=False),
        sa.Column("player_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'waiting'")),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="check_waitlist_interval"),
        sa.CheckConstraint(
            "status IN ('waiting', 'notified', 'booked', 'cancelled', 'expired')",
            name="check_waitlist_status",
        ),
    )
    op.create_index("ix_waitlist_entries_id", "waitlist_entries", ["id"])
    op.create_index("ix_waitlist_entries_court_id", "waitlist_entries", ["court_id"])
    op.create_index("ix_waitlist_entries_player_id", "waitlist_entries", ["player_id"])
    # Candidate query: WHERE court_id = ? AND status = 'waiting' ORDER BY priority DESC, created_at
    op.create_index("ix_waitlist_court_status_priority", "waitlist_entries", ["court_id", "status", "priority"])


def downgrade() -> None:
    op.drop_table("waitlist_entries")
    op.drop_table("bookings")
    op.drop_table("courts")
    op.drop_table("players")
