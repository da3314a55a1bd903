"""Initial schema: attachments, bookings, seats, booking_seats.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Payment screenshots
    op.create_table(
        "attachments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("data", sa.LargeBinary(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("requested_seat_labels", sa.JSON(), nullable=False),
        sa.Column("attachment_id", sa.String(32), sa.ForeignKey("attachments.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="check_booking_amount_positive"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    # Admin review queue: WHERE status = 'pending' ORDER BY created_at DESC
    op.create_index("ix_bookings_status_created", "bookings", ["status", "created_at"])

    # Seats table
    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(16), nullable=False),
        sa.Column("row", sa.String(8), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("tier", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'available'")),
        sa.Column("occupied_by_booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.UniqueConstraint("label", name="uq_seats_label"),
        sa.CheckConstraint("number > 0", name="check_seat_number_positive"),
        sa.CheckConstraint("status IN ('available', 'occupied')", name="check_seat_status"),
        sa.CheckConstraint("tier IN ('primary', 'premium')", name="check_seat_tier"),
        # An occupied seat always names its booking; an available one never does.
        sa.CheckConstraint(
            "(status = 'occupied' AND occupied_by_booking_id IS NOT NULL)"
            " OR (status = 'available' AND occupied_by_booking_id IS NULL)",
            name="check_seat_occupant_matches_status",
        ),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    op.create_index("ix_seats_row_number", "seats", ["row", "number"])
    op.create_index("ix_seats_occupied_by_booking_id", "seats", ["occupied_by_booking_id"])

    # Seats resolved on approval, in requested order
    op.create_table(
        "booking_seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("seat_id", sa.Integer(), sa.ForeignKey("seats.id"), nullable=False),
        sa.Column("seat_label", sa.String(16), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.UniqueConstraint("booking_id", "seat_id", name="uq_booking_seat"),
        sa.UniqueConstraint("booking_id", "position", name="uq_booking_seat_position"),
    )
    op.create_index("ix_booking_seats_booking_id", "booking_seats", ["booking_id"])
    op.create_index("ix_booking_seats_seat_id", "booking_seats", ["seat_id"])


def downgrade() -> None:
    op.drop_table("booking_seats")
    op.drop_table("seats")
    op.drop_table("bookings")
    op.drop_table("attachments")
