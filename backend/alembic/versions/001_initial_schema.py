"""Initial schema: rooms, bookings, booking_rooms, gallery_photos.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROOM_COUNT = 5


def upgrade() -> None:
    # Rooms table: one row per physical room, version used for optimistic locking
    rooms = op.create_table(
        "rooms",
        sa.Column("number", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )
    op.bulk_insert(
        rooms,
        [{"number": n, "name": f"Room {n}", "version": 1} for n in range(1, ROOM_COUNT + 1)],
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("id_number", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("total_nights", sa.Integer(), nullable=False),
        sa.Column("total_mvr", sa.Integer(), nullable=False),
        sa.Column("total_usd", sa.String(20), nullable=False),
        sa.Column("id_photo", sa.Text(), nullable=True),
        sa.Column("payment_slip", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("check_out_date > check_in_date", name="check_booking_dates_ordered"),
        sa.CheckConstraint("total_nights > 0", name="check_booking_nights_positive"),
        sa.CheckConstraint("total_mvr > 0", name="check_booking_total_positive"),
        sa.CheckConstraint(
            "status IN ('Pending', 'Confirmed', 'Rejected', 'Cancelled')",
            name="check_booking_status",
        ),
    )
    # Admin list is ordered by booking_date DESC
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    # Overlap scans compare both ends of the stay window
    op.create_index("ix_bookings_stay", "bookings", ["check_in_date", "check_out_date"])

    # Room assignments per booking
    op.create_table(
        "booking_rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("room_number", sa.Integer(), sa.ForeignKey("rooms.number"), nullable=False),
        sa.Column("extra_bed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("booking_id", "room_number", name="uq_booking_room"),
    )
    op.create_index("ix_booking_rooms_room_number", "booking_rooms", ["room_number"])

    # Gallery photos
    op.create_table(
        "gallery_photos",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_gallery_photos_display_order", "gallery_photos", ["display_order"])


def downgrade() -> None:
    op.drop_table("gallery_photos")
    op.drop_table("booking_rooms")
    op.drop_table("bookings")
    op.drop_table("rooms")
