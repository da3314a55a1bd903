"""
Seat model: one row per physical seat in the auditorium.

Key design decisions:
- `label` (e.g. "A5") is the natural key; unique index, never changes
- `tier` is derived from the row when the inventory is initialized
- CHECK constraint ties `status` to `occupied_by_booking_id`: an occupied
  seat always names its booking, an available seat never does
"""

import enum

from sqlalchemy import CheckConstraint, Column, Enum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from auditorium.db.base import Base


class SeatStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class SeatTier(str, enum.Enum):
    PRIMARY = "primary"
    PREMIUM = "premium"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(16), nullable=False)
    row = Column(String(8), nullable=False)
    number = Column(Integer, nullable=False)
    tier = Column(
        Enum(SeatTier, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        Enum(SeatStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=SeatStatus.AVAILABLE,
    )
    occupied_by_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)

    occupied_by = relationship("Booking", foreign_keys=[occupied_by_booking_id], lazy="raise")

    __table_args__ = (
        UniqueConstraint("label", name="uq_seats_label"),
        CheckConstraint("number > 0", name="check_seat_number_positive"),
        CheckConstraint("status IN ('available', 'occupied')", name="check_seat_status"),
        CheckConstraint("tier IN ('primary', 'premium')", name="check_seat_tier"),
        CheckConstraint(
            "(status = 'occupied' AND occupied_by_booking_id IS NOT NULL)"
            " OR (status = 'available' AND occupied_by_booking_id IS NULL)",
            name="check_seat_occupant_matches_status",
        ),
        # Listing order: row, then number
        Index("ix_seats_row_number", "row", "number"),
    )

    @property
    def is_available(self) -> bool:
        return self.status == SeatStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"<Seat(label={self.label}, status={self.status}, booking={self.occupied_by_booking_id})>"
