"""
Booking model representing a reservation request awaiting admin review.

Key design decisions:
- `requested_seat_labels` keeps the labels exactly as submitted (normalized);
  they are only checked against the inventory when an admin approves
- Resolved seats live in `booking_seats`, written once on approval, with
  `position` preserving the requested order
- Status only moves pending -> approved or pending -> rejected; the
  allocation engine guards every transition with WHERE status = 'pending'
"""

import enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from auditorium.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not BookingStatus.PENDING


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    requested_seat_labels = Column(JSON, nullable=False)
    attachment_id = Column(String(32), ForeignKey("attachments.id"), nullable=False)
    status = Column(
        Enum(
            BookingStatus,
            native_enum=False,
            length=20,
            values_callable=lambda cls: [member.value for member in cls],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    admin_notes = Column(Text, nullable=True)

    attachment = relationship("Attachment", lazy="raise")
    resolved_seats = relationship(
        "BookingSeat",
        back_populates="booking",
        order_by="BookingSeat.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_booking_amount_positive"),
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="check_booking_status"),
        # Admin review queue: filter by status, newest first
        Index("ix_bookings_status_created", "status", "created_at"),
    )

    @property
    def resolved_seat_labels(self) -> list[str]:
        return [link.seat_label for link in self.resolved_seats]

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, seats={self.requested_seat_labels}, status={self.status})>"


class BookingSeat(Base):
    """Seat resolved for an approved booking."""

    __tablename__ = "booking_seats"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    seat_label = Column(String(16), nullable=False)
    position = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="resolved_seats")

    __table_args__ = (
        UniqueConstraint("booking_id", "seat_id", name="uq_booking_seat"),
        UniqueConstraint("booking_id", "position", name="uq_booking_seat_position"),
    )
