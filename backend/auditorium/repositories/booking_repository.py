"""
Booking record store.
"""

from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.models.booking import Booking, BookingSeat, BookingStatus
from auditorium.models.seat import Seat


class BookingRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        await self.db.flush()
        await self.db.refresh(booking)
        return booking

    async def get(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        # A row read under lock must replace whatever the identity map holds
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def list_recent(self, status: Optional[BookingStatus] = None) -> list[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def transition(
        self,
        booking_id: int,
        target: BookingStatus,
        admin_notes: Optional[str] = None,
    ) -> bool:
        """
        Move a pending booking to `target`.

        Returns False when the booking is no longer pending, i.e. another
        approve/reject committed first.
        """
        values = {"status": target}
        if admin_notes:
            values["admin_notes"] = admin_notes

        result = await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def attach_seats(self, booking_id: int, seats: Sequence[Seat]) -> None:
        self.db.add_all(
            BookingSeat(
                booking_id=booking_id,
                seat_id=seat.id,
                seat_label=seat.label,
                position=position,
            )
            for position, seat in enumerate(seats)
        )
        await self.db.flush()
