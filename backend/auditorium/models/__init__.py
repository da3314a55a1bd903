from auditorium.models.seat import Seat, SeatStatus, SeatTier
from auditorium.models.booking import Booking, BookingSeat, BookingStatus
from auditorium.models.attachment import Attachment

__all__ = [
    "Seat", "SeatStatus", "SeatTier",
    "Booking", "BookingSeat", "BookingStatus",
    "Attachment",
]
