"""
Repositories own all SQL for their entity; services hold references to
them instead of querying models directly.
"""

from .attachment_repository import AttachmentRepository
from .booking_repository import BookingRepository
from .seat_repository import SeatRepository

__all__ = ["AttachmentRepository", "BookingRepository", "SeatRepository"]
