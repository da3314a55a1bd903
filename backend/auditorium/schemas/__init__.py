from auditorium.schemas.seat import SeatResponse, InventoryInit, InventoryInitResponse, SeatReleaseResponse
from auditorium.schemas.booking import (
    BookingSubmission, BookingCreatedResponse, BookingResponse,
    AdminDecision, ApprovalResponse, RejectionResponse,
)

__all__ = [
    "SeatResponse", "InventoryInit", "InventoryInitResponse", "SeatReleaseResponse",
    "BookingSubmission", "BookingCreatedResponse", "BookingResponse",
    "AdminDecision", "ApprovalResponse", "RejectionResponse",
]
