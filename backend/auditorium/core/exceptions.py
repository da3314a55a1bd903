"""
Domain exceptions for the booking service.

Every failure the allocation engine or intake can report is one of these
kinds. The API layer renders them as {"error": {"code", "message", "details"}}
so clients can tell a seat conflict (re-select seats) from a storage failure
(safe to retry) without parsing messages.
"""

from typing import Any, Optional


class BookingSystemError(Exception):
    """Base exception for the booking service."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(BookingSystemError):
    """Referenced booking, seat or attachment does not exist."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": identifier},
        )


class InvalidStateError(BookingSystemError):
    """Operation not valid for the booking's current lifecycle state."""

    def __init__(self, booking_id: int, current_status: str, action: str):
        self.current_status = current_status
        super().__init__(
            message=f"Booking status is {current_status}, cannot {action}",
            code="INVALID_STATE",
            status_code=400,
            details={"booking_id": booking_id, "status": current_status},
        )


class UnresolvedSeatsError(BookingSystemError):
    """Requested labels that match no seat in the inventory."""

    def __init__(self, labels: list[str]):
        self.labels = list(labels)
        super().__init__(
            message=f"Seats not found: {', '.join(self.labels)}",
            code="UNRESOLVED_SEATS",
            status_code=400,
            details={"labels": self.labels},
        )


class SeatConflictError(BookingSystemError):
    """Requested seats exist but are held by another booking."""

    def __init__(self, labels: list[str]):
        self.labels = list(labels)
        super().__init__(
            message=f"Seats already occupied: {', '.join(self.labels)}",
            code="SEAT_CONFLICT",
            status_code=409,
            details={"labels": self.labels},
        )


class ValidationError(BookingSystemError):
    """Malformed intake input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details={"field": field} if field else {},
        )


class StorageFailureError(BookingSystemError):
    """
    The transaction could not be committed.

    Raised only after the transaction has been rolled back, so retrying the
    same call cannot double-occupy a seat.
    """

    def __init__(self, message: str = "Storage temporarily unavailable, please retry"):
        super().__init__(
            message=message,
            code="STORAGE_FAILURE",
            status_code=503,
        )
