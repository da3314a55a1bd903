"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from pydantic import BaseModel, EmailStr, Field, field_validator

from auditorium.models.booking import BookingStatus

# Indian mobile numbers with optional +91 prefix, or any 10-digit number
PHONE_PATTERN = r"^(\+?91)?[6-9]\d{9}$|^\d{10}$"


def normalize_seat_labels(raw: Union[str, list[str], None]) -> list[str]:
    """
    Turn user input like "a5, A6,,a5" into ["A5", "A6"].

    Trims, upper-cases, drops empties and repeats (first occurrence wins).
    """
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else [str(p) for p in raw]
    labels = [p.strip().upper() for p in parts]
    return list(dict.fromkeys(label for label in labels if label))


class BookingSubmission(BaseModel):
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    # Matches the Numeric(10, 2) column
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    seats: list[str] = Field(..., min_length=1, max_length=50)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone", mode="before")
    @classmethod
    def strip_phone(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("seats", mode="before")
    @classmethod
    def split_seats(cls, v):
        return normalize_seat_labels(v)


class BookingCreatedResponse(BaseModel):
    message: str
    booking_id: int


class BookingResponse(BaseModel):
    id: int
    email: str
    phone: str
    amount: Decimal
    requested_seat_labels: list[str]
    resolved_seat_labels: list[str]
    attachment_id: str
    status: BookingStatus
    admin_notes: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class AdminDecision(BaseModel):
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class ApprovalResponse(BaseModel):
    message: str
    booking_id: int
    seats: list[str]


class RejectionResponse(BaseModel):
    message: str
    booking_id: int
