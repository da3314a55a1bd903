"""
Pydantic schemas for seat-related request/response validation.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from auditorium.models.seat import SeatStatus, SeatTier


class SeatResponse(BaseModel):
    label: str
    row: str
    number: int
    tier: SeatTier
    status: SeatStatus
    occupied_by_booking_id: Optional[int] = None

    model_config = {"from_attributes": True}


# Up to 8 letters/digits ending in a letter. A trailing digit makes labels
# ambiguous: row "A1" seat 1 and row "A" seat 11 would both be "A11".
ROW_NAME_PATTERN = re.compile(r"[A-Z0-9]{0,7}[A-Z]")


def invalid_row_names(rows: list[str]) -> list[str]:
    return [row for row in rows if not ROW_NAME_PATTERN.fullmatch(row)]


class InventoryInit(BaseModel):
    """Labeling scheme: seats are labeled row + number, 1..per_row."""

    rows: Optional[list[str]] = Field(default=None, max_length=52)
    per_row: Optional[int] = Field(default=None, gt=0, le=200)

    @field_validator("rows")
    @classmethod
    def normalize_rows(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if not v:
            return None
        rows = [str(r).strip().upper() for r in v]
        bad = invalid_row_names(rows)
        if bad:
            raise ValueError(f"invalid row names {bad}: use up to 8 letters/digits ending in a letter")
        return list(dict.fromkeys(rows))


class InventoryInitResponse(BaseModel):
    message: str
    total: int


class SeatReleaseResponse(BaseModel):
    message: str
    seat: SeatResponse
