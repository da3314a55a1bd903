"""
Seat endpoints: seat map, inventory initialization, admin release.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.db.session import get_db
from auditorium.schemas.seat import InventoryInit, InventoryInitResponse, SeatReleaseResponse, SeatResponse
from auditorium.services.seat_service import get_seat, initialize_inventory, list_seats, release_seat

router = APIRouter(prefix="/seats", tags=["Seats"])


@router.get("", response_model=list[SeatResponse])
async def list_seats_endpoint(db: AsyncSession = Depends(get_db)):
    """All seats ordered by row, then number. Cached in Redis between changes."""
    return await list_seats(db)


@router.post("/init", response_model=InventoryInitResponse)
async def init_seats_endpoint(
    scheme: Optional[InventoryInit] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """
    Create or upsert the seat inventory.

    Defaults to rows A-T with 20 seats each. Running it again is safe:
    existing seats keep their status, only row/number/tier are rewritten.
    """
    scheme = scheme or InventoryInit()
    total = await initialize_inventory(db, scheme.rows, scheme.per_row)
    return InventoryInitResponse(message="Seats initialized/upserted", total=total)


@router.get("/{label}", response_model=SeatResponse)
async def get_seat_endpoint(label: str, db: AsyncSession = Depends(get_db)):
    return await get_seat(db, label)


@router.patch("/{label}/release", response_model=SeatReleaseResponse)
async def release_seat_endpoint(label: str, db: AsyncSession = Depends(get_db)):
    """Mark a seat available again and drop its occupant link."""
    seat = await release_seat(db, label)
    return SeatReleaseResponse(
        message=f"{seat.label} released to available",
        seat=SeatResponse.model_validate(seat),
    )
