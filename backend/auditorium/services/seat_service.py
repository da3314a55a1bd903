"""
Seat inventory service: initialization, listing and admin release.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.core.config import get_settings
from auditorium.core.exceptions import NotFoundError, StorageFailureError, ValidationError
from auditorium.core.logging import get_logger
from auditorium.core.metrics import seats_occupied
from auditorium.models.seat import Seat, SeatStatus, SeatTier
from auditorium.repositories import SeatRepository
from auditorium.schemas.seat import SeatResponse, invalid_row_names
from auditorium.services.cache_service import seat_cache

logger = get_logger(__name__)
settings = get_settings()


def tier_for_row(row: str) -> SeatTier:
    """Fixed row-to-tier mapping: rows named in PREMIUM_ROWS are premium, the rest primary."""
    premium = {name.strip().upper() for name in settings.PREMIUM_ROWS}
    return SeatTier.PREMIUM if row.upper() in premium else SeatTier.PRIMARY


def build_seat_rows(rows: list[str], per_row: int) -> list[dict]:
    seat_rows = [
        {
            "label": f"{row}{number}",
            "row": row,
            "number": number,
            "tier": tier_for_row(row),
        }
        for row in rows
        for number in range(1, per_row + 1)
    ]
    labels = [seat["label"] for seat in seat_rows]
    if len(set(labels)) != len(labels):
        raise ValidationError("Seat labels collide for the given rows", field="rows")
    return seat_rows


async def initialize_inventory(
    db: AsyncSession,
    rows: Optional[list[str]] = None,
    per_row: Optional[int] = None,
) -> int:
    """
    Create or refresh the seat inventory. Safe to run repeatedly.

    Existing seats keep their status and occupant; only row, number and tier
    are rewritten. Returns the total number of seats after the upsert.
    """
    rows = list(dict.fromkeys(r.strip().upper() for r in (rows or settings.DEFAULT_SEAT_ROWS)))
    per_row = settings.DEFAULT_SEATS_PER_ROW if per_row is None else per_row

    bad = invalid_row_names(rows)
    if bad:
        raise ValidationError(
            f"Invalid row names {bad}: use up to 8 letters/digits ending in a letter",
            field="rows",
        )
    if per_row <= 0:
        raise ValidationError("per_row must be a positive integer", field="per_row")

    seats = SeatRepository(db)
    try:
        await seats.upsert_structure(build_seat_rows(rows, per_row))
        await db.commit()
        total = await seats.count()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("inventory_init_failed", rows=len(rows), per_row=per_row, error=str(e))
        raise StorageFailureError("Failed to initialize seats, please retry") from e

    logger.info("inventory_initialized", rows=len(rows), per_row=per_row, total=total)
    await seat_cache.invalidate()
    return total


async def list_seats(db: AsyncSession) -> list[dict]:
    """Seat map ordered by row, then number. Served from cache when warm."""
    key = await seat_cache.current_key()
    cached = await seat_cache.load(key)
    if cached is not None:
        return cached

    result = await SeatRepository(db).list_ordered()
    data = [SeatResponse.model_validate(seat).model_dump(mode="json") for seat in result]
    seats_occupied.set(sum(1 for seat in result if seat.status == SeatStatus.OCCUPIED))

    await seat_cache.store(key, data)
    return data


async def get_seat(db: AsyncSession, label: str) -> Seat:
    seat = await SeatRepository(db).get_by_label(label.strip().upper())
    if not seat:
        raise NotFoundError("Seat", label.upper())
    return seat


async def release_seat(db: AsyncSession, label: str) -> Seat:
    """
    Return a seat to the available pool.

    The booking that held it keeps its approved status and resolved seats;
    release only frees the seat for future approvals.
    """
    label = label.strip().upper()
    seats = SeatRepository(db)

    try:
        released = await seats.release(label)
        if released:
            await db.commit()
            seat = (await seats.find_by_labels([label]))[label]
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("seat_release_failed", label=label, error=str(e))
        raise StorageFailureError() from e

    if not released:
        raise NotFoundError("Seat", label)
    logger.info("seat_released", label=label)
    await seat_cache.invalidate()
    return seat
