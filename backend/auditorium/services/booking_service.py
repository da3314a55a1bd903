"""
Booking service: submission intake and the seat-allocation engine.

CONCURRENCY STRATEGY: Row Locks + Compare-and-Set with Retry
============================================================

Problem:
  Two admins approve two bookings that both asked for seat A5.
  Both read A5 as available, both mark it occupied, both succeed.
  Result: one seat, two approved bookings.

Solution:
  Approval is a single transaction:

  1. SELECT the booking FOR UPDATE -> must exist and be pending
  2. SELECT the requested seats FOR UPDATE (label order) -> all must
     exist and be available
  3. UPDATE bookings SET status = 'approved'
     WHERE id = :id AND status = 'pending'
  4. UPDATE seats SET status = 'occupied', occupied_by_booking_id = :id
     WHERE label IN (:labels) AND status = 'available'
  5. If either UPDATE matched fewer rows than step 1/2 promised, another
     transaction committed in between -> ROLLBACK and re-run from step 1
  6. INSERT booking_seats, COMMIT

  On PostgreSQL the row locks already serialize competing approvals and
  step 5 never fires. On SQLite FOR UPDATE compiles to nothing; the
  database-wide write lock serializes steps 3-6 and the compare-and-set
  catches reads that went stale while waiting for it.

  A re-run reads committed state, so the loser of a race reports the real
  reason (SeatConflictError / InvalidStateError), not a generic retry error.

Failure handling:
  Every failure rolls the transaction back before it propagates. Driver
  and database errors surface as StorageFailureError; nothing was
  committed, so the caller may retry the same approval.
"""

import time
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.core.config import get_settings
from auditorium.core.exceptions import (
    BookingSystemError,
    InvalidStateError,
    NotFoundError,
    SeatConflictError,
    StorageFailureError,
    UnresolvedSeatsError,
    ValidationError,
)
from auditorium.core.logging import get_logger
from auditorium.core.metrics import (
    approval_latency,
    approval_retries,
    attachment_bytes,
    bookings_submitted,
    record_approval,
    record_rejection,
)
from auditorium.models.attachment import Attachment
from auditorium.models.booking import Booking, BookingStatus
from auditorium.repositories import AttachmentRepository, BookingRepository, SeatRepository
from auditorium.schemas.booking import BookingSubmission
from auditorium.services.cache_service import seat_cache

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class ApprovalResult:
    booking_id: int
    approved_seat_labels: list[str]


class _StaleRead(Exception):
    """A compare-and-set UPDATE matched fewer rows than the locked read promised."""


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------

def parse_submission(**fields) -> BookingSubmission:
    try:
        return BookingSubmission(**fields)
    except SchemaValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ValidationError(f"Invalid {field}: {error['msg']}", field=field) from e


def validate_attachment(content_type: Optional[str], data: bytes) -> str:
    """Check an uploaded proof-of-payment. Returns the normalized content type."""
    content_type = (content_type or "").lower()
    if content_type not in settings.ALLOWED_ATTACHMENT_TYPES:
        raise ValidationError(
            "Only image files allowed (png, jpg, jpeg, webp, gif)",
            field="screenshot",
        )
    if not data:
        raise ValidationError("Screenshot is empty", field="screenshot")
    if len(data) > settings.MAX_ATTACHMENT_BYTES:
        raise ValidationError(
            f"Screenshot exceeds {settings.MAX_ATTACHMENT_BYTES} bytes",
            field="screenshot",
        )
    return content_type


async def create_pending_booking(
    db: AsyncSession,
    submission: BookingSubmission,
    attachment_id: str,
) -> Booking:
    """
    Record a booking request in the pending state.

    Requested labels are stored as given; whether they exist or are free is
    only decided at approval time.
    """
    booking = Booking(
        email=submission.email,
        phone=submission.phone,
        amount=submission.amount,
        requested_seat_labels=submission.seats,
        attachment_id=attachment_id,
        status=BookingStatus.PENDING,
    )
    return await BookingRepository(db).add(booking)


async def submit_booking(
    db: AsyncSession,
    *,
    email: Optional[str],
    phone: Optional[str],
    amount,
    seats,
    filename: Optional[str],
    content_type: Optional[str],
    data: bytes,
) -> Booking:
    """Validate a submission, store its screenshot and create the pending booking."""
    submission = parse_submission(email=email, phone=phone, amount=amount, seats=seats)
    content_type = validate_attachment(content_type, data)

    try:
        attachment = await AttachmentRepository(db).save(filename or "screenshot", content_type, data)
        booking = await create_pending_booking(db, submission, attachment.id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("booking_submission_failed", error=str(e))
        raise StorageFailureError("Failed to save booking, please retry") from e

    bookings_submitted.inc()
    attachment_bytes.observe(len(data))
    logger.info(
        "booking_submitted",
        booking_id=booking.id,
        seats=booking.requested_seat_labels,
        attachment_id=attachment.id,
    )
    return booking


# ---------------------------------------------------------------------------
# Allocation engine
# ---------------------------------------------------------------------------

async def _approve_once(
    db: AsyncSession,
    booking_id: int,
    admin_notes: Optional[str],
) -> ApprovalResult:
    bookings = BookingRepository(db)
    seats = SeatRepository(db)

    booking = await bookings.get(booking_id, for_update=True)
    if booking is None:
        raise NotFoundError("Booking", booking_id)
    if booking.status != BookingStatus.PENDING:
        raise InvalidStateError(booking.id, BookingStatus(booking.status).value, "approve")

    labels = list(dict.fromkeys(booking.requested_seat_labels))
    found = await seats.find_by_labels(labels, for_update=True)

    missing = [label for label in labels if label not in found]
    if missing:
        raise UnresolvedSeatsError(missing)

    taken = [label for label in labels if not found[label].is_available]
    if taken:
        raise SeatConflictError(taken)

    if not await bookings.transition(booking.id, BookingStatus.APPROVED, admin_notes):
        raise _StaleRead()
    if await seats.occupy(labels, booking.id) != len(labels):
        raise _StaleRead()

    await bookings.attach_seats(booking.id, [found[label] for label in labels])
    return ApprovalResult(booking_id=booking.id, approved_seat_labels=labels)


async def _approve_with_retry(
    db: AsyncSession,
    booking_id: int,
    admin_notes: Optional[str],
) -> ApprovalResult:
    for attempt in range(1, settings.APPROVAL_MAX_RETRIES + 1):
        try:
            result = await _approve_once(db, booking_id, admin_notes)
            await db.commit()
        except _StaleRead:
            await db.rollback()
            approval_retries.inc()
            logger.info(
                "approval_retry",
                booking_id=booking_id,
                attempt=attempt,
                reason="concurrent_commit",
            )
            continue
        except BookingSystemError as e:
            await db.rollback()
            logger.warning("approval_refused", booking_id=booking_id, code=e.code, details=e.details)
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("approval_storage_failure", booking_id=booking_id, error=str(e))
            raise StorageFailureError() from e

        # Seats and booking were written with bulk UPDATEs
        db.expire_all()
        logger.info(
            "booking_approved",
            booking_id=booking_id,
            seats=result.approved_seat_labels,
            attempt=attempt,
        )
        return result

    logger.error(
        "approval_retries_exhausted",
        booking_id=booking_id,
        attempts=settings.APPROVAL_MAX_RETRIES,
    )
    raise StorageFailureError("Approval kept colliding with concurrent updates, please retry")


async def approve_booking(
    db: AsyncSession,
    booking_id: int,
    admin_notes: Optional[str] = None,
) -> ApprovalResult:
    """
    Approve a pending booking, occupying exactly the seats it requested.

    All-or-nothing: on any error no seat and not the booking has changed.
    Raises NotFoundError, InvalidStateError, UnresolvedSeatsError,
    SeatConflictError or StorageFailureError, checked in that order.
    """
    start = time.perf_counter()
    try:
        result = await _approve_with_retry(db, booking_id, admin_notes)
    except BookingSystemError as e:
        record_approval(e.code.lower())
        raise
    finally:
        approval_latency.observe(time.perf_counter() - start)

    record_approval("approved")
    await seat_cache.invalidate()
    return result


async def reject_booking(
    db: AsyncSession,
    booking_id: int,
    admin_notes: Optional[str] = None,
) -> Booking:
    """
    Reject a pending booking. Seats are never touched.

    The status flip is a single compare-and-set UPDATE, so a concurrent
    approve and reject cannot both win; the loser gets InvalidStateError.
    """
    bookings = BookingRepository(db)
    try:
        rejected = await bookings.transition(booking_id, BookingStatus.REJECTED, admin_notes)
        if rejected:
            await db.commit()
        current = await bookings.get(booking_id)
    except SQLAlchemyError as e:
        await db.rollback()
        record_rejection("storage_failure")
        logger.error("rejection_storage_failure", booking_id=booking_id, error=str(e))
        raise StorageFailureError() from e

    if current is None:
        record_rejection("not_found")
        raise NotFoundError("Booking", booking_id)
    if not rejected:
        record_rejection("invalid_state")
        raise InvalidStateError(current.id, BookingStatus(current.status).value, "reject")

    record_rejection("rejected")
    logger.info("booking_rejected", booking_id=booking_id)
    return current


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    booking = await BookingRepository(db).get(booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


async def list_bookings(db: AsyncSession, status: Optional[BookingStatus] = None) -> list[Booking]:
    """Bookings newest first; filter by status for the admin review queue."""
    return await BookingRepository(db).list_recent(status)


async def get_attachment(db: AsyncSession, attachment_id: str) -> Attachment:
    attachment = await AttachmentRepository(db).get(attachment_id)
    if not attachment:
        raise NotFoundError("Attachment", attachment_id)
    return attachment
