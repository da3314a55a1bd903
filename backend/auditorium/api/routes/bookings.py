"""
Booking endpoints: submission, admin review, proof-of-payment download.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.core.exceptions import ValidationError
from auditorium.db.session import get_db
from auditorium.models.booking import BookingStatus
from auditorium.schemas.booking import (
    AdminDecision,
    ApprovalResponse,
    BookingCreatedResponse,
    BookingResponse,
    RejectionResponse,
)
from auditorium.services.booking_service import (
    approve_booking,
    get_attachment,
    get_booking,
    list_bookings,
    reject_booking,
    submit_booking,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    amount: Optional[str] = Form(None),
    seats: Optional[str] = Form(None),
    screenshot: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a booking with its payment screenshot (multipart/form-data).

    `seats` is comma-separated, e.g. "A5,A6". The booking starts pending;
    seats are not checked until an admin approves it.
    """
    if screenshot is None:
        raise ValidationError("email, phone, amount, seats, and screenshot are required", field="screenshot")

    data = await screenshot.read()
    booking = await submit_booking(
        db,
        email=email,
        phone=phone,
        amount=amount,
        seats=seats,
        filename=screenshot.filename,
        content_type=screenshot.content_type,
        data=data,
    )
    return BookingCreatedResponse(
        message="Booking submitted and pending verification",
        booking_id=booking.id,
    )


@router.get("", response_model=list[BookingResponse])
async def list_bookings_endpoint(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """Bookings newest first. `?status=pending` gives the review queue."""
    return await list_bookings(db, booking_status)


@router.get("/screenshot/{attachment_id}")
async def get_screenshot_endpoint(attachment_id: str, db: AsyncSession = Depends(get_db)):
    """Serve a payment screenshot inline."""
    attachment = await get_attachment(db, attachment_id)
    return Response(
        content=attachment.data,
        media_type=attachment.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{attachment.filename}"'},
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await get_booking(db, booking_id)


@router.post("/{booking_id}/approve", response_model=ApprovalResponse)
async def approve_booking_endpoint(
    booking_id: int,
    decision: Optional[AdminDecision] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """
    Atomically mark the requested seats occupied and the booking approved.

    409 if any seat is already occupied; nothing changes in that case.
    """
    admin_notes = decision.admin_notes if decision else None
    result = await approve_booking(db, booking_id, admin_notes)
    return ApprovalResponse(
        message="Approved and seats marked as occupied",
        booking_id=result.booking_id,
        seats=result.approved_seat_labels,
    )


@router.post("/{booking_id}/reject", response_model=RejectionResponse)
async def reject_booking_endpoint(
    booking_id: int,
    decision: Optional[AdminDecision] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Mark a pending booking rejected. Seats are not touched."""
    admin_notes = decision.admin_notes if decision else None
    booking = await reject_booking(db, booking_id, admin_notes)
    return RejectionResponse(message="Booking rejected", booking_id=booking.id)
