"""
Race tests: approvals and rejections running concurrently on separate
sessions (separate database connections).

The invariant under test: a seat is occupied by at most one booking,
whatever order the competing transactions commit in.
"""

import asyncio

import pytest

from auditorium.core.exceptions import InvalidStateError, SeatConflictError
from auditorium.models.booking import Booking, BookingStatus
from auditorium.models.seat import SeatStatus
from auditorium.repositories import SeatRepository
from auditorium.services.booking_service import (
    ApprovalResult,
    approve_booking,
    get_booking,
    reject_booking,
)


async def _approve(session_factory, booking_id: int):
    async with session_factory() as db:
        return await approve_booking(db, booking_id)


async def _reject(session_factory, booking_id: int):
    async with session_factory() as db:
        return await reject_booking(db, booking_id)


async def _load_state(session_factory, booking_ids):
    async with session_factory() as db:
        seats = await SeatRepository(db).list_ordered()
        bookings = [await get_booking(db, booking_id) for booking_id in booking_ids]
    return seats, bookings


@pytest.mark.asyncio
async def test_overlapping_approvals_one_wins(session_factory, seeded, make_booking):
    """Two bookings share A3: exactly one is approved, the other conflicts on A3."""
    first = await make_booking(["A1", "A3"])
    second = await make_booking(["A3", "A5"])

    results = await asyncio.gather(
        _approve(session_factory, first),
        _approve(session_factory, second),
        return_exceptions=True,
    )

    approved = [r for r in results if isinstance(r, ApprovalResult)]
    conflicts = [r for r in results if isinstance(r, SeatConflictError)]
    assert len(approved) == 1
    assert len(conflicts) == 1
    assert conflicts[0].labels == ["A3"]

    winner = approved[0].booking_id
    loser = second if winner == first else first
    seats, bookings = await _load_state(session_factory, [winner, loser])
    occupied = {s.label: s.occupied_by_booking_id for s in seats if s.status == SeatStatus.OCCUPIED}

    assert occupied == {label: winner for label in approved[0].approved_seat_labels}
    assert bookings[0].status == BookingStatus.APPROVED
    assert bookings[1].status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_disjoint_approvals_both_succeed(session_factory, seeded, make_booking):
    first = await make_booking(["A1", "A2"])
    second = await make_booking(["B1", "B2"])

    results = await asyncio.gather(
        _approve(session_factory, first),
        _approve(session_factory, second),
    )

    assert sorted(r.booking_id for r in results) == sorted([first, second])
    seats, _ = await _load_state(session_factory, [])
    occupied = {s.label: s.occupied_by_booking_id for s in seats if s.status == SeatStatus.OCCUPIED}
    assert occupied == {"A1": first, "A2": first, "B1": second, "B2": second}


@pytest.mark.asyncio
async def test_same_booking_approved_twice_concurrently(session_factory, seeded, make_booking):
    booking_id = await make_booking(["A1", "A2"])

    results = await asyncio.gather(
        _approve(session_factory, booking_id),
        _approve(session_factory, booking_id),
        return_exceptions=True,
    )

    approved = [r for r in results if isinstance(r, ApprovalResult)]
    refused = [r for r in results if isinstance(r, InvalidStateError)]
    assert len(approved) == 1
    assert len(refused) == 1
    assert refused[0].current_status == "approved"

    _, bookings = await _load_state(session_factory, [booking_id])
    assert len(bookings[0].resolved_seats) == 2


@pytest.mark.asyncio
async def test_approve_and_reject_race(session_factory, seeded, make_booking):
    """Whichever decision lands first sticks; the other sees the terminal state."""
    booking_id = await make_booking(["A1"])

    approve_result, reject_result = await asyncio.gather(
        _approve(session_factory, booking_id),
        _reject(session_factory, booking_id),
        return_exceptions=True,
    )

    seats, bookings = await _load_state(session_factory, [booking_id])
    seat_a1 = next(s for s in seats if s.label == "A1")

    if isinstance(approve_result, ApprovalResult):
        assert isinstance(reject_result, InvalidStateError)
        assert reject_result.current_status == "approved"
        assert bookings[0].status == BookingStatus.APPROVED
        assert seat_a1.occupied_by_booking_id == booking_id
    else:
        assert isinstance(approve_result, InvalidStateError)
        assert approve_result.current_status == "rejected"
        assert isinstance(reject_result, Booking)
        assert bookings[0].status == BookingStatus.REJECTED
        assert seat_a1.status == SeatStatus.AVAILABLE


@pytest.mark.asyncio
async def test_contended_approvals_never_double_allocate(session_factory, seeded, make_booking):
    """A ring of bookings where each overlaps its neighbours."""
    requests = [
        ["A1", "A2"],
        ["A2", "A3"],
        ["A3", "A4"],
        ["A4", "A5"],
        ["A5", "B1"],
        ["B1", "A1"],
    ]
    booking_ids = [await make_booking(labels) for labels in requests]

    results = await asyncio.gather(
        *(_approve(session_factory, booking_id) for booking_id in booking_ids),
        return_exceptions=True,
    )

    for result in results:
        assert isinstance(result, (ApprovalResult, SeatConflictError)), result
    assert any(isinstance(r, ApprovalResult) for r in results)

    seats, bookings = await _load_state(session_factory, booking_ids)
    occupied = {s.label: s.occupied_by_booking_id for s in seats if s.status == SeatStatus.OCCUPIED}

    claimed: set[str] = set()
    for booking in bookings:
        if booking.status == BookingStatus.APPROVED:
            labels = set(booking.resolved_seat_labels)
            assert not labels & claimed
            claimed |= labels
            assert all(occupied[label] == booking.id for label in labels)
        else:
            assert booking.status == BookingStatus.PENDING
            assert booking.resolved_seats == []

    assert set(occupied) == claimed
