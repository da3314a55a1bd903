"""
Tests for the allocation engine: approve/reject transitions, failure
ordering, and all-or-nothing behaviour when anything goes wrong.
"""

import pytest
from sqlalchemy.exc import OperationalError

from auditorium.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    SeatConflictError,
    StorageFailureError,
    UnresolvedSeatsError,
)
from auditorium.models.booking import BookingStatus
from auditorium.models.seat import SeatStatus
from auditorium.repositories import AttachmentRepository, BookingRepository, SeatRepository
from auditorium.services.booking_service import (
    approve_booking,
    create_pending_booking,
    get_booking,
    parse_submission,
    reject_booking,
)


async def occupied_seats(session_factory) -> dict[str, int]:
    """label -> occupying booking id, for every occupied seat."""
    async with session_factory() as db:
        seats = await SeatRepository(db).list_ordered()
    return {s.label: s.occupied_by_booking_id for s in seats if s.status == SeatStatus.OCCUPIED}


async def booking_status(session_factory, booking_id: int) -> BookingStatus:
    async with session_factory() as db:
        return (await get_booking(db, booking_id)).status


@pytest.mark.asyncio
async def test_approve_occupies_requested_seats(session_factory, seeded, make_booking):
    """Approval links every requested seat to the booking."""
    booking_id = await make_booking(["A1", "A2"])

    async with session_factory() as db:
        result = await approve_booking(db, booking_id)

    assert result.booking_id == booking_id
    assert result.approved_seat_labels == ["A1", "A2"]
    assert await occupied_seats(session_factory) == {"A1": booking_id, "A2": booking_id}

    async with session_factory() as db:
        booking = await get_booking(db, booking_id)
    assert booking.status == BookingStatus.APPROVED
    assert len(booking.resolved_seats) == 2
    assert booking.resolved_seat_labels == ["A1", "A2"]


@pytest.mark.asyncio
async def test_resolved_seats_follow_requested_order(session_factory, seeded, make_booking):
    booking_id = await make_booking(["B3", "A1", "B1"])

    async with session_factory() as db:
        await approve_booking(db, booking_id)
        booking = await get_booking(db, booking_id)

    assert booking.resolved_seat_labels == ["B3", "A1", "B1"]
    assert [link.position for link in booking.resolved_seats] == [0, 1, 2]


@pytest.mark.asyncio
async def test_approve_records_admin_notes(session_factory, seeded, make_booking):
    booking_id = await make_booking(["A1"])

    async with session_factory() as db:
        await approve_booking(db, booking_id, admin_notes="UPI ref 4411")
        booking = await get_booking(db, booking_id)

    assert booking.admin_notes == "UPI ref 4411"


@pytest.mark.asyncio
async def test_approve_missing_booking(session_factory, seeded):
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await approve_booking(db, 99999)


@pytest.mark.asyncio
async def test_approve_unknown_seat_changes_nothing(session_factory, seeded, make_booking):
    """A1 stays available when the same booking also asks for a seat that does not exist."""
    booking_id = await make_booking(["A1", "Z9"])

    async with session_factory() as db:
        with pytest.raises(UnresolvedSeatsError) as exc_info:
            await approve_booking(db, booking_id)

    assert exc_info.value.labels == ["Z9"]
    assert await occupied_seats(session_factory) == {}
    assert await booking_status(session_factory, booking_id) == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_unresolved_seats_reported_before_conflicts(session_factory, seeded, make_booking):
    first = await make_booking(["A1"])
    second = await make_booking(["A1", "Z9"])

    async with session_factory() as db:
        await approve_booking(db, first)

    async with session_factory() as db:
        with pytest.raises(UnresolvedSeatsError):
            await approve_booking(db, second)


@pytest.mark.asyncio
async def test_approve_occupied_seat_conflicts(session_factory, seeded, make_booking):
    """Conflict names only the taken seat; the free one is not grabbed."""
    first = await make_booking(["A1", "A2"])
    second = await make_booking(["A2", "A3"])

    async with session_factory() as db:
        await approve_booking(db, first)

    before = await occupied_seats(session_factory)
    async with session_factory() as db:
        with pytest.raises(SeatConflictError) as exc_info:
            await approve_booking(db, second)

    assert exc_info.value.labels == ["A2"]
    assert await occupied_seats(session_factory) == before
    assert await booking_status(session_factory, second) == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_approve_twice_is_invalid_state(session_factory, seeded, make_booking):
    booking_id = await make_booking(["A1", "A2"])

    async with session_factory() as db:
        await approve_booking(db, booking_id)

    async with session_factory() as db:
        with pytest.raises(InvalidStateError) as exc_info:
            await approve_booking(db, booking_id)

    assert exc_info.value.current_status == "approved"
    assert await occupied_seats(session_factory) == {"A1": booking_id, "A2": booking_id}


@pytest.mark.asyncio
async def test_reject_pending_booking(session_factory, seeded, make_booking):
    booking_id = await make_booking(["A1"])

    async with session_factory() as db:
        booking = await reject_booking(db, booking_id, admin_notes="screenshot unreadable")

    assert booking.status == BookingStatus.REJECTED
    assert booking.admin_notes == "screenshot unreadable"
    assert await occupied_seats(session_factory) == {}


@pytest.mark.asyncio
async def test_reject_approved_booking_keeps_seats(session_factory, seeded, make_booking):
    booking_id = await make_booking(["A1", "A2"])

    async with session_factory() as db:
        await approve_booking(db, booking_id)

    async with session_factory() as db:
        with pytest.raises(InvalidStateError) as exc_info:
            await reject_booking(db, booking_id)

    assert exc_info.value.current_status == "approved"
    assert await booking_status(session_factory, booking_id) == BookingStatus.APPROVED
    assert await occupied_seats(session_factory) == {"A1": booking_id, "A2": booking_id}


@pytest.mark.asyncio
async def test_terminal_states_never_change(session_factory, seeded, make_booking):
    """Once rejected, neither approve nor reject moves the booking again."""
    booking_id = await make_booking(["A1"])

    async with session_factory() as db:
        await reject_booking(db, booking_id)

    for action in (approve_booking, reject_booking):
        async with session_factory() as db:
            with pytest.raises(InvalidStateError) as exc_info:
                await action(db, booking_id)
        assert exc_info.value.current_status == "rejected"

    assert await booking_status(session_factory, booking_id) == BookingStatus.REJECTED
    assert await occupied_seats(session_factory) == {}


@pytest.mark.asyncio
async def test_reject_missing_booking(session_factory, seeded):
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await reject_booking(db, 99999)


@pytest.mark.asyncio
async def test_storage_failure_mid_approval_rolls_back(session_factory, seeded, make_booking, monkeypatch):
    """Seats already flipped in the failed transaction are not committed, and a retry works."""
    booking_id = await make_booking(["A1", "A2"])

    async def broken_attach(self, booking_id, seats):
        raise OperationalError("INSERT INTO booking_seats", {}, Exception("disk I/O error"))

    monkeypatch.setattr(BookingRepository, "attach_seats", broken_attach)

    async with session_factory() as db:
        with pytest.raises(StorageFailureError):
            await approve_booking(db, booking_id)

    assert await occupied_seats(session_factory) == {}
    assert await booking_status(session_factory, booking_id) == BookingStatus.PENDING

    monkeypatch.undo()
    async with session_factory() as db:
        result = await approve_booking(db, booking_id)

    assert result.approved_seat_labels == ["A1", "A2"]
    assert await occupied_seats(session_factory) == {"A1": booking_id, "A2": booking_id}


@pytest.mark.asyncio
async def test_stale_read_is_retried_and_reports_conflict(session_factory, seeded, make_booking, monkeypatch):
    """
    Another approval commits between our seat read and our write.
    The compare-and-set catches it, and the re-run reports the conflict.
    """
    winner = await make_booking(["A2"])
    loser = await make_booking(["A1", "A2"])

    original_find = SeatRepository.find_by_labels
    calls = {"count": 0}

    async def find_then_lose_race(self, labels, for_update=False):
        found = await original_find(self, labels, for_update)
        calls["count"] += 1
        if calls["count"] == 1:
            async with session_factory() as other:
                await approve_booking(other, winner)
        return found

    monkeypatch.setattr(SeatRepository, "find_by_labels", find_then_lose_race)

    async with session_factory() as db:
        with pytest.raises(SeatConflictError) as exc_info:
            await approve_booking(db, loser)

    assert exc_info.value.labels == ["A2"]
    assert await occupied_seats(session_factory) == {"A2": winner}
    assert await booking_status(session_factory, loser) == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_exhausted_retries_report_storage_failure(session_factory, seeded, make_booking, monkeypatch):
    booking_id = await make_booking(["A1"])

    async def occupy_nothing(self, labels, booking_id):
        return 0

    monkeypatch.setattr(SeatRepository, "occupy", occupy_nothing)

    async with session_factory() as db:
        with pytest.raises(StorageFailureError):
            await approve_booking(db, booking_id)

    assert await booking_status(session_factory, booking_id) == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_create_pending_booking_skips_seat_checks(db_session, seeded, make_booking):
    """Intake records the request as-is; occupied or unknown seats are not checked yet."""
    holder = await make_booking(["A1"])
    await approve_booking(db_session, holder)

    attachment = await AttachmentRepository(db_session).save("proof.png", "image/png", b"\x89PNG")
    submission = parse_submission(
        email="Guest@Example.com",
        phone="+919876543210",
        amount="250.50",
        seats="a1, z9, A1",
    )
    created = await create_pending_booking(db_session, submission, attachment.id)
    await db_session.commit()
    booking = await get_booking(db_session, created.id)

    assert booking.status == BookingStatus.PENDING
    assert booking.email == "guest@example.com"
    assert booking.requested_seat_labels == ["A1", "Z9"]
    assert booking.resolved_seat_labels == []
