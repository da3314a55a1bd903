"""
Seat registry: authoritative seat state.

The allocation engine never writes a seat with a plain attribute assignment.
Occupying and releasing are compare-and-set UPDATEs whose WHERE clause
repeats the expected current status, so a write based on a stale read
changes zero rows instead of clobbering a concurrent commit.
"""

from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.models.seat import Seat, SeatStatus

# Keeps multi-row upserts under SQLite's bound-parameter limit
UPSERT_BATCH_SIZE = 100


class SeatRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_labels(self, labels: Iterable[str], for_update: bool = False) -> dict[str, Seat]:
        """
        Load the seats matching `labels`, keyed by label.

        Labels with no seat are simply absent from the result. With
        `for_update`, rows are locked (SELECT ... FOR UPDATE) in label order
        so two approvals touching overlapping seats always queue on the
        same first row instead of deadlocking.
        """
        wanted = sorted(set(labels))
        if not wanted:
            return {}

        stmt = select(Seat).where(Seat.label.in_(wanted)).order_by(Seat.label)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return {seat.label: seat for seat in result.scalars().all()}

    async def get_by_label(self, label: str) -> Optional[Seat]:
        result = await self.db.execute(select(Seat).where(Seat.label == label))
        return result.scalar_one_or_none()

    async def list_ordered(self) -> list[Seat]:
        result = await self.db.execute(select(Seat).order_by(Seat.row, Seat.number))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Seat))
        return result.scalar_one()

    async def occupy(self, labels: Sequence[str], booking_id: int) -> int:
        """Mark available seats occupied by `booking_id`. Returns rows changed."""
        result = await self.db.execute(
            update(Seat)
            .where(
                Seat.label.in_(list(labels)),
                Seat.status == SeatStatus.AVAILABLE,
            )
            .values(status=SeatStatus.OCCUPIED, occupied_by_booking_id=booking_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def release(self, label: str) -> int:
        result = await self.db.execute(
            update(Seat)
            .where(Seat.label == label)
            .values(status=SeatStatus.AVAILABLE, occupied_by_booking_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def upsert_structure(self, rows: list[dict]) -> None:
        """
        Insert-or-update seats keyed on label.

        Structural columns (row, number, tier) are overwritten on every run;
        status and occupant are only written when the seat is first inserted.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise NotImplementedError(f"Seat upsert is not supported on {dialect}")

        for start in range(0, len(rows), UPSERT_BATCH_SIZE):
            batch = rows[start:start + UPSERT_BATCH_SIZE]
            stmt = insert(Seat).values(
                [
                    {
                        **row,
                        "status": SeatStatus.AVAILABLE,
                        "occupied_by_booking_id": None,
                    }
                    for row in batch
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Seat.label],
                set_={
                    "row": stmt.excluded.row,
                    "number": stmt.excluded.number,
                    "tier": stmt.excluded.tier,
                },
            )
            await self.db.execute(stmt)
