"""Double-booking detection for a professional's schedule."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.timewindow import ensure_utc, prefilter_bounds, slots_overlap
from telemed.models.appointments import appointments
from telemed.schemas.appointments import AppointmentStatus


class ConflictDetector:
    """Read-only check of a candidate slot against existing bookings."""

    def __init__(self, db: AsyncSession):
        """Initialize detector with database session."""
        self.db = db

    async def _candidate_rows(self, professional_id: UUID, candidate_start: datetime) -> list[Any]:
        lower, upper = prefilter_bounds(candidate_start)

        stmt = (
            select(
                appointments.c.id,
                appointments.c.scheduled_at,
                appointments.c.status,
            )
            .where(
                and_(
                    appointments.c.professional_id == professional_id,
                    appointments.c.status != AppointmentStatus.CANCELED.value,
                    appointments.c.scheduled_at >= lower,
                    appointments.c.scheduled_at <= upper,
                )
            )
            .order_by(appointments.c.scheduled_at)
        )

        result = await self.db.execute(stmt)
        return list(result.fetchall())

    async def find_conflicts(
        self,
        professional_id: UUID,
        candidate_start: datetime,
    ) -> list[dict[str, Any]]:
        """
        List the bookings overlapping a candidate slot.

        Args:
            professional_id: Professional whose schedule is checked
            candidate_start: Start of the requested slot

        Returns:
            Overlapping appointments that are not canceled
        """
        candidate_start = ensure_utc(candidate_start)
        rows = await self._candidate_rows(professional_id, candidate_start)

        return [
            dict(row._mapping)
            for row in rows
            if slots_overlap(candidate_start, ensure_utc(row.scheduled_at))
        ]

    async def has_conflict(self, professional_id: UUID, candidate_start: datetime) -> bool:
        """
        Check whether a candidate slot overlaps any booking that is not canceled.

        Args:
            professional_id: Professional whose schedule is checked
            candidate_start: Start of the requested slot

        Returns:
            True as soon as one overlapping booking is found
        """
        candidate_start = ensure_utc(candidate_start)
        rows = await self._candidate_rows(professional_id, candidate_start)

        return any(slots_overlap(candidate_start, ensure_utc(row.scheduled_at)) for row in rows)
