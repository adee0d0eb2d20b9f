"""Rating service: one rating per completed appointment."""

from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import InvalidInputException
from telemed.core.permissions import Caller, can_rate, can_rate_any, ensure_allowed
from telemed.core.timewindow import utcnow
from telemed.database import unit_of_work
from telemed.models.appointments import appointment_ratings
from telemed.schemas.appointments import RatingResponse
from telemed.services.appointment_lifecycle import ensure_rateable
from telemed.services.appointment_service import AppointmentReader, parties_of
from telemed.services.notification_service import NotificationService, appointment_rated_event

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingService:
    """Sole writer of appointment ratings."""

    def __init__(self, db: AsyncSession, notifications: NotificationService | None = None):
        """Initialize service with database session and optional notifier."""
        self.db = db
        self.reader = AppointmentReader(db)
        self.notifications = notifications

    async def _get_rating(self, appointment_id: UUID):
        result = await self.db.execute(
            select(appointment_ratings).where(appointment_ratings.c.appointment_id == appointment_id)
        )
        return result.fetchone()

    async def rate_appointment(
        self,
        appointment_id: UUID,
        caller: Caller,
        rating: int,
        comment: str | None = None,
    ) -> RatingResponse:
        """
        Create or revise the rating of a completed appointment.

        Rating again replaces the stored value and comment; there is never
        more than one rating per appointment.

        Args:
            appointment_id: Appointment ID
            caller: Authenticated caller, must be the owning patient
            rating: Integer from 1 to 5
            comment: Optional free text

        Returns:
            Stored rating

        Raises:
            InvalidInputException: If the rating is out of range
            ForbiddenException: Unless the caller is the owning patient
            NotFoundException: If appointment not found
            InvalidStateException: Unless the appointment is completed
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidInputException("Rating must be an integer between 1 and 5")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidInputException("Rating must be an integer between 1 and 5")

        ensure_allowed(can_rate_any(caller))
        comment = comment or None
        now = utcnow()

        async with unit_of_work(self.db):
            # Row lock serialises concurrent re-ratings of the same appointment
            row = await self.reader.load(appointment_id, for_update=True)
            ensure_allowed(can_rate(caller, parties_of(row)))
            ensure_rateable(row.status)

            existing = await self._get_rating(appointment_id)
            if existing:
                await self.db.execute(
                    update(appointment_ratings)
                    .where(appointment_ratings.c.id == existing.id)
                    .values(rating=rating, comment=comment, updated_at=now)
                )
            else:
                await self.db.execute(
                    insert(appointment_ratings).values(
                        appointment_id=appointment_id,
                        rating=rating,
                        comment=comment,
                        created_at=now,
                        updated_at=now,
                    )
                )

            stored = await self._get_rating(appointment_id)
            response = RatingResponse.model_validate(dict(stored._mapping))

        logger.info(
            "appointment_rated",
            appointment_id=str(appointment_id),
            rating=rating,
            revised=existing is not None,
        )

        if self.notifications:
            await self.notifications.dispatch(
                appointment_rated_event(
                    row.professional_user_id,
                    appointment_id,
                    rating,
                    has_comment=comment is not None,
                )
            )

        return response
