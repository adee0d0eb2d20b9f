"""Notification side-channel and in-app inbox.

Booking outcomes never depend on anything in this module: dispatch failures
are logged and reported through the return value only.
"""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import desc, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.config import settings
from telemed.core.exceptions import NotFoundException
from telemed.core.redis_client import NotificationQueue
from telemed.core.timewindow import ensure_utc
from telemed.models.notifications import notifications
from telemed.schemas.appointments import AppointmentResponse
from telemed.schemas.notifications import (
    NotificationEvent,
    NotificationRecord,
    NotificationType,
)

logger = structlog.get_logger(__name__)


def _format_slot(scheduled_at: datetime) -> str:
    return ensure_utc(scheduled_at).strftime("%b %d, %Y at %H:%M UTC")


def _professional_name(appointment: AppointmentResponse) -> str:
    if appointment.professional:
        return appointment.professional.full_name
    return "your professional"


def appointment_booked_event(user_id: UUID, appointment: AppointmentResponse) -> NotificationEvent:
    """Event sent to the patient once a slot is reserved."""
    return NotificationEvent(
        event="appointment_booked",
        user_id=user_id,
        title="Appointment Booked",
        message=(
            f"Your consultation with {_professional_name(appointment)} is booked for "
            f"{_format_slot(appointment.scheduled_at)}"
        ),
        appointment_id=appointment.id,
    )


def appointment_canceled_event(
    user_id: UUID,
    appointment: AppointmentResponse,
) -> NotificationEvent:
    """Event sent to the patient when an appointment is canceled."""
    return NotificationEvent(
        event="appointment_canceled",
        user_id=user_id,
        title="Appointment Canceled",
        message=(
            f"Your consultation with {_professional_name(appointment)} on "
            f"{_format_slot(appointment.scheduled_at)} was canceled"
        ),
        appointment_id=appointment.id,
    )


def appointment_completed_event(
    user_id: UUID,
    appointment: AppointmentResponse,
) -> NotificationEvent:
    """Event inviting the patient to rate a finished consultation."""
    return NotificationEvent(
        event="appointment_completed",
        user_id=user_id,
        title="Consultation Finished",
        message=(
            f"Your consultation with {_professional_name(appointment)} has finished. "
            "Tell us how it went by rating it."
        ),
        appointment_id=appointment.id,
    )


def appointment_rated_event(
    user_id: UUID,
    appointment_id: UUID,
    rating: int,
    has_comment: bool,
) -> NotificationEvent:
    """Event sent to the professional when a patient rates a consultation."""
    suffix = " with a comment" if has_comment else ""
    return NotificationEvent(
        event="appointment_rated",
        user_id=user_id,
        title="New Rating Received",
        message=f"You received a {rating}-star rating{suffix}",
        notification_type=NotificationType.SYSTEM,
        appointment_id=appointment_id,
    )


class NotificationService:
    """Service for emitting and reading user notifications."""

    def __init__(self, db: AsyncSession, queue: NotificationQueue | None = None):
        """Initialize service with database session and optional outbound queue."""
        self.db = db
        self.queue = queue

    async def dispatch(self, event: NotificationEvent) -> bool:
        """
        Record an inbox entry and hand the event to the dispatcher queue.

        Never raises. Runs after the triggering transaction has committed.

        Args:
            event: Event to deliver

        Returns:
            True if the inbox entry was stored, False otherwise
        """
        try:
            await self.db.execute(
                insert(notifications).values(
                    user_id=event.user_id,
                    title=event.title,
                    message=event.message,
                    notification_type=event.notification_type.value,
                    appointment_id=event.appointment_id,
                    is_read=False,
                )
            )
            await self.db.commit()
        except Exception as e:
            logger.warning(
                "notification_dispatch_failed",
                notification_event=event.event,
                user_id=str(event.user_id),
                error=str(e),
            )
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.warning("notification_rollback_failed", error=str(rollback_error))
            return False

        queued = False
        if self.queue is not None:
            queued = self.queue.publish(event.model_dump(mode="json"))

        logger.info(
            "notification_dispatched",
            notification_event=event.event,
            user_id=str(event.user_id),
            queued=queued,
        )
        return True

    async def list_for_user(
        self,
        user_id: UUID,
        limit: int | None = None,
    ) -> list[NotificationRecord]:
        """
        Latest notifications of a user, newest first.

        Args:
            user_id: Owner of the inbox
            limit: Maximum number of entries

        Returns:
            Inbox entries
        """
        stmt = (
            select(notifications)
            .where(notifications.c.user_id == user_id)
            .order_by(desc(notifications.c.created_at))
            .limit(limit or settings.notification_inbox_limit)
        )
        result = await self.db.execute(stmt)
        return [NotificationRecord.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> int:
        """
        Mark one notification of the user as read.

        Raises:
            NotFoundException: If the user has no such notification
        """
        result = await self.db.execute(
            update(notifications)
            .where(
                notifications.c.id == notification_id,
                notifications.c.user_id == user_id,
            )
            .values(is_read=True)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundException("Notification not found")

        await self.db.commit()
        return result.rowcount

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read."""
        result = await self.db.execute(
            update(notifications)
            .where(
                notifications.c.user_id == user_id,
                notifications.c.is_read.is_(False),
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount
