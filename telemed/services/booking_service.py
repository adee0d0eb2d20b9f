"""Booking transaction coordinator.

Check-then-insert for a slot runs as one transaction. The professional row
is read ``FOR UPDATE`` first, so concurrent bookings for the same
professional queue behind each other: whichever commits first wins and the
others re-run the conflict check against the committed row.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.config import settings
from telemed.core.exceptions import (
    BookingTimeoutException,
    ForbiddenException,
    InvalidInputException,
    NotFoundException,
    SlotConflictException,
)
from telemed.core.permissions import Caller, can_create, ensure_allowed
from telemed.core.timewindow import (
    ensure_utc,
    has_sufficient_lead_time,
    parse_instant,
    prefilter_bounds,
    utcnow,
)
from telemed.database import unit_of_work
from telemed.models.appointments import appointments
from telemed.models.patients import patients
from telemed.models.professionals import professionals
from telemed.models.users import users
from telemed.schemas.appointments import AppointmentResponse, AppointmentStatus
from telemed.services.appointment_service import AppointmentReader
from telemed.services.conflict_detector import ConflictDetector
from telemed.services.notification_service import NotificationService, appointment_booked_event

logger = structlog.get_logger(__name__)

# Store-level backstop installed by the migrations on PostgreSQL
OVERLAP_CONSTRAINT = "appointments_no_overlap"

SLOT_TAKEN_MESSAGE = "This time slot is already taken. Please choose another time."


class BookingService:
    """Sole creator of appointment rows."""

    def __init__(
        self,
        db: AsyncSession,
        notifications: NotificationService | None = None,
        clock: Callable[[], datetime] = utcnow,
        timeout_seconds: float | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            db: Database session, used for one booking at a time
            notifications: Best-effort notifier run after commit
            clock: Source of the current instant
            timeout_seconds: Time limit for the booking transaction
        """
        self.db = db
        self.notifications = notifications
        self.clock = clock
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.booking_transaction_timeout_seconds
        )
        self.conflicts = ConflictDetector(db)
        self.reader = AppointmentReader(db)

    @staticmethod
    def _parse_slot(scheduled_at: str | datetime) -> datetime:
        if isinstance(scheduled_at, datetime):
            if scheduled_at.tzinfo is None:
                raise InvalidInputException("Appointment time must include a timezone offset")
            try:
                return ensure_utc(scheduled_at)
            except OverflowError as e:
                raise InvalidInputException("Appointment time is out of the bookable range") from e

        try:
            return parse_instant(scheduled_at)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidInputException(
                "Invalid appointment time. Use ISO-8601 format (e.g. 2024-01-15T14:30:00Z)"
            ) from e

    def _validate_slot(self, start: datetime, now: datetime) -> None:
        if start <= now:
            raise InvalidInputException(
                "Cannot book an appointment in the past. Please choose a future time."
            )

        if not has_sufficient_lead_time(start, now):
            raise InvalidInputException(
                "Appointments must be booked at least "
                f"{settings.booking_lead_time_minutes} minutes in advance."
            )

        try:
            prefilter_bounds(start)
        except OverflowError as e:
            raise InvalidInputException("Appointment time is out of the bookable range") from e

    async def _get_patient(self, user_id: UUID) -> Any:
        result = await self.db.execute(select(patients).where(patients.c.user_id == user_id))
        patient = result.fetchone()

        if not patient:
            raise ForbiddenException("Patient profile not found. Please complete your profile.")

        return patient

    async def _lock_professional(self, professional_id: UUID) -> Any:
        stmt = (
            select(
                professionals.c.id,
                professionals.c.full_name,
                professionals.c.price,
                users.c.is_active,
            )
            .join(users, professionals.c.user_id == users.c.id)
            .where(professionals.c.id == professional_id)
            .with_for_update(of=professionals)
        )
        result = await self.db.execute(stmt)
        professional = result.fetchone()

        if not professional:
            raise NotFoundException("Professional not found")

        if not professional.is_active:
            raise InvalidInputException("Professional is not currently active")

        return professional

    async def _insert_appointment(
        self,
        patient_id: UUID,
        professional: Any,
        start: datetime,
        now: datetime,
    ) -> UUID:
        stmt = (
            insert(appointments)
            .values(
                patient_id=patient_id,
                professional_id=professional.id,
                scheduled_at=start,
                status=AppointmentStatus.PENDING_PAYMENT.value,
                price=professional.price,
                created_at=now,
                updated_at=now,
            )
            .returning(appointments.c.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def _book(
        self,
        caller: Caller,
        professional_id: UUID,
        start: datetime,
        now: datetime,
    ) -> tuple[AppointmentResponse, UUID]:
        # Close anything autobegun by earlier reads on this session, such as
        # the auth lookup, so the booking runs in a transaction of its own
        if self.db.in_transaction():
            await self.db.commit()

        async with unit_of_work(self.db):
            patient = await self._get_patient(caller.user_id)
            professional = await self._lock_professional(professional_id)

            if await self.conflicts.has_conflict(professional.id, start):
                logger.info(
                    "slot_conflict",
                    professional_id=str(professional.id),
                    scheduled_at=start.isoformat(),
                )
                raise SlotConflictException(SLOT_TAKEN_MESSAGE)

            appointment_id = await self._insert_appointment(patient.id, professional, start, now)
            row = await self.reader.load(appointment_id)
            response = await self.reader.to_response(row)

        return response, patient.user_id

    async def create_appointment(
        self,
        caller: Caller,
        professional_id: UUID,
        scheduled_at: str | datetime,
    ) -> AppointmentResponse:
        """
        Book a slot with a professional.

        Args:
            caller: Authenticated caller, must be a patient
            professional_id: Professional to book
            scheduled_at: Slot start, ISO-8601 with offset

        Returns:
            Created appointment in PENDING_PAYMENT

        Raises:
            ForbiddenException: If the caller is not a patient or has no profile
            InvalidInputException: If the time is malformed, past, too close
                or the professional is inactive
            NotFoundException: If the professional does not exist
            SlotConflictException: If the slot overlaps an existing booking
            BookingTimeoutException: If the transaction exceeded its time limit
        """
        ensure_allowed(can_create(caller))

        start = self._parse_slot(scheduled_at)
        now = ensure_utc(self.clock())
        self._validate_slot(start, now)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                appointment, patient_user_id = await self._book(
                    caller, professional_id, start, now
                )
        except TimeoutError as e:
            logger.error(
                "booking_timeout",
                professional_id=str(professional_id),
                scheduled_at=start.isoformat(),
                timeout_seconds=self.timeout_seconds,
            )
            raise BookingTimeoutException() from e
        except IntegrityError as e:
            if OVERLAP_CONSTRAINT in str(e.orig):
                logger.info(
                    "slot_conflict",
                    professional_id=str(professional_id),
                    scheduled_at=start.isoformat(),
                    source="constraint",
                )
                raise SlotConflictException(SLOT_TAKEN_MESSAGE) from e
            raise

        logger.info(
            "appointment_created",
            appointment_id=str(appointment.id),
            professional_id=str(appointment.professional_id),
            scheduled_at=start.isoformat(),
        )

        if self.notifications:
            await self.notifications.dispatch(
                appointment_booked_event(patient_user_id, appointment)
            )

        return appointment
