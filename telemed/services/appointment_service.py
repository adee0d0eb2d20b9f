"""Appointment service: role-scoped reads and lifecycle transitions."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import NotFoundException
from telemed.core.permissions import (
    AppointmentParties,
    Caller,
    UserRole,
    can_cancel,
    can_complete,
    can_complete_any,
    can_view,
    ensure_allowed,
)
from telemed.core.timewindow import SLOT_DURATION, ensure_utc, utcnow
from telemed.database import unit_of_work
from telemed.models.appointments import appointments
from telemed.models.patients import patients
from telemed.models.professionals import professionals
from telemed.schemas.appointments import (
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    PatientSummary,
    ProfessionalSummary,
)
from telemed.services.appointment_lifecycle import ensure_cancelable, ensure_completable
from telemed.services.notification_service import (
    NotificationService,
    appointment_canceled_event,
    appointment_completed_event,
)
from telemed.services.professional_service import specialties_by_professional

logger = structlog.get_logger(__name__)


def parties_of(row: Any) -> AppointmentParties:
    """User accounts of the patient and professional on a loaded appointment."""
    return AppointmentParties(
        patient_user_id=row.patient_user_id,
        professional_user_id=row.professional_user_id,
    )


class AppointmentReader:
    """Loads appointments joined with their patient and professional."""

    def __init__(self, db: AsyncSession):
        """Initialize reader with database session."""
        self.db = db

    @staticmethod
    def base_query():
        return select(
            appointments,
            patients.c.user_id.label("patient_user_id"),
            patients.c.full_name.label("patient_name"),
            patients.c.phone.label("patient_phone"),
            professionals.c.user_id.label("professional_user_id"),
            professionals.c.full_name.label("professional_name"),
        ).select_from(
            appointments.join(patients, appointments.c.patient_id == patients.c.id).join(
                professionals, appointments.c.professional_id == professionals.c.id
            )
        )

    async def load(self, appointment_id: UUID, for_update: bool = False) -> Any:
        """
        Fetch one appointment row.

        Args:
            appointment_id: Appointment ID
            for_update: Lock the appointment row until the transaction ends

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = self.base_query().where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update(of=appointments)

        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return row

    async def to_responses(self, rows: list[Any]) -> list[AppointmentResponse]:
        """Render rows with denormalized patient and professional summaries."""
        names = await specialties_by_professional(self.db, (row.professional_id for row in rows))
        return [self._to_response(row, names.get(row.professional_id, [])) for row in rows]

    async def to_response(self, row: Any) -> AppointmentResponse:
        return (await self.to_responses([row]))[0]

    @staticmethod
    def _to_response(row: Any, specialty_names: list[str]) -> AppointmentResponse:
        data = dict(row._mapping)
        scheduled_at = ensure_utc(data["scheduled_at"])

        return AppointmentResponse(
            id=data["id"],
            patient_id=data["patient_id"],
            professional_id=data["professional_id"],
            scheduled_at=scheduled_at,
            ends_at=scheduled_at + SLOT_DURATION,
            status=data["status"],
            price=data["price"],
            video_room_url=data["video_room_url"],
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            professional=ProfessionalSummary(
                id=data["professional_id"],
                full_name=data["professional_name"],
                specialties=specialty_names,
            ),
            patient=PatientSummary(
                id=data["patient_id"],
                full_name=data["patient_name"],
                phone=data["patient_phone"],
            ),
        )


class AppointmentService:
    """Service for reading appointments and moving them through their lifecycle."""

    def __init__(self, db: AsyncSession, notifications: NotificationService | None = None):
        """Initialize service with database session and optional notifier."""
        self.db = db
        self.reader = AppointmentReader(db)
        self.notifications = notifications

    async def get_appointment(self, appointment_id: UUID, caller: Caller) -> AppointmentResponse:
        """
        Get appointment by ID.

        Args:
            appointment_id: Appointment ID
            caller: Authenticated caller

        Returns:
            Appointment details

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not a party to it
        """
        row = await self.reader.load(appointment_id)
        ensure_allowed(can_view(caller, parties_of(row)))
        return await self.reader.to_response(row)

    def _scope_condition(self, caller: Caller):
        if caller.role is UserRole.PATIENT:
            return patients.c.user_id == caller.user_id
        if caller.role is UserRole.PROFESSIONAL:
            return professionals.c.user_id == caller.user_id
        return None

    async def list_appointments(
        self,
        caller: Caller,
        filters: AppointmentFilters | None = None,
    ) -> AppointmentListResponse:
        """
        List the appointments visible to the caller.

        Admins see every appointment, patients and professionals only their
        own. A caller without a matching profile simply gets nothing.

        Args:
            caller: Authenticated caller
            filters: Filter and pagination parameters

        Returns:
            Paginated list ordered by slot start
        """
        filters = filters or AppointmentFilters()

        conditions = []
        scope = self._scope_condition(caller)
        if scope is not None:
            conditions.append(scope)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.from_date:
            conditions.append(appointments.c.scheduled_at >= ensure_utc(filters.from_date))

        if filters.to_date:
            conditions.append(appointments.c.scheduled_at <= ensure_utc(filters.to_date))

        base = self.reader.base_query()
        if conditions:
            base = base.where(and_(*conditions))

        # Count total
        count_stmt = select(func.count()).select_from(base.subquery())
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Get paginated results
        offset = (filters.page - 1) * filters.page_size

        stmt = (
            base.order_by(appointments.c.scheduled_at.asc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = await self.reader.to_responses(list(result.fetchall()))

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def _set_status(self, appointment_id: UUID, status: AppointmentStatus) -> Any:
        await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(status=status.value, updated_at=utcnow())
        )
        return await self.reader.load(appointment_id)

    async def cancel_appointment(self, appointment_id: UUID, caller: Caller) -> AppointmentResponse:
        """
        Cancel an active appointment.

        The row is kept with status CANCELED so the slot becomes free again
        while the history stays intact.

        Args:
            appointment_id: Appointment ID
            caller: Authenticated caller

        Returns:
            Canceled appointment

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If already canceled, completed or in progress
            ForbiddenException: Unless admin, owning patient or assigned professional
        """
        async with unit_of_work(self.db):
            row = await self.reader.load(appointment_id, for_update=True)
            ensure_cancelable(row.status)
            ensure_allowed(can_cancel(caller, parties_of(row)))

            updated = await self._set_status(appointment_id, AppointmentStatus.CANCELED)
            response = await self.reader.to_response(updated)

        logger.info(
            "appointment_canceled",
            appointment_id=str(appointment_id),
            caller_id=str(caller.user_id),
            caller_role=caller.role.value,
        )

        if self.notifications:
            await self.notifications.dispatch(
                appointment_canceled_event(row.patient_user_id, response)
            )

        return response

    async def complete_appointment(
        self,
        appointment_id: UUID,
        caller: Caller,
    ) -> AppointmentResponse:
        """
        Mark a consultation as finished.

        Args:
            appointment_id: Appointment ID
            caller: Authenticated caller

        Returns:
            Completed appointment

        Raises:
            ForbiddenException: Unless the caller is the assigned professional
            NotFoundException: If appointment not found
            InvalidStateException: If already completed or canceled
        """
        ensure_allowed(can_complete_any(caller))

        async with unit_of_work(self.db):
            row = await self.reader.load(appointment_id, for_update=True)
            ensure_allowed(can_complete(caller, parties_of(row)))
            ensure_completable(row.status)

            updated = await self._set_status(appointment_id, AppointmentStatus.COMPLETED)
            response = await self.reader.to_response(updated)

        logger.info(
            "appointment_completed",
            appointment_id=str(appointment_id),
            professional_user_id=str(caller.user_id),
        )

        if self.notifications:
            await self.notifications.dispatch(
                appointment_completed_event(row.patient_user_id, response)
            )

        return response
