"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from telemed.dependencies import CurrentCaller, DatabaseSession, Notifier
from telemed.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    RatingCreate,
    RatingResponse,
)
from telemed.services.appointment_service import AppointmentService
from telemed.services.booking_service import BookingService
from telemed.services.rating_service import RatingService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """
    Book a consultation slot for the authenticated patient.

    The appointment is created in PENDING_PAYMENT with the professional's
    current price.

    Args:
        data: Professional and slot start
        caller: Authenticated caller
        db: Database session
        notifier: Notification dispatcher

    Returns:
        Created appointment
    """
    service = BookingService(db, notifier)
    return await service.create_appointment(caller, data.professional_id, data.scheduled_at)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    caller: CurrentCaller,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the appointments visible to the caller, ordered by slot start.

    Args:
        caller: Authenticated caller
        db: Database session
        status_filter: Filter by status
        from_date: Earliest slot start
        to_date: Latest slot start
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(caller, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment the caller is a party to."""
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id, caller)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """
    Cancel an appointment, freeing its slot.

    Args:
        appointment_id: Appointment ID
        caller: Authenticated caller
        db: Database session
        notifier: Notification dispatcher

    Returns:
        Canceled appointment
    """
    service = AppointmentService(db, notifier)
    return await service.cancel_appointment(appointment_id, caller)


@router.patch(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """Mark the caller's consultation as finished."""
    service = AppointmentService(db, notifier)
    return await service.complete_appointment(appointment_id, caller)


@router.post(
    "/{appointment_id}/rate",
    response_model=RatingResponse,
    status_code=status.HTTP_200_OK,
    summary="Rate appointment",
)
async def rate_appointment(
    appointment_id: UUID,
    data: RatingCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
    notifier: Notifier,
) -> RatingResponse:
    """
    Rate a completed consultation. Rating again replaces the previous rating.

    Args:
        appointment_id: Appointment ID
        data: Rating and optional comment
        caller: Authenticated caller
        db: Database session
        notifier: Notification dispatcher

    Returns:
        Stored rating
    """
    service = RatingService(db, notifier)
    return await service.rate_appointment(appointment_id, caller, data.rating, data.comment)
