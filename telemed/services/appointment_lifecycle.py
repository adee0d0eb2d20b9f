"""Appointment status transitions.

PENDING_PAYMENT -> SCHEDULED -> IN_PROGRESS -> COMPLETED is the happy path.
Payment capture happens elsewhere, so the three active states are treated
alike here. CANCELED and COMPLETED are terminal.
"""

from telemed.core.exceptions import InvalidStateException
from telemed.schemas.appointments import AppointmentStatus

ACTIVE_STATUSES = frozenset(
    {
        AppointmentStatus.PENDING_PAYMENT,
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.IN_PROGRESS,
    }
)
TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED})

# A consultation already under way cannot be canceled
CANCELABLE_STATUSES = ACTIVE_STATUSES - {AppointmentStatus.IN_PROGRESS}
COMPLETABLE_STATUSES = ACTIVE_STATUSES

_CANCEL_REJECTIONS = {
    AppointmentStatus.CANCELED: "This appointment is already canceled",
    AppointmentStatus.COMPLETED: "A completed consultation cannot be canceled",
    AppointmentStatus.IN_PROGRESS: "A consultation in progress cannot be canceled",
}

_COMPLETE_REJECTIONS = {
    AppointmentStatus.COMPLETED: "This appointment is already completed",
    AppointmentStatus.CANCELED: "A canceled appointment cannot be completed",
}


def ensure_cancelable(status: AppointmentStatus | str) -> None:
    """
    Check that an appointment in ``status`` may move to CANCELED.

    Raises:
        InvalidStateException: With the specific reason for the rejection
    """
    status = AppointmentStatus(status)
    if status not in CANCELABLE_STATUSES:
        raise InvalidStateException(_CANCEL_REJECTIONS[status])


def ensure_completable(status: AppointmentStatus | str) -> None:
    """
    Check that an appointment in ``status`` may move to COMPLETED.

    Raises:
        InvalidStateException: With the specific reason for the rejection
    """
    status = AppointmentStatus(status)
    if status not in COMPLETABLE_STATUSES:
        raise InvalidStateException(_COMPLETE_REJECTIONS[status])


def ensure_rateable(status: AppointmentStatus | str) -> None:
    """Only completed consultations can be rated."""
    if AppointmentStatus(status) is not AppointmentStatus.COMPLETED:
        raise InvalidStateException("Only completed consultations can be rated")
