"""Role-based capability checks for appointment operations."""

from enum import Enum
from typing import NamedTuple
from uuid import UUID

from telemed.core.exceptions import ForbiddenException


class UserRole(str, Enum):
    """Roles an authenticated caller can hold."""

    PATIENT = "PATIENT"
    PROFESSIONAL = "PROFESSIONAL"
    ADMIN = "ADMIN"


class Caller(NamedTuple):
    """Authenticated identity every service operation receives."""

    user_id: UUID
    role: UserRole


class AppointmentParties(NamedTuple):
    """User accounts on both sides of an appointment."""

    patient_user_id: UUID
    professional_user_id: UUID


class AccessDecision(NamedTuple):
    """Outcome of a capability check."""

    allowed: bool
    reason: str = ""


ALLOW = AccessDecision(True)


def _deny(reason: str) -> AccessDecision:
    return AccessDecision(False, reason)


def is_patient_of(caller: Caller, parties: AppointmentParties) -> bool:
    return caller.role is UserRole.PATIENT and caller.user_id == parties.patient_user_id


def is_professional_of(caller: Caller, parties: AppointmentParties) -> bool:
    return caller.role is UserRole.PROFESSIONAL and caller.user_id == parties.professional_user_id


def can_create(caller: Caller) -> AccessDecision:
    """Only patients book appointments."""
    if caller.role is UserRole.PATIENT:
        return ALLOW
    return _deny("Only patients can book appointments")


def can_view(caller: Caller, parties: AppointmentParties) -> AccessDecision:
    """Admins see everything, other roles only their own appointments."""
    if caller.role is UserRole.ADMIN:
        return ALLOW
    if is_patient_of(caller, parties) or is_professional_of(caller, parties):
        return ALLOW
    return _deny("You do not have permission to view this appointment")


def can_cancel(caller: Caller, parties: AppointmentParties) -> AccessDecision:
    """Admins, the owning patient and the assigned professional may cancel."""
    if caller.role is UserRole.ADMIN:
        return ALLOW
    if is_patient_of(caller, parties) or is_professional_of(caller, parties):
        return ALLOW
    return _deny("You do not have permission to cancel this appointment")


def can_complete_any(caller: Caller) -> AccessDecision:
    """Role gate checked before the appointment is loaded."""
    if caller.role is UserRole.PROFESSIONAL:
        return ALLOW
    return _deny("Only professionals can complete appointments")


def can_complete(caller: Caller, parties: AppointmentParties) -> AccessDecision:
    """Only the assigned professional completes a consultation."""
    decision = can_complete_any(caller)
    if not decision.allowed:
        return decision
    if is_professional_of(caller, parties):
        return ALLOW
    return _deny("Only the assigned professional can complete this appointment")


def can_rate_any(caller: Caller) -> AccessDecision:
    """Role gate checked before the appointment is loaded."""
    if caller.role is UserRole.PATIENT:
        return ALLOW
    return _deny("Only patients can rate appointments")


def can_rate(caller: Caller, parties: AppointmentParties) -> AccessDecision:
    """Only the patient who attended rates the consultation."""
    decision = can_rate_any(caller)
    if not decision.allowed:
        return decision
    if is_patient_of(caller, parties):
        return ALLOW
    return _deny("You do not have permission to rate this appointment")


def ensure_allowed(decision: AccessDecision) -> None:
    """
    Raise when a capability check denied access.

    Raises:
        ForbiddenException: With the reason of the denial
    """
    if not decision.allowed:
        raise ForbiddenException(decision.reason)
