"""Tests for role-based capability checks."""

from uuid import uuid4

import pytest

from telemed.core.exceptions import ForbiddenException
from telemed.core.permissions import (
    AppointmentParties,
    Caller,
    UserRole,
    can_cancel,
    can_complete,
    can_complete_any,
    can_create,
    can_rate,
    can_rate_any,
    can_view,
    ensure_allowed,
)

PATIENT_USER = uuid4()
PROFESSIONAL_USER = uuid4()
PARTIES = AppointmentParties(patient_user_id=PATIENT_USER, professional_user_id=PROFESSIONAL_USER)

OWNER = Caller(PATIENT_USER, UserRole.PATIENT)
ASSIGNED = Caller(PROFESSIONAL_USER, UserRole.PROFESSIONAL)
OTHER_PATIENT = Caller(uuid4(), UserRole.PATIENT)
OTHER_PROFESSIONAL = Caller(uuid4(), UserRole.PROFESSIONAL)
ADMIN = Caller(uuid4(), UserRole.ADMIN)


def test_only_patients_create() -> None:
    assert can_create(OWNER).allowed
    assert not can_create(ASSIGNED).allowed
    assert not can_create(ADMIN).allowed


@pytest.mark.parametrize("check", [can_view, can_cancel])
def test_view_and_cancel(check) -> None:
    assert check(OWNER, PARTIES).allowed
    assert check(ASSIGNED, PARTIES).allowed
    assert check(ADMIN, PARTIES).allowed
    assert not check(OTHER_PATIENT, PARTIES).allowed
    assert not check(OTHER_PROFESSIONAL, PARTIES).allowed


def test_role_must_match_the_side() -> None:
    # Same user id but wrong role does not make the caller a party
    impostor = Caller(PATIENT_USER, UserRole.PROFESSIONAL)
    assert not can_view(impostor, PARTIES).allowed


def test_complete_is_assigned_professional_only() -> None:
    assert can_complete_any(ASSIGNED).allowed
    assert not can_complete_any(OWNER).allowed
    assert not can_complete_any(ADMIN).allowed

    assert can_complete(ASSIGNED, PARTIES).allowed
    assert not can_complete(OTHER_PROFESSIONAL, PARTIES).allowed
    assert not can_complete(ADMIN, PARTIES).allowed


def test_rate_is_owning_patient_only() -> None:
    assert can_rate_any(OWNER).allowed
    assert not can_rate_any(ASSIGNED).allowed
    assert can_rate(OWNER, PARTIES).allowed
    assert not can_rate(OTHER_PATIENT, PARTIES).allowed
    assert not can_rate(ADMIN, PARTIES).allowed


def test_ensure_allowed_raises_with_reason() -> None:
    ensure_allowed(can_view(OWNER, PARTIES))

    with pytest.raises(ForbiddenException) as exc_info:
        ensure_allowed(can_complete(OWNER, PARTIES))

    assert exc_info.value.code == "FORBIDDEN"
    assert exc_info.value.status_code == 403
    assert "professionals" in exc_info.value.message
