"""Tests for the professional directory."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert

from telemed.core.exceptions import NotFoundException
from telemed.models import appointment_ratings
from telemed.services.professional_service import (
    ProfessionalService,
    specialties_by_professional,
)


async def test_list_professionals_hides_inactive(db_session, make_professional) -> None:
    await make_professional(full_name="Dr. Bruno Lima", specialty_names=("Cardiology",))
    await make_professional(full_name="Dr. Ana Souza")
    await make_professional(full_name="Dr. Retired", is_active=False)

    service = ProfessionalService(db_session)

    active = await service.list_professionals()
    assert [p.full_name for p in active] == ["Dr. Ana Souza", "Dr. Bruno Lima"]
    assert active[1].specialties == ["Cardiology"]
    assert active[0].reviews_count == 0
    assert active[0].average_rating == 0.0

    everyone = await service.list_professionals(active_only=False)
    assert len(everyone) == 3


async def test_get_professional(db_session, make_professional) -> None:
    created = await make_professional(
        price=Decimal("220.00"), specialty_names=("Psychiatry", "Cardiology")
    )
    service = ProfessionalService(db_session)

    profile = await service.get_professional(created["professional_id"])
    assert profile.price == Decimal("220.00")
    assert profile.is_active is True
    # Sorted by name
    assert profile.specialties == ["Cardiology", "Psychiatry"]

    with pytest.raises(NotFoundException):
        await service.get_professional(uuid4())


async def test_specialties_by_professional_empty(db_session) -> None:
    assert await specialties_by_professional(db_session, []) == {}


async def test_ratings_of_canceled_appointments_are_ignored(
    db_session, session_factory, patient, professional, make_appointment
) -> None:
    # A rating row left behind on an appointment that is no longer completed
    appointment_id = await make_appointment(
        patient, professional, datetime(2030, 5, 6, 10, 0, tzinfo=UTC), status="CANCELED"
    )
    async with session_factory() as session:
        await session.execute(
            insert(appointment_ratings).values(appointment_id=appointment_id, rating=1)
        )
        await session.commit()

    profile = await ProfessionalService(db_session).get_professional(
        professional["professional_id"]
    )
    assert profile.reviews_count == 0


async def test_professional_endpoints(
    client: AsyncClient, auth_headers, patient, professional
) -> None:
    headers = auth_headers(patient["user_id"])

    response = await client.get("/api/v1/professionals/", headers=headers)
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [str(professional["professional_id"])]

    response = await client.get(
        f"/api/v1/professionals/{professional['professional_id']}", headers=headers
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Dr. Ana Souza"

    response = await client.get(f"/api/v1/professionals/{uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
