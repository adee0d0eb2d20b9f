"""Tests for appointment endpoints."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient

from telemed.core.timewindow import utcnow

API = "/api/v1/appointments"


def tomorrow(hour_offset: int = 0) -> str:
    start = (utcnow() + timedelta(days=1, hours=hour_offset)).replace(
        minute=0, second=0, microsecond=0
    )
    return start.isoformat().replace("+00:00", "Z")


async def test_create_appointment(
    client: AsyncClient, auth_headers, patient, professional, redis_mock
) -> None:
    response = await client.post(
        f"{API}/",
        json={"professional_id": str(professional["professional_id"]), "scheduled_at": tomorrow()},
        headers=auth_headers(patient["user_id"]),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING_PAYMENT"
    assert Decimal(data["price"]) == Decimal("150.00")
    assert data["professional"]["full_name"] == "Dr. Ana Souza"
    assert data["professional"]["specialties"] == ["General Practice"]
    assert data["patient"]["id"] == str(patient["patient_id"])
    redis_mock.lpush.assert_called_once()


async def test_create_appointment_conflict(
    client: AsyncClient, auth_headers, patient, make_patient, professional
) -> None:
    body = {"professional_id": str(professional["professional_id"]), "scheduled_at": tomorrow()}
    first = await client.post(f"{API}/", json=body, headers=auth_headers(patient["user_id"]))
    assert first.status_code == 201

    other = await make_patient(full_name="Diego Rocha")
    response = await client.post(f"{API}/", json=body, headers=auth_headers(other["user_id"]))

    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_CONFLICT"


async def test_create_appointment_rejects_bad_times(
    client: AsyncClient, auth_headers, patient, professional
) -> None:
    headers = auth_headers(patient["user_id"])
    professional_id = str(professional["professional_id"])

    for scheduled_at in ("next tuesday", "2030-05-06T10:00:00"):
        response = await client.post(
            f"{API}/",
            json={"professional_id": professional_id, "scheduled_at": scheduled_at},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    soon = (utcnow() + timedelta(minutes=30)).isoformat()
    response = await client.post(
        f"{API}/",
        json={"professional_id": professional_id, "scheduled_at": soon},
        headers=headers,
    )
    assert response.status_code == 400
    assert "in advance" in response.json()["message"]


async def test_create_appointment_validation_error(
    client: AsyncClient, auth_headers, patient
) -> None:
    response = await client.post(
        f"{API}/",
        json={"professional_id": "not-a-uuid"},
        headers=auth_headers(patient["user_id"]),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "INVALID_INPUT"
    assert body["details"]


async def test_professional_cannot_book(
    client: AsyncClient, auth_headers, professional
) -> None:
    response = await client.post(
        f"{API}/",
        json={"professional_id": str(professional["professional_id"]), "scheduled_at": tomorrow()},
        headers=auth_headers(professional["user_id"]),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


async def test_unknown_professional(client: AsyncClient, auth_headers, patient) -> None:
    response = await client.post(
        f"{API}/",
        json={"professional_id": str(uuid4()), "scheduled_at": tomorrow()},
        headers=auth_headers(patient["user_id"]),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


async def test_requires_authentication(client: AsyncClient, patient) -> None:
    response = await client.get(f"{API}/")
    assert response.status_code in (401, 403)

    response = await client.get(f"{API}/", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


async def test_deactivated_user_is_forbidden(
    client: AsyncClient, auth_headers, make_professional
) -> None:
    retired = await make_professional(is_active=False)
    response = await client.get(f"{API}/", headers=auth_headers(retired["user_id"]))

    assert response.status_code == 403


async def test_list_and_get_appointments(
    client: AsyncClient, auth_headers, patient, professional
) -> None:
    headers = auth_headers(patient["user_id"])
    for offset in (2, 0):
        await client.post(
            f"{API}/",
            json={
                "professional_id": str(professional["professional_id"]),
                "scheduled_at": tomorrow(offset),
            },
            headers=headers,
        )

    response = await client.get(f"{API}/", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["items"][0]["scheduled_at"] < data["items"][1]["scheduled_at"]

    appointment_id = data["items"][0]["id"]
    response = await client.get(
        f"{API}/{appointment_id}", headers=auth_headers(professional["user_id"])
    )
    assert response.status_code == 200
    assert response.json()["id"] == appointment_id

    response = await client.get(f"{API}/", params={"status": "CANCELED"}, headers=headers)
    assert response.json()["total"] == 0


async def test_cancel_complete_and_rate_flow(
    client: AsyncClient, auth_headers, patient, professional
) -> None:
    patient_headers = auth_headers(patient["user_id"])
    professional_headers = auth_headers(professional["user_id"])
    body = {"professional_id": str(professional["professional_id"]), "scheduled_at": tomorrow()}

    created = await client.post(f"{API}/", json=body, headers=patient_headers)
    appointment_id = created.json()["id"]

    # Patients cannot complete
    response = await client.patch(f"{API}/{appointment_id}/complete", headers=patient_headers)
    assert response.status_code == 403

    # Not completed yet
    response = await client.post(
        f"{API}/{appointment_id}/rate", json={"rating": 5}, headers=patient_headers
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATE"

    response = await client.patch(
        f"{API}/{appointment_id}/complete", headers=professional_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"

    response = await client.patch(f"{API}/{appointment_id}/cancel", headers=patient_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATE"

    response = await client.post(
        f"{API}/{appointment_id}/rate",
        json={"rating": 4, "comment": "Clear explanations"},
        headers=patient_headers,
    )
    assert response.status_code == 200
    assert response.json()["rating"] == 4

    response = await client.post(
        f"{API}/{appointment_id}/rate", json={"rating": 6}, headers=patient_headers
    )
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_INPUT"


async def test_cancel_frees_the_slot(
    client: AsyncClient, auth_headers, patient, make_patient, professional
) -> None:
    body = {"professional_id": str(professional["professional_id"]), "scheduled_at": tomorrow()}
    created = await client.post(f"{API}/", json=body, headers=auth_headers(patient["user_id"]))
    appointment_id = created.json()["id"]

    response = await client.patch(
        f"{API}/{appointment_id}/cancel", headers=auth_headers(patient["user_id"])
    )
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELED"

    other = await make_patient(full_name="Diego Rocha")
    response = await client.post(f"{API}/", json=body, headers=auth_headers(other["user_id"]))
    assert response.status_code == 201
