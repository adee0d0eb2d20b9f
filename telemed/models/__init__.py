"""Database models."""

from telemed.models.appointments import appointment_ratings, appointments
from telemed.models.base import metadata
from telemed.models.notifications import notifications
from telemed.models.patients import patients
from telemed.models.professionals import (
    professional_specialties,
    professionals,
    specialties,
)
from telemed.models.users import users

__all__ = [
    "appointment_ratings",
    "appointments",
    "metadata",
    "notifications",
    "patients",
    "professional_specialties",
    "professionals",
    "specialties",
    "users",
]
