"""Appointment schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from telemed.core.timewindow import ensure_utc


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING_PAYMENT = "PENDING_PAYMENT"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class AppointmentCreate(BaseModel):
    """Schema for booking a slot."""

    professional_id: UUID
    # Parsed by the booking service so malformed values map to INVALID_INPUT
    scheduled_at: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Slot start, ISO-8601 with offset (e.g. 2024-01-15T14:30:00Z)",
    )


class ProfessionalSummary(BaseModel):
    """Professional fields denormalized onto appointment responses."""

    id: UUID
    full_name: str
    specialties: list[str] = Field(default_factory=list)


class PatientSummary(BaseModel):
    """Patient fields denormalized onto appointment responses."""

    id: UUID
    full_name: str
    phone: str | None = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    professional_id: UUID
    scheduled_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    price: Decimal
    video_room_url: str | None = None
    created_at: datetime
    updated_at: datetime
    professional: ProfessionalSummary | None = None
    patient: PatientSummary | None = None

    model_config = {"from_attributes": True}

    @field_validator("scheduled_at", "ends_at", "created_at", "updated_at")
    @classmethod
    def normalise_utc(cls, v: datetime) -> datetime:
        """Always expose instants as UTC."""
        return ensure_utc(v)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class RatingCreate(BaseModel):
    """Schema for rating a completed appointment."""

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class RatingResponse(BaseModel):
    """Schema for rating response."""

    id: UUID
    appointment_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalise_utc(cls, v: datetime) -> datetime:
        """Always expose instants as UTC."""
        return ensure_utc(v)
