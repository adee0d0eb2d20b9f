"""Appointment and rating tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from telemed.models.base import metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references (immutable after creation)
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column(
        "professional_id",
        Uuid,
        ForeignKey("professionals.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Slot start; the duration is a system constant, not a column
    Column("scheduled_at", DateTime(timezone=True), nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default=text("'PENDING_PAYMENT'"),
    ),
    # Price snapshot (not looked up live, keeps billing history accurate)
    Column("price", Numeric(10, 2), nullable=False),
    # Set by the video collaborator, opaque here
    Column("video_room_url", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('PENDING_PAYMENT', 'SCHEDULED', 'IN_PROGRESS', 'COMPLETED', 'CANCELED')",
        name="appointments_status_check",
    ),
    Index("idx_appointments_professional_scheduled", "professional_id", "scheduled_at"),
)

# One rating per appointment, updated in place on re-rating
appointment_ratings = Table(
    "appointment_ratings",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("rating", Integer, nullable=False),
    Column("comment", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("rating BETWEEN 1 AND 5", name="appointment_ratings_rating_check"),
)
