"""Professional and specialty models using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from telemed.models.base import metadata

professionals = Table(
    "professionals",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Active flag comes from users.is_active
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    Column("full_name", Text, nullable=False),
    Column("license_number", String(100), unique=True),
    Column("bio", Text),
    # Hourly price, snapshotted onto every appointment at booking time
    Column("price", Numeric(10, 2), nullable=False),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

specialties = Table(
    "specialties",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
)

professional_specialties = Table(
    "professional_specialties",
    metadata,
    Column(
        "professional_id",
        Uuid,
        ForeignKey("professionals.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "specialty_id",
        Integer,
        ForeignKey("specialties.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
