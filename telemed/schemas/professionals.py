"""Professional directory schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ProfessionalResponse(BaseModel):
    """Professional with ratings aggregated from completed appointments."""

    id: UUID
    user_id: UUID
    full_name: str
    license_number: str | None = None
    bio: str | None = None
    price: Decimal
    is_active: bool
    specialties: list[str] = Field(default_factory=list)
    average_rating: float = 0.0
    reviews_count: int = 0

    model_config = {"from_attributes": True}
