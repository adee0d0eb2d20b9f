"""Professional directory service."""

from collections import defaultdict
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import NotFoundException
from telemed.models.appointments import appointment_ratings, appointments
from telemed.models.professionals import professional_specialties, professionals, specialties
from telemed.models.users import users
from telemed.schemas.appointments import AppointmentStatus
from telemed.schemas.professionals import ProfessionalResponse


async def specialties_by_professional(
    db: AsyncSession,
    professional_ids: Iterable[UUID],
) -> dict[UUID, list[str]]:
    """Map each professional to the sorted names of their specialties."""
    ids = list(set(professional_ids))
    if not ids:
        return {}

    stmt = (
        select(professional_specialties.c.professional_id, specialties.c.name)
        .join(specialties, professional_specialties.c.specialty_id == specialties.c.id)
        .where(professional_specialties.c.professional_id.in_(ids))
        .order_by(specialties.c.name)
    )
    result = await db.execute(stmt)

    names: dict[UUID, list[str]] = defaultdict(list)
    for row in result.fetchall():
        names[row.professional_id].append(row.name)
    return dict(names)


class ProfessionalService:
    """Service for the professional directory."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _directory_query():
        # Ratings only count for completed consultations
        rating_stats = (
            select(
                appointments.c.professional_id,
                func.avg(appointment_ratings.c.rating).label("average_rating"),
                func.count(appointment_ratings.c.id).label("reviews_count"),
            )
            .join(appointment_ratings, appointment_ratings.c.appointment_id == appointments.c.id)
            .where(appointments.c.status == AppointmentStatus.COMPLETED.value)
            .group_by(appointments.c.professional_id)
            .subquery()
        )

        return (
            select(
                professionals,
                users.c.is_active,
                rating_stats.c.average_rating,
                rating_stats.c.reviews_count,
            )
            .join(users, professionals.c.user_id == users.c.id)
            .outerjoin(rating_stats, rating_stats.c.professional_id == professionals.c.id)
        )

    @staticmethod
    def _to_response(row, specialty_names: list[str]) -> ProfessionalResponse:
        data = dict(row._mapping)
        average = data.pop("average_rating")
        data["average_rating"] = round(float(average), 1) if average is not None else 0.0
        data["reviews_count"] = data.pop("reviews_count") or 0
        data["specialties"] = specialty_names
        return ProfessionalResponse.model_validate(data)

    async def list_professionals(self, active_only: bool = True) -> list[ProfessionalResponse]:
        """
        List professionals with specialties and rating aggregates.

        Args:
            active_only: Hide professionals whose account is deactivated

        Returns:
            Professionals ordered by name
        """
        stmt = self._directory_query().order_by(professionals.c.full_name)
        if active_only:
            stmt = stmt.where(users.c.is_active.is_(True))

        result = await self.db.execute(stmt)
        rows = result.fetchall()

        names = await specialties_by_professional(self.db, (row.id for row in rows))
        return [self._to_response(row, names.get(row.id, [])) for row in rows]

    async def get_professional(self, professional_id: UUID) -> ProfessionalResponse:
        """
        Get a professional by ID.

        Raises:
            NotFoundException: If the professional does not exist
        """
        stmt = self._directory_query().where(professionals.c.id == professional_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Professional not found")

        names = await specialties_by_professional(self.db, [row.id])
        return self._to_response(row, names.get(row.id, []))
