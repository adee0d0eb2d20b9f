"""Professional directory endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from telemed.dependencies import CurrentUser, DatabaseSession
from telemed.schemas.professionals import ProfessionalResponse
from telemed.services.professional_service import ProfessionalService

router = APIRouter()


@router.get(
    "/",
    response_model=list[ProfessionalResponse],
    status_code=status.HTTP_200_OK,
    summary="List professionals",
)
async def list_professionals(
    current_user: CurrentUser,
    db: DatabaseSession,
    active_only: bool = Query(True),
) -> list[ProfessionalResponse]:
    """
    List professionals with their specialties and rating summary.

    Args:
        current_user: Authenticated user
        db: Database session
        active_only: Hide professionals whose account is deactivated

    Returns:
        Professionals ordered by name
    """
    service = ProfessionalService(db)
    return await service.list_professionals(active_only=active_only)


@router.get(
    "/{professional_id}",
    response_model=ProfessionalResponse,
    status_code=status.HTTP_200_OK,
    summary="Get professional by ID",
)
async def get_professional(
    professional_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ProfessionalResponse:
    """Get one professional's public profile."""
    service = ProfessionalService(db)
    return await service.get_professional(professional_id)
