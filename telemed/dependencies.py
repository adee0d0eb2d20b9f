"""FastAPI dependencies.

Routes never read identity from the request themselves: the bearer token is
resolved here into an explicit ``Caller`` that is passed to the services.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.permissions import Caller, UserRole
from telemed.core.redis_client import NotificationQueue, get_notification_queue
from telemed.core.security import token_subject
from telemed.database import get_db
from telemed.models.users import users
from telemed.services.notification_service import NotificationService

security = HTTPBearer()


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Resolve the bearer token to a user id.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no usable subject
    """
    user_id = token_subject(credentials.credentials)
    if user_id is None:
        raise _invalid_credentials()
    return user_id


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Load the caller's account.

    Args:
        user_id: User ID from the token
        db: Database session

    Returns:
        User row as a dict

    Raises:
        HTTPException: 401 if the account does not exist, 403 if it is deactivated
    """
    result = await db.execute(
        select(users.c.id, users.c.email, users.c.role, users.c.is_active).where(
            users.c.id == user_id
        )
    )
    user = result.mappings().first()

    if not user:
        raise _invalid_credentials()

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return dict(user)


async def get_current_caller(
    current_user: Annotated[dict, Depends(get_current_user)],
) -> Caller:
    """Identity and role handed to every service operation."""
    return Caller(user_id=current_user["id"], role=UserRole(current_user["role"]))


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    queue: Annotated[NotificationQueue, Depends(get_notification_queue)],
) -> NotificationService:
    """Notifier sharing the request's database session."""
    return NotificationService(db, queue)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
CurrentCaller = Annotated[Caller, Depends(get_current_caller)]
Notifier = Annotated[NotificationService, Depends(get_notification_service)]
