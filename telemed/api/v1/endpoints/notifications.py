"""Notification inbox endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from telemed.dependencies import CurrentUser, Notifier
from telemed.schemas.notifications import MarkReadResponse, NotificationRecord

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=list[NotificationRecord],
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_notifications(
    current_user: CurrentUser,
    notifier: Notifier,
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationRecord]:
    """
    Latest notifications of the authenticated user, newest first.

    Args:
        current_user: Authenticated user
        notifier: Notification service
        limit: Maximum number of entries

    Returns:
        Inbox entries
    """
    return await notifier.list_for_user(current_user["id"], limit)


@router.patch(
    "/read-all",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    current_user: CurrentUser,
    notifier: Notifier,
) -> MarkReadResponse:
    """Mark every unread notification of the authenticated user as read."""
    updated = await notifier.mark_all_as_read(current_user["id"])
    return MarkReadResponse(updated=updated)


@router.patch(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    current_user: CurrentUser,
    notifier: Notifier,
) -> MarkReadResponse:
    """Mark one of the authenticated user's notifications as read."""
    updated = await notifier.mark_as_read(notification_id, current_user["id"])
    return MarkReadResponse(updated=updated)
