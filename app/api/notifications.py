"""
Notification API Routes - the current user's notifications and read state.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies.auth import get_current_user
from app.models import User
from app.schemas import MessageResponse, NotificationOut
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    unread: bool = Query(False, description="Only return unread notifications"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    notifications = await NotificationService().list_for_user(
        current_user, unread_only=unread, db=db
    )
    return [NotificationOut.from_notification(n) for n in notifications]


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    count = await NotificationService().mark_all_read(current_user, db=db)
    return MessageResponse(message=f"{count} notification(s) marked as read")


@router.put("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
):
    notification = await NotificationService().mark_read(
        current_user, notification_id, db=db
    )
    return NotificationOut.from_notification(notification)
