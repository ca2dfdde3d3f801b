from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.notification import EntityKind, Notification, NotificationType
from app.utils.logger import setup_logger

logger = setup_logger("notification_db_handler")


class NotificationDBHandler(BaseDBHandler[Notification]):
    def __init__(self):
        super().__init__(Notification)

    @check_local_db
    async def create_for_recipients(
        self,
        recipient_ids: Iterable[uuid.UUID],
        message: str,
        notification_type: NotificationType,
        entity_kind: EntityKind,
        entity_id: uuid.UUID,
        *,
        db: AsyncSession = None,
    ) -> list[Notification]:
        """Create one notification per distinct recipient in a single commit."""
        notifications = [
            Notification(
                recipient_id=recipient_id,
                message=message,
                type=notification_type.value,
                entity_kind=entity_kind.value,
                entity_id=entity_id,
            )
            for recipient_id in dict.fromkeys(recipient_ids)
        ]
        if not notifications:
            return []
        try:
            db.add_all(notifications)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating notifications: {e}", exc_info=True)
            raise
        return notifications

    @check_local_db
    async def get_for_user(
        self,
        user_id: uuid.UUID,
        *,
        unread_only: bool = False,
        limit: int = 50,
        db: AsyncSession = None,
    ) -> list[Notification]:
        stmt = select(Notification).where(Notification.recipient_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def mark_all_read(self, user_id: uuid.UUID, *, db: AsyncSession = None) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        await db.commit()
        return result.rowcount or 0
